"""
Unit tests for the device resource models.

The XML samples follow what HP LEDM devices actually send (namespaced,
with extra elements the models ignore).
"""

from datetime import datetime
from pathlib import Path
import xml.etree.ElementTree as ET

import pytest

from models import (
    ContentType,
    DeviceCapabilities,
    Destination,
    EventKind,
    EventTable,
    InputSource,
    Job,
    JobState,
    PageState,
    ScanContent,
    ScanJobSettings,
    ScanPage,
    ScanSessionRecord,
    ScanSessionResult,
    ScanStatus,
    SessionKind,
    SessionStatus,
    Shortcut,
    WalkupScanToCompEvent,
)


EVENT_TABLE_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<ev:EventTable xmlns:ev="http://www.hp.com/schemas/imaging/con/ledm/events/2007/09/16"
               xmlns:dd="http://www.hp.com/schemas/imaging/con/dictionaries/1.0/">
  <dd:Version><dd:Revision>SVN-IPG-LEDM.216</dd:Revision></dd:Version>
  <ev:Event>
    <dd:UnqualifiedEventCategory>ScanEvent</dd:UnqualifiedEventCategory>
    <dd:AgingStamp>17-42</dd:AgingStamp>
    <ev:Payload>
      <dd:ResourceURI>/WalkupScanToComp/WalkupScanToCompDestinations/1234-abcd</dd:ResourceURI>
      <dd:ResourceType>wus:WalkupScanToCompDestination</dd:ResourceType>
    </ev:Payload>
    <ev:Payload>
      <dd:ResourceURI>/WalkupScanToComp/WalkupScanToCompEvent</dd:ResourceURI>
      <dd:ResourceType>wus:WalkupScanToCompEvent</dd:ResourceType>
    </ev:Payload>
  </ev:Event>
  <ev:Event>
    <dd:UnqualifiedEventCategory>PrinterStatusEvent</dd:UnqualifiedEventCategory>
    <dd:AgingStamp>17-43</dd:AgingStamp>
  </ev:Event>
</ev:EventTable>
"""

JOB_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<j:Job xmlns:j="http://www.hp.com/schemas/imaging/con/ledm/jobs/2009/04/30"
       xmlns:dd="http://www.hp.com/schemas/imaging/con/dictionaries/1.0/">
  <j:JobUrl>/Jobs/JobList/2</j:JobUrl>
  <j:JobCategory>Scan</j:JobCategory>
  <j:JobState>Processing</j:JobState>
  <ScanJob xmlns="http://www.hp.com/schemas/imaging/con/ledm/scanjob/2009/04/30">
    <PreScanPage>
      <PageNumber>1</PageNumber>
      <PageState>ReadyToUpload</PageState>
      <BufferInfo>
        <ScanSettings>
          <XResolution>200</XResolution>
          <YResolution>300</YResolution>
        </ScanSettings>
        <ImageWidth>1700</ImageWidth>
        <ImageHeight>2200</ImageHeight>
      </BufferInfo>
      <BinaryURL>/Scan/Jobs/2/Pages/1</BinaryURL>
    </PreScanPage>
  </ScanJob>
</j:Job>
"""

DESTINATION_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<wus:WalkupScanToCompDestination
    xmlns:wus="http://www.hp.com/schemas/imaging/con/rest/walkupscantocomp/2010/09/28"
    xmlns:dd="http://www.hp.com/schemas/imaging/con/dictionaries/1.0/"
    xmlns:dd3="http://www.hp.com/schemas/imaging/con/dictionaries/2009/04/06">
  <dd:Name>office-pc</dd:Name>
  <dd:ResourceURI>/WalkupScanToComp/WalkupScanToCompDestinations/1234-abcd</dd:ResourceURI>
  <wus:WalkupScanToCompSettings>
    <dd3:ScanSettings>
      <dd:ScanPlexMode>Duplex</dd:ScanPlexMode>
    </dd3:ScanSettings>
    <wus:Shortcut>SavePDF</wus:Shortcut>
  </wus:WalkupScanToCompSettings>
</wus:WalkupScanToCompDestination>
"""

SCAN_CAPS_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<ScanCaps xmlns="http://www.hp.com/schemas/imaging/con/cnx/scan/2008/08/19">
  <Platen>
    <InputSourceCaps>
      <MinWidth>8</MinWidth>
      <MaxWidth>2550</MaxWidth>
      <MaxHeight>3508</MaxHeight>
    </InputSourceCaps>
  </Platen>
  <Adf>
    <InputSourceCaps>
      <MaxWidth>2550</MaxWidth>
      <MaxHeight>4200</MaxHeight>
    </InputSourceCaps>
    <DuplexInputSourceCaps>
      <MaxWidth>2500</MaxWidth>
      <MaxHeight>3300</MaxHeight>
    </DuplexInputSourceCaps>
  </Adf>
</ScanCaps>
"""

WALKUP_CAPS_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<wus:WalkupScanToCompCaps
    xmlns:wus="http://www.hp.com/schemas/imaging/con/rest/walkupscantocomp/2010/09/28">
  <wus:SupportsMultiItemScanFromPlaten>true</wus:SupportsMultiItemScanFromPlaten>
</wus:WalkupScanToCompCaps>
"""


class TestEventModels:
    """Test event table and panel event parsing."""

    def test_event_table_parses_scan_event(self):
        table = EventTable.from_xml(EVENT_TABLE_XML, '"etag-7"')

        assert table.etag == '"etag-7"'
        assert len(table.events) == 2

        scan_event = table.events[0]
        assert scan_event.is_scan_event
        assert scan_event.aging_stamp == "17-42"
        assert scan_event.destination_uri == "/WalkupScanToComp/WalkupScanToCompDestinations/1234-abcd"
        assert scan_event.comp_event_uri == "/WalkupScanToComp/WalkupScanToCompEvent"

        other = table.events[1]
        assert not other.is_scan_event
        assert other.destination_uri is None

    def test_find_scan_event_matches_destination_substring(self):
        table = EventTable.from_xml(EVENT_TABLE_XML, "e")

        assert table.find_scan_event("1234-abcd") is table.events[0]
        assert table.find_scan_event("9999") is None

    @pytest.mark.parametrize("raw,kind", [
        ("HostSelected", EventKind.HOST_SELECTED),
        ("ScanRequested", EventKind.SCAN_REQUESTED),
        ("ScanNewPageRequested", EventKind.SCAN_NEW_PAGE_REQUESTED),
        ("ScanPagesComplete", EventKind.SCAN_PAGES_COMPLETE),
        ("SomethingNew", EventKind.UNKNOWN),
        (None, EventKind.UNKNOWN),
    ])
    def test_event_kind_parse(self, raw, kind):
        assert WalkupScanToCompEvent(event_type=raw).kind is kind

    def test_comp_event_from_xml(self):
        content = b"""<wus:WalkupScanToCompEvent
            xmlns:wus="http://www.hp.com/schemas/imaging/con/rest/walkupscantocomp/2010/09/28">
          <wus:WalkupScanToCompEventType>ScanRequested</wus:WalkupScanToCompEventType>
        </wus:WalkupScanToCompEvent>"""

        event = WalkupScanToCompEvent.from_xml(content)

        assert event.event_type == "ScanRequested"
        assert event.kind is EventKind.SCAN_REQUESTED


class TestJobModel:
    """Test job snapshot parsing."""

    def test_job_from_xml(self):
        job = Job.from_xml(JOB_XML)

        assert job.job_state is JobState.PROCESSING
        assert job.page_state is PageState.READY_TO_UPLOAD
        assert job.current_page_number == 1
        assert job.binary_url == "/Scan/Jobs/2/Pages/1"
        assert job.image_width == 1700
        assert job.image_height == 2200
        assert job.x_resolution == 200
        assert job.y_resolution == 300
        assert job.has_page_ready

    def test_completed_job_without_pages(self):
        content = b"""<j:Job xmlns:j="http://www.hp.com/schemas/imaging/con/ledm/jobs/2009/04/30">
          <j:JobState>Completed</j:JobState>
        </j:Job>"""

        job = Job.from_xml(content)

        assert job.job_state is JobState.COMPLETED
        assert job.page_state is PageState.UNKNOWN
        assert job.current_page_number is None
        assert not job.has_page_ready

    def test_unknown_job_state_keeps_raw_value(self):
        job = Job(raw_job_state="Paused")

        assert job.job_state is JobState.UNKNOWN
        assert job.raw_job_state == "Paused"

    def test_ready_page_without_binary_url_is_not_downloadable(self):
        job = Job(raw_job_state="Processing", raw_page_state="ReadyToUpload", current_page_number=1)

        assert not job.has_page_ready


class TestDeviceModels:
    """Test destination, status and capability parsing."""

    def test_destination_from_xml(self):
        destination = Destination.from_xml(DESTINATION_XML)

        assert destination.name == "office-pc"
        assert destination.resource_uri.endswith("/1234-abcd")
        assert destination.shortcut is Shortcut.SAVE_PDF
        assert destination.is_duplex

    def test_destination_without_shortcut(self):
        destination = Destination(name="office-pc")

        assert destination.shortcut is None
        assert not destination.is_duplex

    @pytest.mark.parametrize("plex_mode,expected", [
        (None, False),
        ("Simplex", False),
        ("Duplex", True),
    ])
    def test_destination_plex_mode(self, plex_mode, expected):
        assert Destination(name="x", scan_plex_mode=plex_mode).is_duplex is expected

    @pytest.mark.parametrize("raw,produces_pdf", [
        ("SavePDF", True),
        ("EmailPDF", True),
        ("SaveDocument1", True),
        ("SaveJPEG", False),
        ("SavePhoto1", False),
        ("Fax", False),
    ])
    def test_shortcut_pdf_classification(self, raw, produces_pdf):
        assert Shortcut.parse(raw).produces_pdf is produces_pdf

    def test_destination_list_from_xml(self):
        content = b"""<wus:WalkupScanToCompDestinations
            xmlns:wus="http://www.hp.com/schemas/imaging/con/rest/walkupscantocomp/2010/09/28"
            xmlns:dd="http://www.hp.com/schemas/imaging/con/dictionaries/1.0/">
          <wus:WalkupScanToCompDestination>
            <dd:Name>office-pc</dd:Name>
            <dd:ResourceURI>/WalkupScanToComp/WalkupScanToCompDestinations/1</dd:ResourceURI>
          </wus:WalkupScanToCompDestination>
          <wus:WalkupScanToCompDestination>
            <dd:Name>laptop</dd:Name>
            <dd:ResourceURI>/WalkupScanToComp/WalkupScanToCompDestinations/2</dd:ResourceURI>
          </wus:WalkupScanToCompDestination>
        </wus:WalkupScanToCompDestinations>"""

        destinations = Destination.list_from_xml(content)

        assert [d.name for d in destinations] == ["office-pc", "laptop"]

    def test_scan_status_input_source(self):
        content = b"""<ScanStatus xmlns="http://www.hp.com/schemas/imaging/con/cnx/scan/2008/08/19">
          <ScannerState>Idle</ScannerState>
          <AdfState>Loaded</AdfState>
        </ScanStatus>"""

        status = ScanStatus.from_xml(content)

        assert status.is_idle
        assert status.is_loaded
        assert status.input_source is InputSource.ADF
        assert ScanStatus("BusyWithScanJob", "Empty").input_source is InputSource.PLATEN

    def test_capabilities_from_xml(self):
        caps = DeviceCapabilities.from_xml(SCAN_CAPS_XML, WALKUP_CAPS_XML)

        assert caps.use_walkup_scan_to_comp
        assert caps.supports_multi_item_scan_from_platen
        assert caps.max_scan_size(InputSource.PLATEN, False) == (2550, 3508)
        assert caps.max_scan_size(InputSource.PLATEN, True) == (2550, 3508)
        assert caps.max_scan_size(InputSource.ADF, False) == (2550, 4200)
        assert caps.max_scan_size(InputSource.ADF, True) == (2500, 3300)

    def test_capabilities_without_walkup_to_comp(self):
        caps = DeviceCapabilities.from_xml(SCAN_CAPS_XML)

        assert not caps.use_walkup_scan_to_comp
        assert not caps.supports_multi_item_scan_from_platen
        assert caps.to_dict()["platen_max_width"] == 2550


class TestScanModels:
    """Test job settings, page list and session records."""

    def test_settings_xml_for_duplex_feeder(self):
        settings = ScanJobSettings(InputSource.ADF, ContentType.DOCUMENT, 300, 2550, None, True)

        root = ET.fromstring(settings.to_xml())

        ns = {"s": "http://www.hp.com/schemas/imaging/con/cnx/scan/2008/08/19"}
        assert root.find("s:XResolution", ns).text == "300"
        assert root.find("s:Width", ns).text == "2550"
        assert root.find("s:Height", ns) is None
        assert root.find("s:InputSource", ns).text == "Adf"
        assert root.find("s:ContentType", ns).text == "Document"
        assert root.find("s:AdfOptions/s:AdfOption", ns).text == "Duplex"

    def test_settings_xml_platen_never_duplex(self):
        settings = ScanJobSettings(InputSource.PLATEN, ContentType.PHOTO, 200, 2550, 3508, True)

        assert "AdfOptions" not in settings.to_xml()

    def test_scan_content_is_append_only(self, tmp_path):
        content = ScanContent()
        assert content.next_page_number == 1

        page = ScanPage(tmp_path / "p1.jpg", 1, 100, 200, 200, 200)
        content.add(page)

        assert len(content) == 1
        assert content.pages == (page,)
        assert content.next_page_number == 2

    def test_session_result_pages_folder(self, tmp_path):
        result = ScanSessionResult(
            folder=tmp_path / "out", temp_folder=tmp_path / "tmp",
            scan_count=1, date=datetime(2024, 5, 1), to_pdf=True,
        )

        assert result.pages_folder == tmp_path / "tmp"
        result.to_pdf = False
        assert result.pages_folder == tmp_path / "out"

    def test_session_record_lifecycle(self, tmp_path):
        record = ScanSessionRecord.create_running("a" * 36, SessionKind.SINGLE, 3)
        assert record.status is SessionStatus.RUNNING
        assert not record.is_finished

        result = ScanSessionResult(
            folder=tmp_path, temp_folder=tmp_path, scan_count=3,
            date=datetime(2024, 5, 1), to_pdf=True,
            output_files=[Path(tmp_path / "scan3.pdf")],
        )
        result.content.add(ScanPage(tmp_path / "p.jpg", 1, 1, 1, 200, 200))

        done = record.create_completed(result)

        assert done.status is SessionStatus.COMPLETED
        assert done.is_finished
        assert done.page_count == 1
        data = done.to_dict()
        assert data["kind"] == "single"
        assert data["status"] == "completed"
        assert data["output_files"] == [str(tmp_path / "scan3.pdf")]
        assert data["finished_at"] is not None

    def test_session_record_failed_and_aborted(self):
        record = ScanSessionRecord.create_running("b" * 36, SessionKind.WALKUP, 1)

        assert record.create_failed("boom").status is SessionStatus.FAILED
        assert record.create_aborted("no shortcut").notes == "no shortcut"
