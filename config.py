"""
Configuration for the walk-up scan service.

The device address is configured, never discovered.
Application will fail-fast if the device capabilities cannot be read.
"""

import os
import socket
import tempfile
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
# This must happen before the Config class is defined
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


def _optional_int(name: str):
    """Read an integer env var, treating unset/empty as None."""
    value = os.environ.get(name, "").strip()
    return int(value) if value else None


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")

    # Debug mode
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"

    # ==========================================================================
    # Device
    # ==========================================================================
    DEVICE_IP = os.environ.get("DEVICE_IP", "192.168.1.53")
    DEVICE_HTTP_TIMEOUT = float(os.environ.get("DEVICE_HTTP_TIMEOUT", "30"))

    # Name shown on the device panel for our destination
    DEVICE_LABEL = os.environ.get("DEVICE_LABEL") or socket.gethostname()

    # ==========================================================================
    # Listener mode
    # ==========================================================================
    # walkup:       wait for the user to pick us at the panel (default)
    # adf_autoscan: scan as soon as paper is loaded in the feeder
    # off:          only on-demand scans through the HTTP API
    SCAN_MODE = os.environ.get("SCAN_MODE", "walkup")

    # ==========================================================================
    # Output
    # ==========================================================================
    SCAN_DIRECTORY = os.environ.get("SCAN_DIRECTORY") or str(BASE_DIR / "scans")
    SCAN_TEMP_DIRECTORY = (
        os.environ.get("SCAN_TEMP_DIRECTORY") or str(Path(tempfile.gettempdir()) / "walkup-scan")
    )
    # strftime pattern, e.g. "scan_%Y%m%d_%H%M%S"; empty means scan<N>_page<M>
    SCAN_FILE_PATTERN = os.environ.get("SCAN_FILE_PATTERN") or None

    # ==========================================================================
    # Scan settings
    # ==========================================================================
    # Width/height are in device units (1/300 inch) and are clamped to the
    # device maximum for the active input source. Unset means "maximum".
    SCAN_RESOLUTION = int(os.environ.get("SCAN_RESOLUTION", "200"))
    SCAN_WIDTH = _optional_int("SCAN_WIDTH")
    SCAN_HEIGHT = _optional_int("SCAN_HEIGHT")

    # ==========================================================================
    # ADF auto-scan
    # ==========================================================================
    ADF_DUPLEX = os.environ.get("ADF_DUPLEX", "0") == "1"
    ADF_GENERATE_PDF = os.environ.get("ADF_GENERATE_PDF", "1") == "1"
    ADF_POLLING_INTERVAL_MS = int(os.environ.get("ADF_POLLING_INTERVAL_MS", "1000"))
    ADF_START_SCAN_DELAY_MS = int(os.environ.get("ADF_START_SCAN_DELAY_MS", "5000"))


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    SCAN_MODE = "off"
    DEVICE_LABEL = "walkup-scan-test"
