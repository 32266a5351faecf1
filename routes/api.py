"""
API routes (JSON endpoints).

Handles:
- /health - Health check with device capabilities and listener state
- /api/scans - Start an on-demand flatbed scan, list recent sessions
- /api/scans/<session_id> - Poll one scan session
- /api/destinations - Remove our destinations from the device panel
"""

from flask import (
    Blueprint,
    current_app,
    request,
)

from core.exceptions import DeviceRequestError, ScanSessionBusyError
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

api_bp = Blueprint("api", __name__)


@api_bp.route("/api/scans", methods=["POST"])
def start_scan():
    """
    Start an on-demand flatbed scan.

    Body (optional JSON): {"duplex": bool, "pdf": bool}

    Returns 202 with the session id; poll /api/scans/<session_id>.
    Returns 409 while another session owns the device.
    """
    scan_service = current_app.config.get("SCAN_SERVICE")
    if not scan_service:
        return {"error": "Scan service unavailable"}, 503

    payload = request.get_json(silent=True) or {}
    is_duplex = bool(payload.get("duplex", False))
    generate_pdf = bool(payload.get("pdf", True))

    try:
        session_id = scan_service.submit_single_scan(is_duplex=is_duplex, generate_pdf=generate_pdf)
    except ScanSessionBusyError as e:
        logger.info(f"Scan request rejected: {e.message}")
        return {
            "error": e.message,
            "active_session_id": e.active_session_id,
        }, 409

    logger.info(f"Single scan {session_id[:8]} accepted")
    return {
        "session_id": session_id,
        "status": "running",
        "status_url": f"/api/scans/{session_id}",
    }, 202


@api_bp.route("/api/scans", methods=["GET"])
def list_scans():
    """Recent scan sessions, most recent first (?limit=N)."""
    scan_service = current_app.config.get("SCAN_SERVICE")
    if not scan_service:
        return {"error": "Scan service unavailable"}, 503

    limit = request.args.get("limit", type=int)
    records = scan_service.recent_records(limit)
    return {
        "sessions": [record.to_dict() for record in records],
        "active_session_id": scan_service.active_session_id,
    }


@api_bp.route("/api/scans/<session_id>", methods=["GET"])
def get_scan(session_id: str):
    """
    Status of one scan session.

    Reads from the ScanSessionStore populated by session threads.
    """
    scan_service = current_app.config.get("SCAN_SERVICE")
    if not scan_service:
        return {"error": "Scan service unavailable"}, 503

    record = scan_service.get_record(session_id)
    if record is None:
        return {"error": f"Unknown scan session: {session_id}"}, 404

    result = record.to_dict()
    result["pending"] = scan_service.is_session_pending(session_id)
    return result


@api_bp.route("/api/destinations", methods=["DELETE"])
def clear_destinations():
    """
    Remove every walk-up scan to computer destination from the device.

    Returns 409 while a scan session owns the device.
    """
    scan_service = current_app.config.get("SCAN_SERVICE")
    if not scan_service:
        return {"error": "Scan service unavailable"}, 503

    try:
        removed = scan_service.clear_registrations()
    except ScanSessionBusyError as e:
        logger.info(f"Destination cleanup rejected: {e.message}")
        return {
            "error": e.message,
            "active_session_id": e.active_session_id,
        }, 409
    except DeviceRequestError as e:
        logger.error(f"Clearing destinations failed: {e}")
        return {"error": e.message, "details": e.details}, 502

    logger.info(f"Removed {removed} destination(s)")
    return {"removed": removed}


@api_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint with service status."""
    health_status = {
        "status": "ok",
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "scan_mode": current_app.config.get("SCAN_MODE"),
        "checks": {}
    }

    # Device capabilities (read once at startup)
    capabilities = current_app.config.get("DEVICE_CAPABILITIES")
    if capabilities is not None:
        health_status["checks"]["device"] = "ok"
        health_status["device"] = capabilities.to_dict()
    else:
        health_status["checks"]["device"] = "not_available"
        health_status["status"] = "degraded"

    # Listener thread
    walkup_service = current_app.config.get("WALKUP_SERVICE")
    if current_app.config.get("SCAN_MODE") == "off":
        health_status["checks"]["listener"] = "disabled"
    elif walkup_service and walkup_service.is_running:
        if walkup_service.consecutive_failures:
            health_status["checks"]["listener"] = "failing"
        else:
            health_status["checks"]["listener"] = "ok"
    else:
        health_status["checks"]["listener"] = "not_running"
        health_status["status"] = "degraded"

    # Scan service
    scan_service = current_app.config.get("SCAN_SERVICE")
    if scan_service:
        health_status["checks"]["scan_service"] = "busy" if scan_service.is_busy else "idle"
    else:
        health_status["checks"]["scan_service"] = "not_available"
        health_status["status"] = "degraded"

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code
