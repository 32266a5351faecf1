"""
Walk-up scan service - Flask Application Entry Point.

This is a slim app factory that:
1. Reads device capabilities (fail-fast, the device is required)
2. Creates the scan service (one session at a time)
3. Starts the walk-up listener (separate thread) unless SCAN_MODE=off
4. Registers route blueprints
5. Sets up error handlers

ARCHITECTURE:
    Main Thread
    ├── Capability read (ScanCaps + WalkupScanToCompCaps)
    ├── Flask request handling
    └── Cleanup on shutdown (stop listener, join scan threads)

    Walkup Thread (background)
    └── Event long poll with OWN device client, runs walk-up/feeder sessions

    Scan Threads (one per on-demand scan)
    └── Serialized with the listener's sessions by the device lock
"""

from __future__ import annotations

import atexit
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask
from werkzeug.exceptions import HTTPException

from logging_config import setup_logging, get_logger
from core.device_client import HPDeviceClient
from core.exceptions import DeviceRequestError, DeviceUnavailableError, WalkupScanError
from models.scan_config import AdfAutoScanConfig, ScanConfig
from services.scan_service import ScanService
from services.walkup_service import WalkupService
from routes import register_blueprints


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def _get_base_path() -> Path:
    """
    Get the base path for the application.

    In PyInstaller bundle: Returns the directory containing the executable
    In development: Returns the directory containing app.py
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    else:
        return Path(__file__).parent


def create_app(
    config_object: str = "config.Config",
    device_client: Optional[HPDeviceClient] = None
) -> Flask:
    """
    Application factory - creates and configures Flask app.

    FAIL-FAST: If the device capabilities cannot be read, the app will
    not start.

    Args:
        config_object: Import path of the config class
        device_client: Client to use for every device request (tests);
            by default the listener and the sessions get their own clients

    Returns:
        Configured Flask application

    Raises:
        DeviceUnavailableError: If the device does not answer at startup
    """
    # Load .env from base path (next to executable in production)
    # Use override=True so .env file always takes precedence over shell environment
    base_path = _get_base_path()
    env_file = base_path / '.env'
    if env_file.exists():
        load_dotenv(env_file, override=True)
    else:
        load_dotenv(override=True)  # Default behavior

    # Create Flask app
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        app_name="walkup_scan",
        log_level=log_level,
        enable_file_logging=enable_file_logging
    )

    # Set Flask's logger to use our configured logger
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting walk-up scan service in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # DEVICE INITIALIZATION (FAIL-FAST)
    # =========================================================================

    device_ip = app.config["DEVICE_IP"]
    timeout = app.config.get("DEVICE_HTTP_TIMEOUT", 30.0)

    session_client = device_client or HPDeviceClient(device_ip, timeout=timeout)

    try:
        capabilities = session_client.get_device_capabilities()
    except DeviceRequestError as e:
        logger.error(f"FATAL: Cannot start application - {e}")
        raise DeviceUnavailableError(device_ip, reason=str(e)) from e

    # Store in app config for access by routes
    app.config["DEVICE_CLIENT"] = session_client
    app.config["DEVICE_CAPABILITIES"] = capabilities

    scan_config = ScanConfig.from_mapping(app.config)
    adf_config = AdfAutoScanConfig.from_mapping(app.config)

    # Ensure output folders exist
    scan_config.directory.mkdir(parents=True, exist_ok=True)
    scan_config.temp_directory.mkdir(parents=True, exist_ok=True)

    # =========================================================================
    # SERVICES INITIALIZATION
    # =========================================================================

    # Create scan service (owns the device lock)
    scan_service = ScanService(session_client, capabilities, scan_config, adf_config)
    app.config["SCAN_SERVICE"] = scan_service
    logger.info("Scan service initialized")

    # Create walk-up listener (starts background thread)
    walkup_service = None
    scan_mode = app.config.get("SCAN_MODE", "walkup")
    if scan_mode != "off":
        listener_client = device_client or HPDeviceClient(device_ip, timeout=timeout)
        walkup_service = WalkupService(
            scan_service,
            listener_client,
            capabilities,
            scan_mode=scan_mode,
            label=app.config["DEVICE_LABEL"],
            adf_config=adf_config,
        )
        walkup_service.start()
        logger.info(f"Walk-up listener started ({scan_mode})")
    else:
        logger.info("Walk-up listener disabled (SCAN_MODE=off)")
    app.config["WALKUP_SERVICE"] = walkup_service

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    def cleanup():
        """Cleanup on application shutdown."""
        logger.info("Shutting down...")

        # Stop listener thread
        if walkup_service:
            walkup_service.stop()

        # Wait for scan threads
        if scan_service:
            scan_service.shutdown()

        logger.info("Shutdown complete")

    atexit.register(cleanup)

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(WalkupScanError)
    def handle_walkup_scan_error(e):
        logger.error(f"Request failed: {e}")
        return {"error": e.message, "details": e.details}, 502

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return {"error": e.description, "code": e.code}, e.code

    @app.errorhandler(500)
    def handle_server_error(e):
        logger.error(f"500 error: {e}", exc_info=True)
        return {"error": "An unexpected error occurred."}, 500

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    # The reloader would start a second listener thread
    app.run(host=os.environ.get("FLASK_HOST", "127.0.0.1"), debug=debug_mode, use_reloader=False)
