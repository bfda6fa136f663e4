"""
CanLabeler - Flask Application Entry Point.

This is a slim app factory that:
1. Builds the record store (Airtable or in-memory)
2. Builds the label printer sink and the scale service
3. Creates the print workflow and loads catalogs (best effort)
4. Registers route blueprints and JSON error handlers

ARCHITECTURE:
    Main Thread
    ├── Flask request handling (print workflow runs here, one print at a time)
    └── Cleanup on shutdown (scale port released)

    Scale Thread (started by the operator)
    └── Blocks on serial reads, overwrites the current weight

    Load pool (per load)
    └── Counter, products and brands fetched in parallel
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
from core.airtable_store import AirtableRecordStore
from core.exceptions import (
    CanLabelerError,
    ConcurrentPrintRejected,
    DeviceUnavailable,
    DuplicateCanId,
    EncodingError,
    LedgerUpdateFailed,
    LoadError,
    PersistError,
    ValidationError,
    WorkflowStateError,
)
from core.interfaces import LabelPrinter
from core.memory_store import InMemoryRecordStore
from core.printers import NetworkLabelPrinter, DeviceLabelPrinter
from core.scale import ScaleReader
from services.print_workflow import PrintWorkflow
from services.scale_service import ScaleService
from routes import register_blueprints


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def _get_base_path() -> Path:
    """
    Get the base path for the application.

    In a frozen bundle: the directory containing the executable
    In development: the directory containing app.py
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    return Path(__file__).parent


def build_record_store(config):
    """
    Create the record store selected by RECORD_BACKEND.

    Raises:
        ValueError: For an unknown backend or missing Airtable credentials
    """
    backend = config.get("RECORD_BACKEND", "airtable")

    if backend == "memory":
        seed_file = config.get("MEMORY_SEED_FILE")
        if seed_file:
            return InMemoryRecordStore.from_file(seed_file)
        logger.warning("Using an empty in-memory record store")
        return InMemoryRecordStore()

    if backend == "airtable":
        return AirtableRecordStore(
            api_key=config.get("AIRTABLE_API_KEY"),
            base_id=config.get("AIRTABLE_BASE_ID"),
            tables={
                "counter": config.get("AIRTABLE_COUNTER_TABLE"),
                "products": config.get("AIRTABLE_PRODUCT_TABLE"),
                "brands": config.get("AIRTABLE_BRAND_TABLE"),
                "prints": config.get("AIRTABLE_PRINT_TABLE"),
            },
            timeout_seconds=config.get("AIRTABLE_TIMEOUT_SECONDS", 10.0),
            logger=get_logger("core.airtable_store"),
        )

    raise ValueError(f"Unknown RECORD_BACKEND: {backend}")


def build_printer(config) -> LabelPrinter:
    """Create the label printer sink selected by PRINTER_MODE."""
    mode = config.get("PRINTER_MODE", "network")

    if mode == "device":
        return DeviceLabelPrinter(config.get("PRINTER_DEVICE"), logger=get_logger("core.printers"))
    if mode == "network":
        return NetworkLabelPrinter(
            host=config.get("PRINTER_HOST"),
            port=config.get("PRINTER_PORT", 9100),
            timeout_seconds=config.get("PRINTER_TIMEOUT_SECONDS", 5.0),
            logger=get_logger("core.printers"),
        )

    raise ValueError(f"Unknown PRINTER_MODE: {mode}")


def error_status(error: CanLabelerError) -> int:
    """HTTP status for an application error."""
    if isinstance(error, (ValidationError, EncodingError)):
        return 400
    if isinstance(error, (ConcurrentPrintRejected, WorkflowStateError, DuplicateCanId)):
        return 409
    if isinstance(error, DeviceUnavailable):
        return 503
    if isinstance(error, (LoadError, PersistError, LedgerUpdateFailed)):
        return 502
    return 500


def create_app(
    config_object: str = "config.Config",
    record_store=None,
    printer: Optional[LabelPrinter] = None,
    scale_reader_factory=None,
) -> Flask:
    """
    Application factory - creates and configures the Flask app.

    Collaborators can be injected (tests, bench setups); otherwise they are
    built from configuration.

    Args:
        config_object: Import path of the config class
        record_store: Object implementing catalog, ledger and print log
        printer: Label printer sink
        scale_reader_factory: Returns a new ScaleReader

    Returns:
        Configured Flask application
    """
    base_path = _get_base_path()
    env_file = base_path / '.env'
    if env_file.exists():
        load_dotenv(env_file, override=True)
    else:
        load_dotenv(override=True)

    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        app_name="can_labeler",
        log_level=log_level,
        log_dir=app.config.get("LOG_DIR") or None,
        enable_file_logging=enable_file_logging,
    )
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting CanLabeler in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # COLLABORATORS
    # =========================================================================

    if record_store is None:
        record_store = build_record_store(app.config)
    if printer is None:
        printer = build_printer(app.config)
    if scale_reader_factory is None:
        scale_port = app.config.get("SCALE_PORT")
        scale_baudrate = app.config.get("SCALE_BAUDRATE", 9600)

        def scale_reader_factory():
            return ScaleReader(scale_port, scale_baudrate, logger=get_logger("core.scale"))

    app.config["RECORD_STORE"] = record_store

    # =========================================================================
    # SERVICES
    # =========================================================================

    workflow = PrintWorkflow(
        catalog=record_store,
        ledger=record_store,
        records=record_store,
        printer=printer,
        shelf_life_years=app.config.get("SHELF_LIFE_YEARS", 2),
        load_timeout_seconds=app.config.get("LOAD_TIMEOUT_SECONDS", 30.0),
    )
    app.config["PRINT_WORKFLOW"] = workflow

    scale_service = ScaleService(scale_reader_factory)
    app.config["SCALE_SERVICE"] = scale_service

    if app.config.get("LOAD_ON_STARTUP"):
        try:
            workflow.load()
        except LoadError as e:
            # Not fatal: the operator reloads from the UI once the store is back
            logger.error(f"Initial load failed: {e}")

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    def cleanup():
        """Cleanup on application shutdown."""
        logger.info("Shutting down...")
        scale_service.stop()
        logger.info("Shutdown complete")

    atexit.register(cleanup)

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(CanLabelerError)
    def handle_labeler_error(e: CanLabelerError):
        status = error_status(e)
        if status >= 500:
            logger.error(f"{type(e).__name__}: {e}")
        else:
            logger.info(f"{type(e).__name__}: {e}")
        return e.to_dict(), status

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return {"error": type(e).__name__, "message": e.description, "details": {}}, e.code

    @app.errorhandler(500)
    def handle_server_error(e):
        logger.error(f"500 error: {e}", exc_info=True)
        return {"error": "InternalError", "message": "An unexpected error occurred", "details": {}}, 500

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    # Single process: the reloader would open the scale port twice
    app.run(debug=debug_mode, use_reloader=False)
