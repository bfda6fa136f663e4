"""
Unit tests for logging setup.
"""

import logging
import threading

import pytest

from logging_config import (
    PrintLoggerAdapter,
    get_logger,
    get_print_logger,
    set_thread_name,
    setup_logging,
)


@pytest.fixture
def app_name():
    # Separate namespace so the application's own logger is left alone
    name = "can_labeler_test"
    yield name
    for logger_name in (name, f"{name}.print"):
        logger = logging.getLogger(logger_name)
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers.clear()


class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_console_only(self, app_name):
        logger = setup_logging(app_name=app_name, enable_file_logging=False)

        assert len(logger.handlers) == 1
        assert not logger.propagate

    def test_reconfigure_does_not_duplicate_handlers(self, app_name):
        setup_logging(app_name=app_name, enable_file_logging=False)
        logger = setup_logging(app_name=app_name, enable_file_logging=False)

        assert len(logger.handlers) == 1

    def test_file_logs(self, app_name, tmp_path):
        logger = setup_logging(app_name=app_name, log_dir=tmp_path, enable_file_logging=True)

        PrintLoggerAdapter(logging.getLogger(f"{app_name}.print"), {"can_id": 4821}).info("Label dispatched")
        logging.getLogger(f"{app_name}.services").error("Printer offline")
        for handler in logger.handlers + logging.getLogger(f"{app_name}.print").handlers:
            handler.flush()

        prints = (tmp_path / f"{app_name}_prints.log").read_text(encoding="utf-8")
        errors = (tmp_path / f"{app_name}_error.log").read_text(encoding="utf-8")
        everything = (tmp_path / f"{app_name}.log").read_text(encoding="utf-8")

        assert "[can 4821] Label dispatched" in prints
        assert "Printer offline" not in prints
        assert "Printer offline" in errors
        assert "Label dispatched" not in errors
        assert "Label dispatched" in everything
        assert "[MainThread]" in everything


class TestLoggerFactories:
    """Tests for the logger helpers."""

    def test_get_logger_namespaced(self):
        assert get_logger("services.print_workflow").name == "can_labeler.services.print_workflow"
        assert get_logger("can_labeler.app").name == "can_labeler.app"

    def test_get_print_logger(self):
        print_logger = get_print_logger(4821)

        assert isinstance(print_logger, logging.LoggerAdapter)
        assert print_logger.logger.name == "can_labeler.print"
        assert print_logger.extra["can_id"] == 4821

    def test_print_loggers_share_one_logger(self):
        assert get_print_logger(4821).logger is get_print_logger(4822).logger

    def test_print_logger_tags_records(self):
        print_logger = get_print_logger(4821)
        records = []
        handler = logging.Handler()
        handler.emit = records.append
        print_logger.logger.addHandler(handler)
        try:
            print_logger.warning("Label not dispatched")
        finally:
            print_logger.logger.removeHandler(handler)

        assert records[0].getMessage() == "[can 4821] Label not dispatched"
        assert records[0].can_id == 4821

    def test_set_thread_name(self):
        names = []

        def worker():
            set_thread_name("Scale")
            names.append(threading.current_thread().name)

        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()

        assert names == ["Scale"]
