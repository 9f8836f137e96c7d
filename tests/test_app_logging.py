"""Tests for logging configuration."""

import logging

from job_tracker.app_logging import configure_logging


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def test_configure_logging_installs_one_handler() -> None:
    logger = logging.getLogger("job_tracker")
    logger.handlers.clear()

    configure_logging(logging.DEBUG)
    configure_logging()

    assert len(logger.handlers) == 1
    assert logger.level == logging.INFO
    assert logger.propagate is False


def test_module_loggers_reach_package_handler() -> None:
    logger = logging.getLogger("job_tracker")
    logger.handlers.clear()
    handler = _ListHandler()
    logger.addHandler(handler)
    configure_logging()

    logging.getLogger("job_tracker.services.clock").warning("Clearing stuck action")
    logging.getLogger("job_tracker.services.clock").debug("hidden")

    assert [record.getMessage() for record in handler.records] == [
        "Clearing stuck action"
    ]
    logger.handlers.clear()
