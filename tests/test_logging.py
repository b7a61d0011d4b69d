import logging

import pytest

from sitewright.logging import _ComponentFormatter, configure_logging, get_logger


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    logger = logging.getLogger("sitewright")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def _record(name, message="hello"):
    return logging.LogRecord(name, logging.INFO, __file__, 1, message, None, None)


def test_console_format_names_the_module():
    formatter = _ComponentFormatter("[%(component)s] %(levelname)s %(message)s")
    assert formatter.format(_record("sitewright.compiler")) == "[sitewright:compiler] INFO hello"
    assert formatter.format(_record("watchdog.observers")) == "[watchdog.observers] INFO hello"


def test_configure_logging_replaces_handlers(tmp_path):
    configure_logging()
    logger = configure_logging(verbose=True, log_file=tmp_path / "build.log")
    assert logger is logging.getLogger("sitewright")
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2

    get_logger("orchestrator").debug("Cycle finished")
    for handler in logger.handlers:
        handler.flush()
    text = (tmp_path / "build.log").read_text(encoding="utf-8")
    assert "DEBUG sitewright.orchestrator [MainThread]: Cycle finished" in text
