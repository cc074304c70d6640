import json
import logging

import pytest
import structlog

from filerange.utils.logging import _coerce_level, configure_logging, get_logger, log_context


@pytest.mark.unit
def test_coerce_level():
    assert _coerce_level("debug") == 10
    assert _coerce_level(30) == 30
    with pytest.raises(ValueError):
        _coerce_level("loud")


@pytest.mark.unit
def test_log_context_binds_and_restores():
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(run="outer")

    with log_context(work_item="/a.txt@0-10", run="inner"):
        bound = structlog.contextvars.get_contextvars()
        assert bound == {"run": "inner", "work_item": "/a.txt@0-10"}

    assert structlog.contextvars.get_contextvars() == {"run": "outer"}
    structlog.contextvars.clear_contextvars()


@pytest.mark.unit
def test_configure_logging_invalid_level():
    with pytest.raises(ValueError):
        configure_logging(level="nope")


@pytest.fixture
def restore_logging():
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


@pytest.mark.unit
def test_module_logger_follows_later_configuration(capsys, restore_logging):
    logger = get_logger("filerange.tests.early")

    configure_logging(level="WARNING", json_output=True)
    logger.info("below_level")
    logger.warning("above_level", path="/a.txt")

    out, err = capsys.readouterr()
    assert out == ""
    assert "below_level" not in err
    event = json.loads(err.strip().splitlines()[-1])
    assert event["event"] == "above_level"
    assert event["component"] == "filerange"
    assert event["path"] == "/a.txt"
