"""Tests for structlog setup: renderer choice, bound context, stdlib bridge."""

import json
import logging

import pytest
import structlog

from dynfee.logging import get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    root.handlers[:] = handlers
    root.setLevel(level)


def _json_lines(capsys) -> list[dict]:
    return [json.loads(line) for line in capsys.readouterr().err.splitlines()]


def test_json_events_carry_process_context(capsys) -> None:
    setup_logging("INFO", "json", engine="engine:test", pool="pool:test")

    get_logger("dynfee.fees").info("fee_quoted", fee=500)

    [event] = _json_lines(capsys)
    assert event["event"] == "fee_quoted"
    assert event["fee"] == 500
    assert event["engine"] == "engine:test"
    assert event["pool"] == "pool:test"
    assert event["level"] == "info"
    assert event["logger"] == "dynfee.fees"
    assert "timestamp" in event


def test_operation_context_is_scoped(capsys) -> None:
    setup_logging("INFO", "json")
    logger = get_logger("dynfee.settlement")

    with structlog.contextvars.bound_contextvars(operation_id="op_abc"):
        logger.info("swap_settled")
    logger.info("swap_completed")

    inside, outside = _json_lines(capsys)
    assert inside["operation_id"] == "op_abc"
    assert "operation_id" not in outside


def test_stdlib_records_share_renderer(capsys) -> None:
    setup_logging("INFO", "json", engine="engine:test")

    logging.getLogger("uvicorn.error").warning("port %s busy", 8080)

    [event] = _json_lines(capsys)
    assert event["event"] == "port 8080 busy"
    assert event["level"] == "warning"
    assert event["engine"] == "engine:test"


def test_level_filters_debug(capsys) -> None:
    setup_logging("INFO", "json")

    get_logger("dynfee.history").debug("trade_recorded", amount=1)

    assert capsys.readouterr().err == ""


def test_setup_replaces_previous_context(capsys) -> None:
    setup_logging("INFO", "json", engine="engine:old")
    setup_logging("INFO", "json")

    get_logger("dynfee.main").info("engine_started")

    [event] = _json_lines(capsys)
    assert "engine" not in event
