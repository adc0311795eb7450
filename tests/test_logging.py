"""Tests for the structured logging system (settlement_kernel/logging_config.py)."""

import json
import logging
from io import StringIO
from uuid import uuid4

import pytest

from settlement_kernel.domain.statuses import ActorRole
from settlement_kernel.exceptions import DuplicateSettlementError
from settlement_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests, then restore the suite configuration."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "settlement_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("payment_completed", extra={"transfer_id": "tr_1", "duration_ms": 4.2})

        record = _parse_log(stream)
        assert record["transfer_id"] == "tr_1"
        assert record["duration_ms"] == 4.2

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(correlation_id="abc-123", contract_id="c-1")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["contract_id"] == "c-1"

    def test_settlement_exception_fields_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise DuplicateSettlementError("c-1", "2024-01-01", "2024-01-14", "p-9")
        except DuplicateSettlementError:
            get_logger("test").error("settlement_error", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "DUPLICATE_SETTLEMENT"
        assert record["exc_type"] == "DuplicateSettlementError"
        assert record["exc_contract_id"] == "c-1"
        assert record["exc_payment_id"] == "p-9"
        assert "traceback" in record

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "actor_id" not in record
        assert "payment_id" not in record

    def test_uuid_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info("with_uuid", extra={"milestone_id": uid})

        assert _parse_log(stream)["milestone_id"] == str(uid)

    def test_debug_filtered_at_info(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        assert [r["message"] for r in _parse_all_logs(stream)] == ["first", "second"]


class TestLogContext:

    def test_bind_restores_previous(self):
        LogContext.set(actor_id="outer")
        with LogContext.bind(actor_id="inner"):
            assert LogContext.get_all()["actor_id"] == "inner"
        assert LogContext.get_all()["actor_id"] == "outer"

    def test_bind_stringifies_uuids_and_enums(self):
        uid = uuid4()
        with LogContext.bind(actor_id=uid, actor_role=ActorRole.TALENT):
            ctx = LogContext.get_all()
        assert ctx == {"actor_id": str(uid), "actor_role": "talent"}

    def test_bind_ignores_unknown_fields(self):
        with LogContext.bind(unknown="x", payment_id="p-1"):
            assert LogContext.get_all() == {"payment_id": "p-1"}

    def test_clear(self):
        LogContext.set(correlation_id="x", payment_id="p")
        LogContext.clear()
        assert LogContext.get_all() == {}


class TestConfigureLogging:

    def test_idempotent(self):
        root = logging.getLogger("settlement_kernel")
        reset_logging()
        before = list(root.handlers)

        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)

        installed = [h for h in root.handlers if h not in before]
        assert installed == [h1]

    def test_get_logger_returns_child(self):
        assert get_logger("services.payment_processor").name == "settlement_kernel.services.payment_processor"

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("deep.nested.module").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["logger"] == "settlement_kernel.deep.nested.module"
