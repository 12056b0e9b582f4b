"""
Structured logging (dealership_kernel/logging_config.py).

Verifies:
- One JSON object per line with ts/level/logger/message
- Money, enums, dates and UUIDs in extra= fields serialize to strings
- Kernel exceptions contribute exc_code and their public attributes
- LogContext fields ride on every line while bound and are restored after
- configure_logging only takes effect once until reset_logging
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from dealership_kernel.domain.lifecycle import VehicleStatus
from dealership_kernel.exceptions import InsufficientStockError, VehicleNotAvailableError
from dealership_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Start each test unconfigured, then restore the suite's config."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


@pytest.fixture
def log_lines():
    """Configure the kernel logger onto a buffer; returns a reader of parsed lines."""
    stream = StringIO()
    configure_logging(handler=logging.StreamHandler(stream), level=logging.INFO)

    def _read() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    return _read


class TestLineFormat:
    def test_envelope(self, log_lines):
        get_logger("services.inventory").info("stock_adjusted")

        [line] = log_lines()
        assert line["level"] == "INFO"
        assert line["message"] == "stock_adjusted"
        assert line["logger"] == "dealership_kernel.services.inventory"
        assert line["ts"].endswith("+00:00")

    def test_extra_values_serialized(self, log_lines):
        part_id = uuid4()
        get_logger("test").info(
            "sale_recorded",
            extra={
                "final_price": Decimal("11400000.00"),
                "vehicle_status": VehicleStatus.SOLD,
                "sold_date": date(2024, 1, 20),
                "spare_part_id": part_id,
                "quantity": 2,
            },
        )

        [line] = log_lines()
        assert line["final_price"] == "11400000.00"
        assert line["vehicle_status"] == "sold"
        assert line["sold_date"] == "2024-01-20"
        assert line["spare_part_id"] == str(part_id)
        assert line["quantity"] == 2

    def test_below_level_dropped(self, log_lines):
        logger = get_logger("test")
        logger.debug("noise")
        logger.warning("sale_rejected")
        assert [line["message"] for line in log_lines()] == ["sale_rejected"]

    def test_formatter_usable_standalone(self):
        stream = StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(StructuredFormatter())
        record = logging.LogRecord("other", logging.ERROR, __file__, 1, "plain %s", ("text",), None)
        handler.emit(record)

        line = json.loads(stream.getvalue())
        assert line["message"] == "plain text"
        assert line["level"] == "ERROR"


class TestExceptionFields:
    def test_plain_exception(self, log_lines):
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").exception("failed")

        [line] = log_lines()
        assert line["exc_type"] == "ValueError"
        assert line["exc_message"] == "boom"
        assert "exc_code" not in line
        assert "Traceback" in line["traceback"]

    def test_insufficient_stock_attributes(self, log_lines):
        try:
            raise InsufficientStockError("part-1", 8, 20)
        except InsufficientStockError:
            get_logger("test").error("use_part_rejected", exc_info=True)

        [line] = log_lines()
        assert line["exc_code"] == "INSUFFICIENT_STOCK"
        assert line["exc_available"] == 8
        assert line["exc_requested"] == 20

    def test_vehicle_not_available_code(self, log_lines):
        try:
            raise VehicleNotAvailableError("veh-1", "in_repair")
        except VehicleNotAvailableError:
            get_logger("test").warning("sale_rejected", exc_info=True)

        [line] = log_lines()
        assert line["exc_type"] == "VehicleNotAvailableError"
        assert line["exc_code"] == VehicleNotAvailableError.code


class TestLogContext:
    def test_bound_fields_on_every_line(self, log_lines):
        vehicle_id = uuid4()
        with LogContext.bind(vehicle_id=vehicle_id, invoice_number="INV-20240115-0001"):
            get_logger("test").info("first")
            get_logger("test").info("second")
        get_logger("test").info("after")

        first, second, after = log_lines()
        for line in (first, second):
            assert line["vehicle_id"] == str(vehicle_id)
            assert line["invoice_number"] == "INV-20240115-0001"
        assert "vehicle_id" not in after
        assert "invoice_number" not in after

    def test_context_wins_over_extra(self, log_lines):
        with LogContext.bind(work_order_id="wo-bound"):
            get_logger("test").info("msg", extra={"work_order_id": "wo-extra"})
        assert log_lines()[0]["work_order_id"] == "wo-bound"

    def test_nested_bind_restores_outer(self):
        LogContext.set(work_order_id="outer", actor_id="admin")
        with LogContext.bind(work_order_id="inner"):
            assert LogContext.get_all() == {"work_order_id": "inner", "actor_id": "admin"}
        assert LogContext.get_all() == {"work_order_id": "outer", "actor_id": "admin"}

    def test_bind_skips_none(self):
        with LogContext.bind(vehicle_id=None, correlation_id="c-1") as ctx:
            assert ctx.get_all() == {"correlation_id": "c-1"}

    def test_bind_restores_after_exception(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(actor_id="cashier"):
                raise RuntimeError
        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            LogContext.set(customer_id="c")
        with pytest.raises(TypeError):
            with LogContext.bind(customer_id="c"):
                pass

    def test_clear(self):
        LogContext.set(correlation_id="x", invoice_number="PUR-20240115-0001")
        LogContext.clear()
        assert LogContext.get_all() == {}


class TestConfigureLogging:
    def test_only_first_call_applies(self):
        first = logging.StreamHandler(StringIO())
        second = logging.StreamHandler(StringIO())
        configure_logging(handler=first)
        configure_logging(handler=second)

        handlers = logging.getLogger("dealership_kernel").handlers
        assert first in handlers
        assert second not in handlers

    def test_level_by_name(self):
        configure_logging(handler=logging.StreamHandler(StringIO()), level="WARNING")
        assert logging.getLogger("dealership_kernel").level == logging.WARNING

    def test_does_not_propagate(self):
        configure_logging(handler=logging.StreamHandler(StringIO()))
        assert logging.getLogger("dealership_kernel").propagate is False

    def test_reset_detaches_handlers(self):
        handler = logging.StreamHandler(StringIO())
        configure_logging(handler=handler)
        reset_logging()
        assert handler not in logging.getLogger("dealership_kernel").handlers
