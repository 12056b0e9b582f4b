"""Tests for turning a DealershipConfig into kernel settings."""
from __future__ import annotations

from decimal import Decimal

import pytest

from dealership_config import bridges
from dealership_config.schema import DealershipConfig, NumberingConfig, WorkflowConfig
from dealership_kernel.domain.settings import DEFAULT_SETTINGS
from dealership_kernel.exceptions import InvalidTransitionError
from dealership_kernel.services.work_order_engine import WorkOrderEngine


class TestBuildKernelSettings:
    def test_defaults_match_kernel_defaults(self):
        assert bridges.build_kernel_settings(DealershipConfig()) == DEFAULT_SETTINGS

    def test_numbering_and_workflow_mapped(self):
        config = DealershipConfig(
            numbering=NumberingConfig(sales_invoice_prefix="FJ", sales_invoice_width=5),
            workflow=WorkflowConfig(allow_complete_from_pending=False),
        )
        settings = bridges.build_kernel_settings(config)
        assert settings.numbering.sales_invoice_prefix == "FJ"
        assert settings.numbering.sales_invoice_width == 5
        assert settings.allow_complete_from_pending is False


class TestBootstrap:
    def test_wires_logging_engine_and_guards(self, monkeypatch):
        calls = {}
        monkeypatch.setattr(
            bridges, "configure_logging", lambda **kw: calls.setdefault("logging", kw)
        )
        monkeypatch.setattr(
            bridges,
            "init_engine_from_url",
            lambda url, **kw: calls.setdefault("engine", (url, kw)),
        )
        monkeypatch.setattr(
            bridges,
            "register_immutability_listeners",
            lambda: calls.setdefault("guards", True),
        )
        config = DealershipConfig(checksum="abc123")

        settings = bridges.bootstrap(config)

        assert settings == DEFAULT_SETTINGS
        assert calls["logging"] == {"level": "INFO"}
        url, engine_kwargs = calls["engine"]
        assert url == "sqlite:///dealership.db"
        assert engine_kwargs["pool_size"] == 20
        assert engine_kwargs["sqlite_busy_timeout"] == 30
        assert calls["guards"] is True


class TestSettingsReachServices:
    def test_strict_workflow_from_config(self, session, clock, vehicles, mechanic, test_actor_id):
        settings = bridges.build_kernel_settings(
            DealershipConfig(workflow=WorkflowConfig(allow_complete_from_pending=False))
        )
        engine = WorkOrderEngine(session, clock, settings)
        vehicle = vehicles.register_vehicle(
            brand="Nissan", model="Livina", year=2015, actor_id=test_actor_id
        )
        order = engine.create(
            vehicle_id=vehicle.id,
            description="Check suspension",
            mechanic_id=mechanic.id,
            labor_cost=Decimal("0"),
            actor_id=test_actor_id,
        )
        with pytest.raises(InvalidTransitionError):
            engine.complete(order.id, test_actor_id)
