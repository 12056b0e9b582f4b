"""Tests for WorkOrderSelector and VehicleSelector.cost_breakdown."""

from decimal import Decimal
from uuid import uuid4

import pytest

from dealership_kernel.domain.lifecycle import WorkOrderStatus
from dealership_kernel.exceptions import NotFoundError
from dealership_kernel.selectors.vehicle_selector import VehicleSelector
from dealership_kernel.selectors.work_order_selector import WorkOrderSelector


@pytest.fixture
def vehicle_with_orders(purchase_vehicle, work_orders, second_mechanic, test_actor_id):
    """Purchased vehicle with its inspection order plus one brake job."""
    invoice = purchase_vehicle()
    brake_job = work_orders.create(
        vehicle_id=invoice.vehicle_id,
        description="Replace brake pads",
        mechanic_id=second_mechanic.id,
        labor_cost=Decimal("200000"),
        actor_id=test_actor_id,
    )
    return invoice, brake_job


class TestWorkOrderSelector:
    def test_for_vehicle_in_number_order(self, session, vehicle_with_orders):
        invoice, brake_job = vehicle_with_orders
        numbers = [o.wo_number for o in WorkOrderSelector(session).for_vehicle(invoice.vehicle_id)]
        assert numbers == ["WO-20240115-0001", "WO-20240115-0002"]
        assert numbers[-1] == brake_job.wo_number

    def test_open_for_mechanic(self, session, work_orders, vehicle_with_orders, mechanic, second_mechanic, test_actor_id):
        invoice, brake_job = vehicle_with_orders
        selector = WorkOrderSelector(session)

        assert [o.id for o in selector.open_for_mechanic(mechanic.id)] == [invoice.work_order_id]
        assert [o.id for o in selector.open_for_mechanic(second_mechanic.id)] == [brake_job.id]

        work_orders.cancel(brake_job.id, test_actor_id)
        assert selector.open_for_mechanic(second_mechanic.id) == []

    def test_parts_for_empty_order(self, session, vehicle_with_orders):
        _, brake_job = vehicle_with_orders
        assert WorkOrderSelector(session).parts_for(brake_job.id) == []


class TestCostBreakdown:
    def test_only_completed_orders_count(self, session, work_orders, create_part, vehicle_with_orders, test_actor_id):
        invoice, brake_job = vehicle_with_orders
        part = create_part(cost_price=Decimal("75000"), stock_quantity=4)
        work_orders.use_part(brake_job.id, part.id, 2, test_actor_id)
        work_orders.complete(brake_job.id, test_actor_id)
        work_orders.cancel(invoice.work_order_id, test_actor_id)

        breakdown = VehicleSelector(session).cost_breakdown(invoice.vehicle_id)

        assert breakdown.purchase_price == Decimal("10000000")
        assert breakdown.completed_work_orders == (("WO-20240115-0002", Decimal("350000")),)
        assert breakdown.repair_cost == Decimal("350000")
        assert breakdown.hpp == Decimal("10350000")

    def test_unknown_vehicle(self, session, db_tables):
        with pytest.raises(NotFoundError):
            VehicleSelector(session).cost_breakdown(uuid4())

    def test_statuses_after_completion(self, work_orders, vehicle_with_orders, test_actor_id):
        _, brake_job = vehicle_with_orders
        completed = work_orders.complete(brake_job.id, test_actor_id)
        assert completed.status is WorkOrderStatus.COMPLETED
