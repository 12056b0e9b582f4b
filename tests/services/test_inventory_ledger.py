"""
Tests for InventoryLedger.

Covers:
- Part registration and its validations
- Stock adjustments and the non-negativity rule
- Consumption for work orders with a frozen unit cost
- The stock movement ledger
- Low stock detection, ordering and the LowStockDetected event
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from dealership_kernel.domain.events import LowStockDetected
from dealership_kernel.domain.lifecycle import MovementType, ReferenceType
from dealership_kernel.exceptions import (
    DuplicateValueError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from dealership_kernel.models.spare_part import SparePart, StockMovement
from dealership_kernel.selectors.inventory_selector import InventorySelector
from dealership_kernel.services.event_sink import pending_events


class TestRegisterPart:
    def test_generates_part_code(self, create_part):
        part = create_part()
        assert part.part_code == "SP-000001"
        assert create_part(name="Air Filter").part_code == "SP-000002"

    def test_explicit_part_code_kept(self, create_part):
        part = create_part(part_code="OIL-01")
        assert part.part_code == "OIL-01"

    def test_defaults(self, inventory, test_actor_id):
        part = inventory.register_part(
            name="Spark Plug",
            cost_price=Decimal("25000"),
            selling_price=Decimal("40000"),
            actor_id=test_actor_id,
        )
        assert part.stock_quantity == 0
        assert part.min_stock_level == 5
        assert part.unit == "pcs"
        assert part.barcode is None

    def test_opening_stock_is_a_movement(self, session, create_part):
        part = create_part(stock_quantity=10)
        movements = InventorySelector(session).movements_for(part.id)
        assert len(movements) == 1
        assert movements[0].movement_type is MovementType.IN
        assert movements[0].quantity == 10
        assert movements[0].quantity_after == 10
        assert movements[0].reference_type is ReferenceType.ADJUSTMENT

    def test_no_opening_stock_no_movement(self, session, create_part):
        part = create_part(stock_quantity=0)
        assert InventorySelector(session).movements_for(part.id) == []

    def test_prices_rounded(self, create_part):
        part = create_part(cost_price=Decimal("1000.005"))
        assert part.cost_price == Decimal("1000.01")

    @pytest.mark.parametrize(
        "field, kwargs",
        [
            ("name", {"name": "  "}),
            ("cost_price", {"cost_price": Decimal("-1")}),
            ("selling_price", {"selling_price": Decimal("-0.01")}),
            ("stock_quantity", {"stock_quantity": -1}),
            ("min_stock_level", {"min_stock_level": -1}),
            ("barcode", {"barcode": "AB"}),
            ("unit", {"unit": "x" * 21}),
        ],
    )
    def test_validation(self, create_part, field, kwargs):
        with pytest.raises(ValidationError) as exc_info:
            create_part(**kwargs)
        assert exc_info.value.field == field

    def test_duplicate_barcode(self, create_part):
        create_part(barcode="8991234567890")
        with pytest.raises(DuplicateValueError) as exc_info:
            create_part(name="Other", barcode="8991234567890")
        assert exc_info.value.field == "barcode"
        assert exc_info.value.code == "DUPLICATE_VALUE"

    def test_duplicate_part_code(self, create_part):
        create_part(part_code="BRK-01")
        with pytest.raises(DuplicateValueError):
            create_part(name="Brake Pad", part_code="BRK-01")

    def test_lookup_by_barcode(self, inventory, create_part):
        part = create_part(barcode="8991234567890")
        assert inventory.get_by_barcode("8991234567890").id == part.id

    def test_lookup_unknown_barcode(self, inventory):
        with pytest.raises(NotFoundError):
            inventory.get_by_barcode("000")


class TestAdjustStock:
    def test_increment(self, inventory, create_part, test_actor_id):
        part = create_part(stock_quantity=3)
        assert inventory.adjust_stock(part.id, 7, "restock", test_actor_id) == 10
        assert inventory.get(part.id).stock_quantity == 10

    def test_decrement_to_zero(self, inventory, create_part, test_actor_id):
        part = create_part(stock_quantity=3)
        assert inventory.adjust_stock(part.id, -3, "damaged", test_actor_id) == 0

    def test_decrement_below_zero_rejected(self, session, inventory, create_part, test_actor_id):
        part = create_part(stock_quantity=3)

        with pytest.raises(InsufficientStockError) as exc_info:
            inventory.adjust_stock(part.id, -4, "shrinkage", test_actor_id)

        assert exc_info.value.available == 3
        assert exc_info.value.requested == 4
        assert exc_info.value.code == "INSUFFICIENT_STOCK"
        assert inventory.get(part.id).stock_quantity == 3
        assert len(InventorySelector(session).movements_for(part.id)) == 1

    def test_zero_delta_rejected(self, inventory, create_part, test_actor_id):
        part = create_part()
        with pytest.raises(ValidationError):
            inventory.adjust_stock(part.id, 0, "noop", test_actor_id)

    def test_unknown_part(self, inventory, test_actor_id):
        with pytest.raises(NotFoundError) as exc_info:
            inventory.adjust_stock(uuid4(), 1, "restock", test_actor_id)
        assert exc_info.value.entity_type == "SparePart"

    def test_deleted_part_not_adjustable(self, inventory, create_part, test_actor_id):
        part = create_part()
        inventory.soft_delete(part.id, test_actor_id)
        with pytest.raises(NotFoundError):
            inventory.adjust_stock(part.id, 1, "restock", test_actor_id)

    def test_each_change_writes_one_movement(self, session, inventory, create_part, test_actor_id):
        part = create_part(stock_quantity=10)
        inventory.adjust_stock(part.id, 5, "restock", test_actor_id)
        inventory.adjust_stock(part.id, -2, "damaged", test_actor_id)

        movements = InventorySelector(session).movements_for(part.id)
        assert [(m.movement_type, m.quantity, m.quantity_after) for m in movements] == [
            (MovementType.IN, 10, 10),
            (MovementType.IN, 5, 15),
            (MovementType.OUT, 2, 13),
        ]
        assert movements[-1].notes == "damaged"

    def test_movement_values_at_cost(self, session, inventory, create_part, test_actor_id):
        part = create_part(cost_price=Decimal("50000"), stock_quantity=0)
        inventory.adjust_stock(part.id, 4, "restock", test_actor_id)
        movement = InventorySelector(session).movements_for(part.id)[0]
        assert movement.unit_cost == Decimal("50000")
        assert movement.total_value == Decimal("200000")

    def test_movement_sequence_is_global(self, session, inventory, create_part, test_actor_id):
        a = create_part(name="A", stock_quantity=1)
        b = create_part(name="B", stock_quantity=1)
        inventory.adjust_stock(a.id, 1, "restock", test_actor_id)

        sequences = session.execute(
            select(StockMovement.sequence).order_by(StockMovement.sequence)
        ).scalars().all()
        assert sequences == [1, 2, 3]
        assert InventorySelector(session).movements_for(b.id)[0].quantity_after == 1


class TestConsumeForWorkOrder:
    def test_returns_unit_cost_and_remaining(self, inventory, create_part, test_actor_id):
        part = create_part(cost_price=Decimal("50000"), stock_quantity=10)
        work_order_id = uuid4()

        consumption = inventory.consume_for_work_order(part.id, 2, work_order_id, test_actor_id)

        assert consumption.unit_cost == Decimal("50000")
        assert consumption.quantity == 2
        assert consumption.remaining_quantity == 8

    def test_movement_references_work_order(self, session, inventory, create_part, test_actor_id):
        part = create_part(stock_quantity=10)
        work_order_id = uuid4()
        inventory.consume_for_work_order(part.id, 2, work_order_id, test_actor_id)

        movement = InventorySelector(session).movements_for(part.id)[-1]
        assert movement.reference_type is ReferenceType.WORK_ORDER
        assert movement.reference_id == work_order_id
        assert movement.movement_type is MovementType.OUT

    def test_unit_cost_is_price_at_time_of_use(self, inventory, create_part, test_actor_id):
        part = create_part(cost_price=Decimal("50000"), stock_quantity=10)
        first = inventory.consume_for_work_order(part.id, 1, uuid4(), test_actor_id)
        inventory.update_prices(part.id, Decimal("65000"), Decimal("90000"), test_actor_id)
        second = inventory.consume_for_work_order(part.id, 1, uuid4(), test_actor_id)

        assert first.unit_cost == Decimal("50000")
        assert second.unit_cost == Decimal("65000")

    def test_insufficient(self, inventory, create_part, test_actor_id):
        part = create_part(stock_quantity=8)
        with pytest.raises(InsufficientStockError):
            inventory.consume_for_work_order(part.id, 20, uuid4(), test_actor_id)
        assert inventory.get(part.id).stock_quantity == 8

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_quantity_must_be_positive(self, inventory, create_part, test_actor_id, quantity):
        part = create_part()
        with pytest.raises(ValidationError):
            inventory.consume_for_work_order(part.id, quantity, uuid4(), test_actor_id)


class TestLowStock:
    def test_threshold_is_inclusive(self, inventory, create_part):
        at_min = create_part(name="At Min", stock_quantity=5, min_stock_level=5)
        create_part(name="Above Min", stock_quantity=6, min_stock_level=5)

        low = inventory.low_stock()
        assert [p.id for p in low] == [at_min.id]
        assert low[0].is_low_stock

    def test_most_depleted_first(self, inventory, create_part):
        half = create_part(name="Half", stock_quantity=5, min_stock_level=10)
        empty = create_part(name="Empty", stock_quantity=0, min_stock_level=3)
        full = create_part(name="Full", stock_quantity=4, min_stock_level=4)
        tenth = create_part(name="Tenth", stock_quantity=1, min_stock_level=10)

        assert [p.id for p in inventory.low_stock()] == [empty.id, tenth.id, half.id, full.id]

    def test_ties_ordered_by_name(self, inventory, create_part):
        b = create_part(name="Brake Pad", stock_quantity=2, min_stock_level=4)
        a = create_part(name="Air Filter", stock_quantity=1, min_stock_level=2)

        assert [p.id for p in inventory.low_stock()] == [a.id, b.id]

    def test_zero_minimum(self, inventory, create_part):
        zero = create_part(name="Zero Min", stock_quantity=0, min_stock_level=0)
        create_part(name="Stocked Zero Min", stock_quantity=1, min_stock_level=0)

        assert [p.id for p in inventory.low_stock()] == [zero.id]

    def test_deleted_parts_excluded(self, inventory, create_part, test_actor_id):
        part = create_part(stock_quantity=0)
        inventory.soft_delete(part.id, test_actor_id)
        assert inventory.low_stock() == []

    def test_crossing_threshold_records_event(self, session, inventory, create_part, test_actor_id):
        part = create_part(stock_quantity=6, min_stock_level=5)
        inventory.adjust_stock(part.id, -1, "used", test_actor_id)

        events = [e for e in pending_events(session) if isinstance(e, LowStockDetected)]
        assert len(events) == 1
        assert events[0].spare_part_id == part.id
        assert events[0].stock_quantity == 5
        assert events[0].min_stock_level == 5

    def test_increment_records_no_event(self, session, inventory, create_part, test_actor_id):
        part = create_part(stock_quantity=0, min_stock_level=5)
        inventory.adjust_stock(part.id, 1, "restock", test_actor_id)

        assert not [e for e in pending_events(session) if isinstance(e, LowStockDetected)]

    def test_low_stock_logged(self, inventory, create_part, test_actor_id, captured_logs):
        part = create_part(stock_quantity=6, min_stock_level=5)
        inventory.adjust_stock(part.id, -2, "used", test_actor_id)

        records = [r for r in captured_logs() if r["message"] == "low_stock_detected"]
        assert len(records) == 1
        assert records[0]["spare_part_id"] == str(part.id)
        assert records[0]["stock_quantity"] == 4


class TestPartMaintenance:
    def test_update_prices(self, session, inventory, create_part, test_actor_id):
        part = create_part()
        updated = inventory.update_prices(part.id, Decimal("55000"), Decimal("80000"), test_actor_id)
        assert updated.cost_price == Decimal("55000")
        assert updated.selling_price == Decimal("80000")
        assert session.get(SparePart, part.id).updated_by_id == test_actor_id

    def test_soft_delete_hides_part(self, inventory, create_part, test_actor_id):
        part = create_part()
        inventory.soft_delete(part.id, test_actor_id)
        with pytest.raises(NotFoundError):
            inventory.get(part.id)

    def test_deleted_barcode_still_reserved(self, inventory, create_part, test_actor_id):
        part = create_part(barcode="BC-001")
        inventory.soft_delete(part.id, test_actor_id)
        with pytest.raises(DuplicateValueError):
            create_part(name="Replacement", barcode="BC-001")

    def test_list_parts_search(self, session, create_part):
        create_part(name="Oil Filter")
        create_part(name="Brake Pad")
        names = [p.name for p in InventorySelector(session).list_parts(search="filter")]
        assert names == ["Oil Filter"]
