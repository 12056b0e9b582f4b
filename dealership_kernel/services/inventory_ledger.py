"""
InventoryLedger -- spare part catalogue and atomic stock movements.

Responsibility:
    Owns every change to ``SparePart.stock_quantity``.  A change is a single
    locked read-modify-write on the part row plus one append-only
    ``StockMovement`` row, both inside the caller's transaction.

Architecture position:
    Kernel > Services.  Called by WorkOrderEngine (part consumption) and by
    back-office callers (registration, manual adjustments, price updates).

Invariants enforced:
    - stock_quantity >= 0 after every operation.  The check runs against
      the quantity read under the row lock, so two concurrent consumers of
      the last unit cannot both succeed.
    - Each quantity change writes exactly one StockMovement carrying the
      quantity after the change.
    - Low stock (stock_quantity <= min_stock_level) is derived, never stored.

Failure modes:
    - InsufficientStockError when a decrement would go below zero.
    - ValidationError for zero deltas, negative prices and malformed input.
    - DuplicateValueError for a reused part code or barcode.
    - NotFoundError for unknown or soft-deleted parts.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from dealership_kernel.db.types import ZERO, round_money, to_money
from dealership_kernel.domain.cost_accounting import compute_line_cost
from dealership_kernel.domain.dtos import SparePartInfo, StockConsumption
from dealership_kernel.domain.events import LowStockDetected
from dealership_kernel.domain.lifecycle import MovementType, ReferenceType
from dealership_kernel.exceptions import (
    DuplicateValueError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from dealership_kernel.logging_config import get_logger
from dealership_kernel.models.spare_part import SparePart, StockMovement
from dealership_kernel.selectors.inventory_selector import InventorySelector, part_to_info
from dealership_kernel.services.base import BaseService
from dealership_kernel.services.event_sink import record_event
from dealership_kernel.services.sequence_service import SequenceScope, SequenceService

logger = get_logger("services.inventory")

MAX_UNIT_LENGTH = 20
STOCK_MOVEMENT_SEQUENCE = "stock_movement"


def _non_negative_money(field: str, value: Decimal | int | str) -> Decimal:
    try:
        amount = to_money(value)
    except ValueError as exc:
        raise ValidationError(field, str(exc)) from exc
    if amount < ZERO:
        raise ValidationError(field, f"must not be negative, got {amount}")
    return round_money(amount)


class InventoryLedger(BaseService[SparePart]):
    """
    Service for spare parts and their stock.

    Contract:
        Every public method flushes but never commits.  Methods returning
        data return frozen DTOs, never ORM rows.

    Guarantees:
        - ``adjust_stock`` and ``consume_for_work_order`` are the only code
          paths that change stock_quantity.
        - The unit cost returned by ``consume_for_work_order`` is the part's
          cost_price read under the same lock as the decrement.
    """

    # Catalogue

    def register_part(
        self,
        name: str,
        cost_price: Decimal,
        selling_price: Decimal,
        actor_id: UUID,
        stock_quantity: int = 0,
        min_stock_level: int | None = None,
        part_code: str | None = None,
        barcode: str | None = None,
        brand: str | None = None,
        category: str | None = None,
        description: str | None = None,
        unit: str | None = None,
    ) -> SparePartInfo:
        """
        Add a spare part to the catalogue.

        A part code is generated (``SP-000001``) when none is given.  Opening
        stock, if any, is booked as an adjustment movement.

        Raises:
            ValidationError: Blank name, negative price or quantity, barcode
                too short, unit too long.
            DuplicateValueError: Part code or barcode already used.
        """
        if not name or not name.strip():
            raise ValidationError("name", "is required")
        cost = _non_negative_money("cost_price", cost_price)
        price = _non_negative_money("selling_price", selling_price)
        if stock_quantity < 0:
            raise ValidationError("stock_quantity", f"must not be negative, got {stock_quantity}")
        if min_stock_level is None:
            min_stock_level = self.settings.default_min_stock_level
        if min_stock_level < 0:
            raise ValidationError("min_stock_level", f"must not be negative, got {min_stock_level}")
        unit = (unit or self.settings.default_unit).strip()
        if len(unit) > MAX_UNIT_LENGTH:
            raise ValidationError("unit", f"must be at most {MAX_UNIT_LENGTH} characters")

        if barcode is not None:
            barcode = barcode.strip() or None
        if barcode is not None:
            if len(barcode) < self.settings.barcode_min_length:
                raise ValidationError(
                    "barcode",
                    f"must be at least {self.settings.barcode_min_length} characters",
                )
            if self._exists(SparePart.barcode == barcode):
                raise DuplicateValueError("barcode", barcode)

        if part_code is not None:
            part_code = part_code.strip() or None
        if part_code is None:
            numbering = self.settings.numbering
            part_code = SequenceService(self.session).next_identifier(
                numbering.spare_part_prefix,
                SequenceScope.ALL_TIME,
                numbering.spare_part_width,
            )
        if self._exists(SparePart.part_code == part_code):
            raise DuplicateValueError("part_code", part_code)

        part = SparePart(
            part_code=part_code,
            barcode=barcode,
            name=name.strip(),
            brand=brand,
            category=category,
            description=description,
            cost_price=cost,
            selling_price=price,
            stock_quantity=0,
            min_stock_level=min_stock_level,
            unit=unit,
            created_by_id=actor_id,
        )
        self.session.add(part)
        self.session.flush()

        logger.info(
            "spare_part_registered",
            extra={
                "spare_part_id": str(part.id),
                "part_code": part_code,
                "opening_stock": stock_quantity,
            },
        )

        if stock_quantity > 0:
            self._apply_delta(
                part,
                stock_quantity,
                reason="opening stock",
                actor_id=actor_id,
                reference_type=ReferenceType.ADJUSTMENT,
                reference_id=None,
            )

        return part_to_info(part)

    def update_prices(
        self,
        part_id: UUID,
        cost_price: Decimal,
        selling_price: Decimal,
        actor_id: UUID,
    ) -> SparePartInfo:
        """
        Change a part's prices.

        Part usage already recorded keeps the unit cost it was booked at.
        """
        cost = _non_negative_money("cost_price", cost_price)
        price = _non_negative_money("selling_price", selling_price)
        part = self._get_for_update(SparePart, part_id)
        old_cost = part.cost_price
        part.cost_price = cost
        part.selling_price = price
        part.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "spare_part_prices_updated",
            extra={
                "spare_part_id": str(part_id),
                "old_cost_price": old_cost,
                "cost_price": cost,
                "selling_price": price,
            },
        )
        return part_to_info(part)

    def soft_delete(self, part_id: UUID, actor_id: UUID) -> None:
        part = self._get_for_update(SparePart, part_id)
        part.mark_deleted(actor_id, self.clock.now())
        self.session.flush()
        logger.info("spare_part_deleted", extra={"spare_part_id": str(part_id)})

    def get(self, part_id: UUID) -> SparePartInfo:
        return part_to_info(self._get_live(SparePart, part_id))

    def get_by_barcode(self, barcode: str) -> SparePartInfo:
        part = self.session.execute(
            select(SparePart).where(SparePart.barcode == barcode, SparePart.not_deleted())
        ).scalar_one_or_none()
        if part is None:
            raise NotFoundError("SparePart", barcode)
        return part_to_info(part)

    # Stock

    def adjust_stock(
        self,
        part_id: UUID,
        delta: int,
        reason: str,
        actor_id: UUID,
        reference_type: ReferenceType = ReferenceType.ADJUSTMENT,
        reference_id: UUID | None = None,
    ) -> int:
        """
        Atomically add ``delta`` (positive or negative) to a part's stock.

        Preconditions:
            - ``delta`` != 0.

        Postconditions:
            - stock_quantity == old + delta >= 0, and one StockMovement
              row records the change.

        Returns:
            The new stock quantity.

        Raises:
            InsufficientStockError: If old + delta < 0.  Nothing changes.
        """
        if delta == 0:
            raise ValidationError("delta", "must not be zero")
        part = self._get_for_update(SparePart, part_id)
        self._apply_delta(part, delta, reason, actor_id, reference_type, reference_id)
        return part.stock_quantity

    def consume_for_work_order(
        self,
        part_id: UUID,
        quantity: int,
        work_order_id: UUID,
        actor_id: UUID,
    ) -> StockConsumption:
        """
        Take ``quantity`` units out of stock for a work order.

        Returns:
            The unit cost at the moment of use and the remaining quantity.
        """
        if quantity <= 0:
            raise ValidationError("quantity", f"must be positive, got {quantity}")
        part = self._get_for_update(SparePart, part_id)
        unit_cost = part.cost_price
        self._apply_delta(
            part,
            -quantity,
            reason=f"used in work order {work_order_id}",
            actor_id=actor_id,
            reference_type=ReferenceType.WORK_ORDER,
            reference_id=work_order_id,
        )
        return StockConsumption(
            spare_part_id=part.id,
            quantity=quantity,
            unit_cost=unit_cost,
            remaining_quantity=part.stock_quantity,
        )

    def low_stock(self) -> list[SparePartInfo]:
        """Parts at or below their minimum level, most depleted first."""
        return InventorySelector(self.session).low_stock()

    # Internals

    def _apply_delta(
        self,
        part: SparePart,
        delta: int,
        reason: str,
        actor_id: UUID,
        reference_type: ReferenceType,
        reference_id: UUID | None,
    ) -> None:
        """Apply a delta to a part already locked by this transaction."""
        available = part.stock_quantity
        new_quantity = available + delta
        if new_quantity < 0:
            logger.warning(
                "stock_adjustment_rejected",
                extra={
                    "spare_part_id": str(part.id),
                    "available": available,
                    "requested": -delta,
                },
            )
            raise InsufficientStockError(str(part.id), available, -delta)

        part.stock_quantity = new_quantity
        part.updated_by_id = actor_id
        quantity = abs(delta)
        self.session.add(
            StockMovement(
                sequence=SequenceService(self.session).next_value(STOCK_MOVEMENT_SEQUENCE),
                spare_part_id=part.id,
                movement_type=MovementType.IN if delta > 0 else MovementType.OUT,
                quantity=quantity,
                quantity_after=new_quantity,
                reference_type=reference_type,
                reference_id=reference_id,
                unit_cost=part.cost_price,
                total_value=compute_line_cost(part.cost_price, quantity),
                notes=reason,
                created_by_id=actor_id,
            )
        )
        self.session.flush()

        logger.info(
            "stock_adjusted",
            extra={
                "spare_part_id": str(part.id),
                "part_code": part.part_code,
                "delta": delta,
                "quantity_after": new_quantity,
                "reference_type": reference_type.value,
            },
        )

        if delta < 0 and part.is_low_stock:
            logger.warning(
                "low_stock_detected",
                extra={
                    "spare_part_id": str(part.id),
                    "stock_quantity": new_quantity,
                    "min_stock_level": part.min_stock_level,
                },
            )
            record_event(
                self.session,
                LowStockDetected(
                    occurred_at=self.clock.now(),
                    spare_part_id=part.id,
                    part_code=part.part_code,
                    name=part.name,
                    stock_quantity=new_quantity,
                    min_stock_level=part.min_stock_level,
                ),
            )

    def _exists(self, criterion) -> bool:
        return (
            self.session.execute(select(SparePart.id).where(criterion).limit(1)).first()
            is not None
        )
