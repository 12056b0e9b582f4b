"""
Module: dealership_kernel.selectors.inventory_selector
Responsibility: Read-only queries over spare parts and the stock movement
    ledger.
Architecture position: Kernel > Selectors.

Low stock ordering:
    Parts with stock_quantity <= min_stock_level, sorted by the ratio
    stock_quantity / min_stock_level ascending, then by name.  A part with
    min_stock_level == 0 can only be low at zero stock and ranks with ratio 0.
    The ratio is compared as an exact fraction.
"""

from fractions import Fraction
from uuid import UUID

from sqlalchemy import select

from dealership_kernel.domain.dtos import SparePartInfo, StockMovementInfo
from dealership_kernel.models.spare_part import SparePart, StockMovement
from dealership_kernel.selectors.base import BaseSelector


def part_to_info(part: SparePart) -> SparePartInfo:
    return SparePartInfo(
        id=part.id,
        part_code=part.part_code,
        barcode=part.barcode,
        name=part.name,
        cost_price=part.cost_price,
        selling_price=part.selling_price,
        stock_quantity=part.stock_quantity,
        min_stock_level=part.min_stock_level,
        unit=part.unit,
    )


def movement_to_info(movement: StockMovement) -> StockMovementInfo:
    return StockMovementInfo(
        id=movement.id,
        spare_part_id=movement.spare_part_id,
        movement_type=movement.movement_type,
        quantity=movement.quantity,
        quantity_after=movement.quantity_after,
        reference_type=movement.reference_type,
        reference_id=movement.reference_id,
        unit_cost=movement.unit_cost,
        total_value=movement.total_value,
        notes=movement.notes,
    )


def _depletion_ratio(part: SparePart) -> Fraction:
    if part.min_stock_level == 0:
        return Fraction(0)
    return Fraction(part.stock_quantity, part.min_stock_level)


class InventorySelector(BaseSelector[SparePart]):
    """Selector for spare part stock views."""

    def low_stock(self) -> list[SparePartInfo]:
        parts = self.session.execute(
            select(SparePart).where(
                SparePart.not_deleted(),
                SparePart.stock_quantity <= SparePart.min_stock_level,
            )
        ).scalars().all()
        ordered = sorted(parts, key=lambda p: (_depletion_ratio(p), p.name))
        return [part_to_info(p) for p in ordered]

    def list_parts(self, search: str | None = None) -> list[SparePartInfo]:
        """Live parts ordered by name, optionally filtered by name or code."""
        stmt = select(SparePart).where(SparePart.not_deleted())
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                SparePart.name.ilike(pattern) | SparePart.part_code.ilike(pattern)
            )
        parts = self.session.execute(stmt.order_by(SparePart.name)).scalars().all()
        return [part_to_info(p) for p in parts]

    def movements_for(self, part_id: UUID) -> list[StockMovementInfo]:
        """Stock movements of one part, oldest first."""
        movements = self.session.execute(
            select(StockMovement)
            .where(StockMovement.spare_part_id == part_id)
            .order_by(StockMovement.sequence)
        ).scalars().all()
        return [movement_to_info(m) for m in movements]
