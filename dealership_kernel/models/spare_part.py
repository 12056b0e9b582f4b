"""
Module: dealership_kernel.models.spare_part
Responsibility: ORM persistence for spare parts and the append-only stock
    movement ledger.
Architecture position: Kernel > Models.  May import from db/ and domain/lifecycle.

Invariants enforced:
    - stock_quantity >= 0 at all times (CHECK constraint plus InventoryLedger's
      locked read-modify-write).
    - Low stock is derived (stock_quantity <= min_stock_level), never stored.
    - Every quantity change has exactly one StockMovement row written in the
      same transaction; movements are immutable (db/immutability.py).
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from dealership_kernel.db.base import SoftDeleteMixin, TrackedBase, UUIDString
from dealership_kernel.db.types import status_enum
from dealership_kernel.domain.lifecycle import MovementType, ReferenceType


class SparePart(SoftDeleteMixin, TrackedBase):
    """A stocked spare part."""

    __tablename__ = "spare_parts"

    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_spare_part_stock_non_negative"),
        CheckConstraint("min_stock_level >= 0", name="ck_spare_part_min_stock_non_negative"),
    )

    part_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    barcode: Mapped[str | None] = mapped_column(String(100), nullable=True, unique=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    brand: Mapped[str | None] = mapped_column(String(100), nullable=True)

    category: Mapped[str | None] = mapped_column(String(100), nullable=True)

    description: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    cost_price: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    selling_price: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    stock_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    min_stock_level: Mapped[int] = mapped_column(Integer, default=5, nullable=False)

    unit: Mapped[str] = mapped_column(String(20), default="pcs", nullable=False)

    def __repr__(self) -> str:
        return f"<SparePart {self.part_code}: {self.stock_quantity}>"

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.min_stock_level


class StockMovement(TrackedBase):
    """Append-only record of one stock quantity change."""

    __tablename__ = "stock_movements"

    __table_args__ = (
        Index("idx_stock_movement_part", "spare_part_id"),
        Index("idx_stock_movement_reference", "reference_type", "reference_id"),
    )

    # Global ordering of movements, from the "stock_movement" counter
    sequence: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)

    spare_part_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("spare_parts.id"),
        nullable=False,
    )

    movement_type: Mapped[MovementType] = mapped_column(
        status_enum(MovementType),
        nullable=False,
    )

    # Always positive; direction is movement_type
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    quantity_after: Mapped[int] = mapped_column(Integer, nullable=False)

    reference_type: Mapped[ReferenceType] = mapped_column(
        status_enum(ReferenceType),
        nullable=False,
    )

    reference_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    unit_cost: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    total_value: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    def __repr__(self) -> str:
        return f"<StockMovement {self.movement_type.value} {self.quantity}>"
