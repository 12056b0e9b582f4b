"""
Module: dealership_kernel.models.work_order
Responsibility: ORM persistence for repair work orders and the spare-part
    consumption rows recorded against them.
Architecture position: Kernel > Models.  May import from db/ and domain/lifecycle.

Invariants enforced (by WorkOrderEngine, stored here):
    - completed_at is set iff status == COMPLETED.
    - progress_percentage == 100 when status == COMPLETED.
    - total_cost == total_parts_cost + labor_cost.
    - total_parts_cost == sum of total_cost over non-deleted WorkOrderPart rows.
    - WorkOrderPart rows are immutable once written, except for soft-delete
      (see db/immutability.py).
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from dealership_kernel.db.base import SoftDeleteMixin, TrackedBase, UUIDString
from dealership_kernel.db.types import status_enum
from dealership_kernel.domain.lifecycle import (
    TERMINAL_WORK_ORDER_STATUSES,
    WorkOrderStatus,
)


class WorkOrder(SoftDeleteMixin, TrackedBase):
    """A unit of repair work against one vehicle."""

    __tablename__ = "work_orders"

    __table_args__ = (
        Index("idx_work_order_vehicle_status", "vehicle_id", "status"),
        Index("idx_work_order_mechanic", "assigned_mechanic_id"),
    )

    # WO-YYYYMMDD-NNNN
    wo_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    vehicle_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("vehicles.id"),
        nullable=False,
    )

    description: Mapped[str] = mapped_column(String(4000), nullable=False)

    assigned_mechanic_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("users.id"),
        nullable=False,
    )

    status: Mapped[WorkOrderStatus] = mapped_column(
        status_enum(WorkOrderStatus),
        default=WorkOrderStatus.PENDING,
        nullable=False,
    )

    progress_percentage: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    total_parts_cost: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        default=Decimal("0"),
        nullable=False,
    )

    labor_cost: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        default=Decimal("0"),
        nullable=False,
    )

    total_cost: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        default=Decimal("0"),
        nullable=False,
    )

    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<WorkOrder {self.wo_number}: {self.status.value}>"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_WORK_ORDER_STATUSES


class WorkOrderPart(SoftDeleteMixin, TrackedBase):
    """One consumption of a spare part inside a work order."""

    __tablename__ = "work_order_parts"

    __table_args__ = (
        Index("idx_work_order_part_order", "work_order_id"),
    )

    work_order_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("work_orders.id"),
        nullable=False,
    )

    spare_part_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("spare_parts.id"),
        nullable=False,
    )

    quantity_used: Mapped[int] = mapped_column(Integer, nullable=False)

    # Part cost_price frozen at the moment of use
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    total_cost: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    used_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    used_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<WorkOrderPart {self.work_order_id} x{self.quantity_used}>"
