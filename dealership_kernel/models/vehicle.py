"""
Module: dealership_kernel.models.vehicle
Responsibility: ORM persistence for vehicles and their categories.  The vehicle
    row is the aggregate root for cost basis (purchase_price, repair_cost, hpp).
Architecture position: Kernel > Models.  May import from db/ and domain/lifecycle.

Invariants enforced (by VehicleLifecycle, stored here):
    - status == SOLD implies sold_date and selling_price are set.
    - status == AVAILABLE implies no open work order references the vehicle.
    - hpp == purchase_price + repair_cost, where repair_cost is the sum of
      total_cost over completed, non-deleted work orders.
    - Vehicles in SOLD or IN_REPAIR are never soft-deleted.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from dealership_kernel.db.base import SoftDeleteMixin, TrackedBase, UUIDString
from dealership_kernel.db.types import status_enum
from dealership_kernel.domain.lifecycle import VehicleStatus


class VehicleCategory(SoftDeleteMixin, TrackedBase):
    """Grouping such as sedan, SUV or motorcycle."""

    __tablename__ = "vehicle_categories"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)


class Vehicle(SoftDeleteMixin, TrackedBase):
    """A vehicle held in stock, under repair, or sold."""

    __tablename__ = "vehicles"

    __table_args__ = (
        Index("idx_vehicle_status", "status"),
    )

    # Human-readable code, e.g. VH-0001
    vehicle_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    category_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("vehicle_categories.id"),
        nullable=True,
    )

    brand: Mapped[str] = mapped_column(String(100), nullable=False)

    model: Mapped[str] = mapped_column(String(100), nullable=False)

    year: Mapped[int] = mapped_column(Integer, nullable=False)

    chassis_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    engine_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    plate_number: Mapped[str | None] = mapped_column(String(20), nullable=True)

    color: Mapped[str | None] = mapped_column(String(50), nullable=True)

    fuel_type: Mapped[str | None] = mapped_column(String(30), nullable=True)

    transmission: Mapped[str | None] = mapped_column(String(30), nullable=True)

    condition_notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    purchase_price: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)

    repair_cost: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        default=Decimal("0"),
        nullable=False,
    )

    # Cost basis (harga pokok penjualan)
    hpp: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)

    selling_price: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)

    status: Mapped[VehicleStatus] = mapped_column(
        status_enum(VehicleStatus),
        default=VehicleStatus.AVAILABLE,
        nullable=False,
    )

    purchased_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    sold_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    def __repr__(self) -> str:
        return f"<Vehicle {self.vehicle_code}: {self.status.value}>"

    @property
    def display_name(self) -> str:
        return f"{self.brand} {self.model} {self.year}"
