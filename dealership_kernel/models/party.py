"""
Module: dealership_kernel.models.party
Responsibility: ORM persistence for the counterparties of vehicle purchases and
    sales.  Reference data only; the kernel never derives state on them.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from dealership_kernel.db.base import SoftDeleteMixin, TrackedBase


class Customer(SoftDeleteMixin, TrackedBase):
    """Buyer of a vehicle, or a private seller the dealership buys from."""

    __tablename__ = "customers"

    customer_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # National identity card number
    id_card_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    address: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    def __repr__(self) -> str:
        return f"<Customer {self.customer_code}: {self.name}>"


class Supplier(SoftDeleteMixin, TrackedBase):
    """Trade source of vehicles."""

    __tablename__ = "suppliers"

    supplier_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    contact_person: Mapped[str | None] = mapped_column(String(255), nullable=True)

    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    address: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    def __repr__(self) -> str:
        return f"<Supplier {self.supplier_code}: {self.name}>"
