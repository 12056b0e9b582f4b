"""
Module: dealership_kernel.models.invoice
Responsibility: ORM persistence for vehicle purchase and sales invoices.
Architecture position: Kernel > Models.  May import from db/ and domain/lifecycle.

Invariants enforced (by AcquisitionFlow and SaleFlow, stored here):
    - PurchaseInvoice.final_price == negotiated_price when given, else
      purchase_price.
    - Exactly one of customer_id / supplier_id is set on a purchase invoice,
      matching transaction_type.
    - SalesInvoice.profit_amount == final_price - hpp_at_sale, where
      hpp_at_sale is the vehicle's cost basis at the moment of sale.
    - At most one purchase invoice and one sales invoice per vehicle.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from dealership_kernel.db.base import SoftDeleteMixin, TrackedBase, UUIDString
from dealership_kernel.db.types import status_enum
from dealership_kernel.domain.lifecycle import PaymentMethod, TransactionType


class PurchaseInvoice(SoftDeleteMixin, TrackedBase):
    """The dealership buying a vehicle from a supplier or a private customer."""

    __tablename__ = "purchase_invoices"

    # PUR-SUP-YYYYMMDD-NNNN or PUR-CUS-YYYYMMDD-NNNN
    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    transaction_type: Mapped[TransactionType] = mapped_column(
        status_enum(TransactionType),
        nullable=False,
    )

    customer_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("customers.id"),
        nullable=True,
    )

    supplier_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("suppliers.id"),
        nullable=True,
    )

    # At most one live invoice per vehicle; soft-deleted rows stay behind
    vehicle_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("vehicles.id"),
        nullable=False,
        index=True,
    )

    purchase_price: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    negotiated_price: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)

    final_price: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    payment_method: Mapped[PaymentMethod] = mapped_column(
        status_enum(PaymentMethod),
        nullable=False,
    )

    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)

    def __repr__(self) -> str:
        return f"<PurchaseInvoice {self.invoice_number}>"


class SalesInvoice(SoftDeleteMixin, TrackedBase):
    """The dealership selling a vehicle to a customer."""

    __tablename__ = "sales_invoices"

    # INV-YYYYMMDD-NNNN
    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    customer_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("customers.id"),
        nullable=False,
    )

    vehicle_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("vehicles.id"),
        nullable=False,
        unique=True,
    )

    selling_price: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    discount_percentage: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        default=Decimal("0"),
        nullable=False,
    )

    discount_amount: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        default=Decimal("0"),
        nullable=False,
    )

    final_price: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    hpp_at_sale: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    profit_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    payment_method: Mapped[PaymentMethod] = mapped_column(
        status_enum(PaymentMethod),
        nullable=False,
    )

    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)

    def __repr__(self) -> str:
        return f"<SalesInvoice {self.invoice_number}>"
