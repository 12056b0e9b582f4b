"""
SaleFlow -- selling a vehicle in one transaction.

Responsibility:
    Prices the sale (discount, final price), measures profit against the
    vehicle's cost basis, writes the sales invoice and marks the vehicle
    SOLD.

Architecture position:
    Kernel > Services (flow).  Composes CostAccounting, VehicleLifecycle and
    SequenceService inside one savepoint.

Invariants enforced:
    - The vehicle row is locked before its status is checked, so two
      concurrent sales of one vehicle cannot both pass the AVAILABLE gate.
    - profit_amount == final_price - hpp_at_sale, with hpp_at_sale the cost
      basis read under that lock.
    - Invoice and SOLD status are written together or not at all.

Failure modes:
    - VehicleNotAvailableError: vehicle is not AVAILABLE.
    - ValidationError: discount outside [0, 100], negative price.
    - NotFoundError: unknown customer or vehicle.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from dealership_kernel.db.types import ZERO, to_money
from dealership_kernel.domain.cost_accounting import (
    compute_discount,
    compute_final_price,
    compute_hpp,
    compute_profit,
)
from dealership_kernel.domain.dtos import SalesInvoiceInfo
from dealership_kernel.domain.lifecycle import PaymentMethod, VehicleStatus
from dealership_kernel.exceptions import NotFoundError, VehicleNotAvailableError
from dealership_kernel.logging_config import LogContext, get_logger
from dealership_kernel.models.invoice import SalesInvoice
from dealership_kernel.models.party import Customer
from dealership_kernel.models.vehicle import Vehicle
from dealership_kernel.services.base import BaseService
from dealership_kernel.services.role_authority import RoleAuthority
from dealership_kernel.services.sequence_service import SequenceScope, SequenceService
from dealership_kernel.services.unit_of_work import atomic
from dealership_kernel.services.vehicle_lifecycle import VehicleLifecycle

logger = get_logger("services.sale")


def sales_invoice_to_info(invoice: SalesInvoice) -> SalesInvoiceInfo:
    return SalesInvoiceInfo(
        id=invoice.id,
        invoice_number=invoice.invoice_number,
        customer_id=invoice.customer_id,
        vehicle_id=invoice.vehicle_id,
        selling_price=invoice.selling_price,
        discount_percentage=invoice.discount_percentage,
        discount_amount=invoice.discount_amount,
        final_price=invoice.final_price,
        hpp_at_sale=invoice.hpp_at_sale,
        profit_amount=invoice.profit_amount,
        payment_method=invoice.payment_method,
        transaction_date=invoice.transaction_date,
    )


class SaleFlow(BaseService[SalesInvoice]):
    """
    Sales invoice creation.

    Contract:
        ``create_sales_invoice`` flushes inside a savepoint of the caller's
        transaction; the caller commits.
    """

    def create_sales_invoice(
        self,
        vehicle_id: UUID,
        customer_id: UUID,
        selling_price: Decimal,
        payment_method: PaymentMethod,
        actor_id: UUID,
        discount_percentage: Decimal = ZERO,
        notes: str | None = None,
        transaction_date: date | None = None,
    ) -> SalesInvoiceInfo:
        """
        Sell an AVAILABLE vehicle to a customer.

            discount_amount = selling_price * discount_percentage / 100
            final_price     = selling_price - discount_amount
            profit_amount   = final_price - hpp

        Raises:
            VehicleNotAvailableError: The vehicle is not AVAILABLE.
        """
        discount_amount = compute_discount(selling_price, discount_percentage)
        final_price = compute_final_price(selling_price, discount_amount)
        RoleAuthority(self.session).require_actor(actor_id)
        self._get_live(Customer, customer_id)
        transaction_date = transaction_date or self.clock.today()

        with atomic(self.session):
            vehicle = self._get_for_update(Vehicle, vehicle_id)
            if vehicle.status is not VehicleStatus.AVAILABLE:
                logger.warning(
                    "sale_rejected",
                    extra={"vehicle_id": str(vehicle_id), "status": vehicle.status.value},
                )
                raise VehicleNotAvailableError(str(vehicle_id), vehicle.status.value)

            hpp_at_sale = (
                vehicle.hpp
                if vehicle.hpp is not None
                else compute_hpp(vehicle.purchase_price, vehicle.repair_cost)
            )
            profit = compute_profit(
                final_price,
                vehicle.hpp,
                purchase_price=vehicle.purchase_price,
                repair_cost=vehicle.repair_cost,
            )

            numbering = self.settings.numbering
            invoice_number = SequenceService(self.session).next_identifier(
                numbering.sales_invoice_prefix,
                SequenceScope.DAILY,
                numbering.sales_invoice_width,
                on_date=self.clock.today(),
            )

            invoice = SalesInvoice(
                invoice_number=invoice_number,
                customer_id=customer_id,
                vehicle_id=vehicle_id,
                selling_price=to_money(selling_price),
                discount_percentage=to_money(discount_percentage),
                discount_amount=discount_amount,
                final_price=final_price,
                hpp_at_sale=hpp_at_sale,
                profit_amount=profit,
                payment_method=payment_method,
                notes=notes,
                transaction_date=transaction_date,
                created_by_id=actor_id,
            )
            self.session.add(invoice)
            self.session.flush()

            VehicleLifecycle(self.session, self.clock, self.settings).mark_sold(
                vehicle_id, final_price, transaction_date, actor_id
            )

        with LogContext.bind(
            invoice_number=invoice_number, vehicle_id=vehicle_id, actor_id=actor_id
        ):
            logger.info(
                "sale_recorded",
                extra={
                    "final_price": final_price,
                    "discount_amount": discount_amount,
                    "hpp_at_sale": hpp_at_sale,
                    "profit_amount": profit,
                },
            )
        return sales_invoice_to_info(invoice)

    def get_by_number(self, invoice_number: str) -> SalesInvoiceInfo:
        invoice = self.session.execute(
            select(SalesInvoice).where(
                SalesInvoice.invoice_number == invoice_number,
                SalesInvoice.not_deleted(),
            )
        ).scalar_one_or_none()
        if invoice is None:
            raise NotFoundError("SalesInvoice", invoice_number)
        return sales_invoice_to_info(invoice)
