"""
AcquisitionFlow -- buying a vehicle in one transaction.

Responsibility:
    Creates a purchase invoice and everything that follows from it: the
    vehicle record (new or existing), the acquisition price and status
    IN_REPAIR, and the initial inspection work order assigned to the first
    active mechanic by username.

Architecture position:
    Kernel > Services (flow).  Composes VehicleLifecycle, WorkOrderEngine
    and SequenceService inside one savepoint.

Invariants enforced:
    - All-or-nothing: the invoice, the vehicle update and the inspection
      work order are written together or not at all.
    - final_price == negotiated_price when given, else purchase_price, and
      the vehicle's purchase_price is the final price.
    - A vehicle is purchased at most once and never after it was sold.

Failure modes:
    - ValidationError: bad prices, missing or mismatched counterparty,
      both or neither of vehicle_id / new_vehicle.
    - NotFoundError: unknown counterparty or vehicle, or no active mechanic.
    - InvalidTransitionError: vehicle sold or already purchased.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from dealership_kernel.db.types import ZERO, round_money, to_money
from dealership_kernel.domain.dtos import PurchaseInvoiceInfo
from dealership_kernel.domain.lifecycle import (
    PaymentMethod,
    TransactionType,
    UserRole,
    VehicleStatus,
)
from dealership_kernel.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from dealership_kernel.logging_config import LogContext, get_logger
from dealership_kernel.models.invoice import PurchaseInvoice
from dealership_kernel.models.party import Customer, Supplier
from dealership_kernel.models.vehicle import Vehicle
from dealership_kernel.services.base import BaseService
from dealership_kernel.services.role_authority import RoleAuthority
from dealership_kernel.services.sequence_service import SequenceScope, SequenceService
from dealership_kernel.services.unit_of_work import atomic
from dealership_kernel.services.vehicle_lifecycle import VehicleLifecycle
from dealership_kernel.services.work_order_engine import WorkOrderEngine

logger = get_logger("services.acquisition")


@dataclass(frozen=True)
class NewVehicle:
    """Details of a vehicle that is not yet in the system."""

    brand: str
    model: str
    year: int
    category_id: UUID | None = None
    chassis_number: str | None = None
    engine_number: str | None = None
    plate_number: str | None = None
    color: str | None = None
    fuel_type: str | None = None
    transmission: str | None = None
    condition_notes: str | None = None
    selling_price: Decimal | None = None


def _price(field: str, value: Decimal | int | str | None) -> Decimal | None:
    if value is None:
        return None
    try:
        amount = to_money(value)
    except ValueError as exc:
        raise ValidationError(field, str(exc)) from exc
    if amount < ZERO:
        raise ValidationError(field, f"must not be negative, got {amount}")
    return round_money(amount)


def purchase_invoice_to_info(invoice: PurchaseInvoice, work_order_id: UUID) -> PurchaseInvoiceInfo:
    return PurchaseInvoiceInfo(
        id=invoice.id,
        invoice_number=invoice.invoice_number,
        transaction_type=invoice.transaction_type,
        customer_id=invoice.customer_id,
        supplier_id=invoice.supplier_id,
        vehicle_id=invoice.vehicle_id,
        purchase_price=invoice.purchase_price,
        negotiated_price=invoice.negotiated_price,
        final_price=invoice.final_price,
        payment_method=invoice.payment_method,
        transaction_date=invoice.transaction_date,
        work_order_id=work_order_id,
    )


class AcquisitionFlow(BaseService[PurchaseInvoice]):
    """
    Purchase invoice creation.

    Contract:
        ``create_purchase_invoice`` flushes inside a savepoint of the
        caller's transaction; the caller commits.
    """

    def create_purchase_invoice(
        self,
        transaction_type: TransactionType,
        purchase_price: Decimal,
        payment_method: PaymentMethod,
        actor_id: UUID,
        supplier_id: UUID | None = None,
        customer_id: UUID | None = None,
        vehicle_id: UUID | None = None,
        new_vehicle: NewVehicle | None = None,
        negotiated_price: Decimal | None = None,
        notes: str | None = None,
        transaction_date: date | None = None,
    ) -> PurchaseInvoiceInfo:
        """
        Buy a vehicle from a supplier or a private customer.

        Pass exactly one of ``vehicle_id`` (a vehicle already on file) or
        ``new_vehicle`` (registered as part of the purchase).

        Returns:
            The invoice, including the id of the inspection work order.
        """
        price = _price("purchase_price", purchase_price)
        if price is None:
            raise ValidationError("purchase_price", "is required")
        negotiated = _price("negotiated_price", negotiated_price)
        if (vehicle_id is None) == (new_vehicle is None):
            raise ValidationError("vehicle_id", "pass exactly one of vehicle_id or new_vehicle")
        self._check_counterparty(transaction_type, supplier_id, customer_id)

        roles = RoleAuthority(self.session)
        roles.require_actor(actor_id)
        mechanic_id = roles.first_active(UserRole.MECHANIC)
        if mechanic_id is None:
            logger.warning("purchase_rejected_no_mechanic")
            raise NotFoundError("User", "active mechanic")

        final_price = negotiated if negotiated is not None else price
        today = self.clock.today()
        transaction_date = transaction_date or today
        vehicles = VehicleLifecycle(self.session, self.clock, self.settings)

        with atomic(self.session):
            if new_vehicle is not None:
                vehicle_id = vehicles.register_vehicle(
                    brand=new_vehicle.brand,
                    model=new_vehicle.model,
                    year=new_vehicle.year,
                    actor_id=actor_id,
                    category_id=new_vehicle.category_id,
                    chassis_number=new_vehicle.chassis_number,
                    engine_number=new_vehicle.engine_number,
                    plate_number=new_vehicle.plate_number,
                    color=new_vehicle.color,
                    fuel_type=new_vehicle.fuel_type,
                    transmission=new_vehicle.transmission,
                    condition_notes=new_vehicle.condition_notes,
                    selling_price=new_vehicle.selling_price,
                ).id
            vehicle = self._get_for_update(Vehicle, vehicle_id)
            self._check_purchasable(vehicle)

            numbering = self.settings.numbering
            prefix = (
                numbering.purchase_supplier_prefix
                if transaction_type is TransactionType.SUPPLIER
                else numbering.purchase_customer_prefix
            )
            invoice_number = SequenceService(self.session).next_identifier(
                prefix,
                SequenceScope.DAILY,
                numbering.purchase_invoice_width,
                on_date=today,
            )

            invoice = PurchaseInvoice(
                invoice_number=invoice_number,
                transaction_type=transaction_type,
                customer_id=customer_id,
                supplier_id=supplier_id,
                vehicle_id=vehicle_id,
                purchase_price=price,
                negotiated_price=negotiated,
                final_price=final_price,
                payment_method=payment_method,
                notes=notes,
                transaction_date=transaction_date,
                created_by_id=actor_id,
            )
            self.session.add(invoice)
            self.session.flush()

            vehicles.record_acquisition(vehicle_id, final_price, transaction_date, actor_id)

            description = self.settings.inspection_description_template.format(
                brand=vehicle.brand, model=vehicle.model, year=vehicle.year
            )
            work_order = WorkOrderEngine(self.session, self.clock, self.settings).create(
                vehicle_id=vehicle_id,
                description=description,
                mechanic_id=mechanic_id,
                labor_cost=ZERO,
                actor_id=actor_id,
            )

        with LogContext.bind(
            invoice_number=invoice_number, vehicle_id=vehicle_id, actor_id=actor_id
        ):
            logger.info(
                "purchase_recorded",
                extra={
                    "transaction_type": transaction_type.value,
                    "final_price": final_price,
                    "work_order_id": str(work_order.id),
                    "mechanic_id": str(mechanic_id),
                },
            )
        return purchase_invoice_to_info(invoice, work_order.id)

    def _check_counterparty(
        self,
        transaction_type: TransactionType,
        supplier_id: UUID | None,
        customer_id: UUID | None,
    ) -> None:
        if transaction_type is TransactionType.SUPPLIER:
            if supplier_id is None:
                raise ValidationError("supplier_id", "required for supplier purchases")
            if customer_id is not None:
                raise ValidationError("customer_id", "must be empty for supplier purchases")
            self._get_live(Supplier, supplier_id)
        else:
            if customer_id is None:
                raise ValidationError("customer_id", "required for customer purchases")
            if supplier_id is not None:
                raise ValidationError("supplier_id", "must be empty for customer purchases")
            self._get_live(Customer, customer_id)

    def _check_purchasable(self, vehicle: Vehicle) -> None:
        if vehicle.status is VehicleStatus.SOLD:
            raise InvalidTransitionError(
                "Vehicle", str(vehicle.id), vehicle.status.value, VehicleStatus.IN_REPAIR.value,
                reason="a sold vehicle cannot be purchased",
            )
        already = self.session.execute(
            select(PurchaseInvoice.invoice_number)
            .where(
                PurchaseInvoice.vehicle_id == vehicle.id,
                PurchaseInvoice.not_deleted(),
            )
            .order_by(PurchaseInvoice.invoice_number)
        ).scalars().first()
        if already is not None:
            raise InvalidTransitionError(
                "Vehicle", str(vehicle.id), vehicle.status.value, VehicleStatus.IN_REPAIR.value,
                reason=f"already purchased on {already}",
            )
