"""
VehicleLifecycle -- vehicle status transitions and cost basis (HPP).

Responsibility:
    Registers vehicles, records acquisitions, recomputes HPP from completed
    work orders, and moves vehicles between statuses according to
    ``domain.lifecycle.VEHICLE_TRANSITIONS``.

Architecture position:
    Kernel > Services.  Called by WorkOrderEngine (repair opened/finished,
    HPP recompute), AcquisitionFlow (register + acquisition) and SaleFlow
    (mark sold).

Invariants enforced:
    - hpp == purchase_price + repair_cost, where repair_cost is re-summed
      from completed, non-deleted work orders on every recompute.  There is
      no incremental accumulator to drift.
    - status == AVAILABLE only when no pending/in-progress work order
      references the vehicle.
    - SOLD is terminal; the only way in is ``mark_sold`` from AVAILABLE.
    - SOLD and IN_REPAIR vehicles cannot be deleted.

Failure modes:
    - VehicleNotAvailableError from ``mark_sold`` on a non-available vehicle.
    - VehicleNotDeletableError from ``delete``.
    - InvalidTransitionError for any move missing from the transition table.
    - NotFoundError for unknown or soft-deleted vehicles.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from dealership_kernel.db.types import ZERO, round_money, to_money
from dealership_kernel.domain.cost_accounting import compute_hpp, sum_line_costs
from dealership_kernel.domain.dtos import VehicleInfo
from dealership_kernel.domain.lifecycle import (
    OPEN_WORK_ORDER_STATUSES,
    UNDELETABLE_VEHICLE_STATUSES,
    UserRole,
    VehicleEvent,
    VehicleStatus,
    WorkOrderStatus,
    next_vehicle_status,
)
from dealership_kernel.exceptions import (
    DuplicateValueError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
    VehicleNotAvailableError,
    VehicleNotDeletableError,
)
from dealership_kernel.logging_config import get_logger
from dealership_kernel.models.vehicle import Vehicle, VehicleCategory
from dealership_kernel.models.work_order import WorkOrder
from dealership_kernel.selectors.vehicle_selector import vehicle_to_info
from dealership_kernel.services.base import BaseService
from dealership_kernel.services.role_authority import RoleAuthority
from dealership_kernel.services.sequence_service import SequenceScope, SequenceService

logger = get_logger("services.vehicle")

MIN_MODEL_YEAR = 1900


def _optional_price(field: str, value: Decimal | int | str | None) -> Decimal | None:
    if value is None:
        return None
    try:
        amount = to_money(value)
    except ValueError as exc:
        raise ValidationError(field, str(exc)) from exc
    if amount < ZERO:
        raise ValidationError(field, f"must not be negative, got {amount}")
    return round_money(amount)


class VehicleLifecycle(BaseService[Vehicle]):
    """
    Service owning vehicle status and cost basis.

    Contract:
        Every method that changes a vehicle locks its row first
        (``SELECT ... FOR UPDATE``), flushes, and returns a VehicleInfo.

    Non-goals:
        - Reversing a sale.  SOLD is terminal here.
    """

    # Registration

    def create_category(
        self, name: str, actor_id: UUID, description: str | None = None
    ) -> UUID:
        if not name or not name.strip():
            raise ValidationError("name", "is required")
        name = name.strip()
        exists = self.session.execute(
            select(VehicleCategory.id).where(VehicleCategory.name == name)
        ).first()
        if exists is not None:
            raise DuplicateValueError("name", name)
        category = VehicleCategory(name=name, description=description, created_by_id=actor_id)
        self.session.add(category)
        self.session.flush()
        logger.info(
            "vehicle_category_created",
            extra={"category_id": str(category.id), "category_name": name},
        )
        return category.id

    def register_vehicle(
        self,
        brand: str,
        model: str,
        year: int,
        actor_id: UUID,
        category_id: UUID | None = None,
        chassis_number: str | None = None,
        engine_number: str | None = None,
        plate_number: str | None = None,
        color: str | None = None,
        fuel_type: str | None = None,
        transmission: str | None = None,
        condition_notes: str | None = None,
        selling_price: Decimal | None = None,
    ) -> VehicleInfo:
        """
        Create a vehicle record with a generated ``VH-NNNN`` code.

        The vehicle starts AVAILABLE with no purchase price; acquisition is
        recorded separately through ``record_acquisition``.

        Raises:
            ValidationError: Blank brand/model, implausible year, negative price.
            NotFoundError: Unknown category.
        """
        if not brand or not brand.strip():
            raise ValidationError("brand", "is required")
        if not model or not model.strip():
            raise ValidationError("model", "is required")
        max_year = self.clock.today().year + 1
        if not MIN_MODEL_YEAR <= year <= max_year:
            raise ValidationError("year", f"must be between {MIN_MODEL_YEAR} and {max_year}, got {year}")
        price = _optional_price("selling_price", selling_price)
        if category_id is not None:
            self._get_live(VehicleCategory, category_id)

        numbering = self.settings.numbering
        code = SequenceService(self.session).next_identifier(
            numbering.vehicle_prefix,
            SequenceScope.ALL_TIME,
            numbering.vehicle_width,
        )

        vehicle = Vehicle(
            vehicle_code=code,
            category_id=category_id,
            brand=brand.strip(),
            model=model.strip(),
            year=year,
            chassis_number=chassis_number,
            engine_number=engine_number,
            plate_number=plate_number,
            color=color,
            fuel_type=fuel_type,
            transmission=transmission,
            condition_notes=condition_notes,
            repair_cost=ZERO,
            selling_price=price,
            status=VehicleStatus.AVAILABLE,
            created_by_id=actor_id,
        )
        self.session.add(vehicle)
        self.session.flush()

        logger.info(
            "vehicle_registered",
            extra={"vehicle_id": str(vehicle.id), "vehicle_code": code},
        )
        return vehicle_to_info(vehicle)

    # Cost basis

    def record_acquisition(
        self,
        vehicle_id: UUID,
        purchase_price: Decimal,
        purchased_date: date,
        actor_id: UUID,
    ) -> VehicleInfo:
        """
        Book the acquisition: purchase price, date, IN_REPAIR.

        Postconditions:
            - status == IN_REPAIR
            - hpp == purchase_price + repair_cost (repair_cost recomputed)
        """
        price = _optional_price("purchase_price", purchase_price)
        if price is None:
            raise ValidationError("purchase_price", "is required")
        vehicle = self._get_for_update(Vehicle, vehicle_id)
        self._transition(vehicle, VehicleEvent.ACQUIRED)
        vehicle.purchase_price = price
        vehicle.purchased_date = purchased_date
        vehicle.updated_by_id = actor_id
        self._apply_hpp(vehicle)
        self.session.flush()

        logger.info(
            "vehicle_acquired",
            extra={
                "vehicle_id": str(vehicle_id),
                "purchase_price": price,
                "purchased_date": purchased_date,
                "hpp": vehicle.hpp,
            },
        )
        return vehicle_to_info(vehicle)

    def recompute_hpp(self, vehicle_id: UUID) -> VehicleInfo:
        """
        Re-derive repair_cost and hpp from the completed work orders.

        Idempotent: running it twice with no intervening completion changes
        nothing.
        """
        vehicle = self._get_for_update(Vehicle, vehicle_id)
        self._apply_hpp(vehicle)
        self.session.flush()
        logger.info(
            "vehicle_hpp_recomputed",
            extra={
                "vehicle_id": str(vehicle_id),
                "repair_cost": vehicle.repair_cost,
                "hpp": vehicle.hpp,
            },
        )
        return vehicle_to_info(vehicle)

    # Status

    def open_repair(self, vehicle_id: UUID, actor_id: UUID) -> VehicleInfo:
        """A work order was opened on the vehicle; it is now IN_REPAIR."""
        vehicle = self._get_for_update(Vehicle, vehicle_id)
        previous = vehicle.status
        self._transition(vehicle, VehicleEvent.REPAIR_OPENED)
        vehicle.updated_by_id = actor_id
        self.session.flush()
        if previous is not vehicle.status:
            self._log_status_change(vehicle, previous)
        return vehicle_to_info(vehicle)

    def mark_available(self, vehicle_id: UUID, actor_id: UUID) -> VehicleInfo:
        """
        Repairs are finished: IN_REPAIR -> AVAILABLE.

        Already-available vehicles are returned unchanged.

        Raises:
            InvalidTransitionError: If an open work order remains, or the
                vehicle is in any other status.
        """
        vehicle = self._get_for_update(Vehicle, vehicle_id)
        if vehicle.status is VehicleStatus.AVAILABLE:
            return vehicle_to_info(vehicle)
        open_count = self.open_work_order_count(vehicle_id)
        if open_count:
            raise InvalidTransitionError(
                "Vehicle",
                str(vehicle_id),
                vehicle.status.value,
                VehicleStatus.AVAILABLE.value,
                reason=f"{open_count} open work order(s) remain",
            )
        previous = vehicle.status
        self._transition(vehicle, VehicleEvent.REPAIRS_FINISHED)
        vehicle.updated_by_id = actor_id
        self.session.flush()
        self._log_status_change(vehicle, previous)
        return vehicle_to_info(vehicle)

    def mark_sold(
        self,
        vehicle_id: UUID,
        final_price: Decimal,
        sold_date: date,
        actor_id: UUID,
    ) -> VehicleInfo:
        """
        AVAILABLE -> SOLD, stamping selling_price and sold_date.

        Raises:
            VehicleNotAvailableError: If the vehicle is not AVAILABLE.
        """
        price = _optional_price("final_price", final_price)
        if price is None:
            raise ValidationError("final_price", "is required")
        vehicle = self._get_for_update(Vehicle, vehicle_id)
        if vehicle.status is not VehicleStatus.AVAILABLE:
            logger.warning(
                "vehicle_sale_rejected",
                extra={"vehicle_id": str(vehicle_id), "status": vehicle.status.value},
            )
            raise VehicleNotAvailableError(str(vehicle_id), vehicle.status.value)
        previous = vehicle.status
        self._transition(vehicle, VehicleEvent.SOLD)
        vehicle.selling_price = price
        vehicle.sold_date = sold_date
        vehicle.updated_by_id = actor_id
        self.session.flush()
        self._log_status_change(vehicle, previous)
        return vehicle_to_info(vehicle)

    def update_status(
        self,
        vehicle_id: UUID,
        target: VehicleStatus,
        actor_id: UUID,
    ) -> VehicleInfo:
        """
        Admin override of a vehicle's status.

        Allowed targets are AVAILABLE, IN_REPAIR and RESERVED, from any
        status except SOLD.  AVAILABLE still requires that no work order is
        open.  Selling goes through SaleFlow, never through here.

        Raises:
            RoleMismatchError: Actor is not an admin.
            InvalidTransitionError: Disallowed move.
        """
        RoleAuthority(self.session).require_role(actor_id, UserRole.ADMIN)
        vehicle = self._get_for_update(Vehicle, vehicle_id)
        previous = vehicle.status
        resolved = next_vehicle_status(previous, VehicleEvent.ADMIN_OVERRIDE, target)
        if resolved is None:
            raise InvalidTransitionError(
                "Vehicle", str(vehicle_id), previous.value, target.value,
                reason="not permitted by admin override",
            )
        if resolved is VehicleStatus.AVAILABLE:
            open_count = self.open_work_order_count(vehicle_id)
            if open_count:
                raise InvalidTransitionError(
                    "Vehicle", str(vehicle_id), previous.value, target.value,
                    reason=f"{open_count} open work order(s) remain",
                )
        vehicle.status = resolved
        vehicle.updated_by_id = actor_id
        self.session.flush()
        self._log_status_change(vehicle, previous, override=True)
        return vehicle_to_info(vehicle)

    def delete(self, vehicle_id: UUID, actor_id: UUID) -> None:
        """
        Soft-delete a vehicle.

        Raises:
            RoleMismatchError: Actor is not an admin.
            VehicleNotDeletableError: Vehicle is SOLD or IN_REPAIR.
        """
        RoleAuthority(self.session).require_role(actor_id, UserRole.ADMIN)
        vehicle = self._get_for_update(Vehicle, vehicle_id)
        if vehicle.status in UNDELETABLE_VEHICLE_STATUSES:
            logger.warning(
                "vehicle_delete_rejected",
                extra={"vehicle_id": str(vehicle_id), "status": vehicle.status.value},
            )
            raise VehicleNotDeletableError(str(vehicle_id), vehicle.status.value)
        vehicle.mark_deleted(actor_id, self.clock.now())
        self.session.flush()
        logger.info("vehicle_deleted", extra={"vehicle_id": str(vehicle_id)})

    # Lookup

    def get(self, vehicle_id: UUID) -> VehicleInfo:
        return vehicle_to_info(self._get_live(Vehicle, vehicle_id))

    def get_by_code(self, vehicle_code: str) -> VehicleInfo:
        vehicle = self.session.execute(
            select(Vehicle).where(Vehicle.vehicle_code == vehicle_code, Vehicle.not_deleted())
        ).scalar_one_or_none()
        if vehicle is None:
            raise NotFoundError("Vehicle", vehicle_code)
        return vehicle_to_info(vehicle)

    def open_work_order_count(self, vehicle_id: UUID) -> int:
        return self.session.execute(
            select(func.count(WorkOrder.id)).where(
                WorkOrder.vehicle_id == vehicle_id,
                WorkOrder.status.in_(list(OPEN_WORK_ORDER_STATUSES)),
                WorkOrder.not_deleted(),
            )
        ).scalar_one()

    # Internals

    def _apply_hpp(self, vehicle: Vehicle) -> None:
        costs = self.session.execute(
            select(WorkOrder.total_cost).where(
                WorkOrder.vehicle_id == vehicle.id,
                WorkOrder.status == WorkOrderStatus.COMPLETED,
                WorkOrder.not_deleted(),
            )
        ).scalars().all()
        vehicle.repair_cost = sum_line_costs(costs)
        vehicle.hpp = compute_hpp(vehicle.purchase_price, vehicle.repair_cost)

    def _transition(self, vehicle: Vehicle, event: VehicleEvent) -> None:
        target = next_vehicle_status(vehicle.status, event)
        if target is None:
            raise InvalidTransitionError(
                "Vehicle",
                str(vehicle.id),
                vehicle.status.value,
                event.value,
                reason=f"event {event.value} not allowed from {vehicle.status.value}",
            )
        vehicle.status = target

    def _log_status_change(
        self, vehicle: Vehicle, previous: VehicleStatus, override: bool = False
    ) -> None:
        logger.info(
            "vehicle_status_changed",
            extra={
                "vehicle_id": str(vehicle.id),
                "from_status": previous.value,
                "to_status": vehicle.status.value,
                "admin_override": override,
            },
        )
