"""
WorkOrderEngine -- repair work orders, part usage and cost rollup.

Responsibility:
    Runs the work order state machine (pending -> in_progress -> completed,
    cancelled from either open state), books spare part usage against a
    work order, and on completion folds the order's cost into the vehicle's
    HPP in the same transaction.

Architecture position:
    Kernel > Services.  Uses InventoryLedger (stock), VehicleLifecycle
    (status and HPP), RoleAuthority (mechanic checks) and SequenceService
    (WO numbers).  Called directly by back-office callers and by
    AcquisitionFlow for the initial inspection order.

Invariants enforced:
    - total_parts_cost is re-summed from the non-deleted WorkOrderPart rows
      after every usage; total_cost == total_parts_cost + labor_cost.
    - completed_at is set iff status == COMPLETED, and progress is 100 then.
    - Completed and cancelled orders accept no further changes.
    - Part usage is all-or-nothing: an InsufficientStockError leaves neither
      a stock decrement nor a usage row behind.
    - Lock order: vehicle, then work order, then spare part, then counters.

Failure modes:
    - RoleMismatchError when the assignee is not a mechanic.
    - InvalidTransitionError / WorkOrderTerminalError for illegal moves.
    - InvalidProgressError outside [0, 100].
    - InsufficientStockError from part usage.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from dealership_kernel.db.types import ZERO, round_money, to_money
from dealership_kernel.domain.clock import Clock
from dealership_kernel.domain.cost_accounting import (
    compute_line_cost,
    compute_work_order_total,
    sum_line_costs,
)
from dealership_kernel.domain.dtos import WorkOrderInfo, WorkOrderPartInfo
from dealership_kernel.domain.events import WorkOrderAssigned, WorkOrderCompleted
from dealership_kernel.domain.lifecycle import (
    UserRole,
    VehicleStatus,
    WorkOrderEvent,
    WorkOrderStatus,
    next_work_order_status,
)
from dealership_kernel.domain.settings import KernelSettings
from dealership_kernel.exceptions import (
    InvalidProgressError,
    InvalidTransitionError,
    ValidationError,
    WorkOrderTerminalError,
)
from dealership_kernel.logging_config import LogContext, get_logger
from dealership_kernel.models.vehicle import Vehicle
from dealership_kernel.models.work_order import WorkOrder, WorkOrderPart
from dealership_kernel.selectors.work_order_selector import (
    WorkOrderSelector,
    usage_to_info,
    work_order_to_info,
)
from dealership_kernel.services.base import BaseService
from dealership_kernel.services.event_sink import record_event
from dealership_kernel.services.inventory_ledger import InventoryLedger
from dealership_kernel.services.role_authority import RoleAuthority
from dealership_kernel.services.sequence_service import SequenceScope, SequenceService
from dealership_kernel.services.unit_of_work import atomic
from dealership_kernel.services.vehicle_lifecycle import VehicleLifecycle

logger = get_logger("services.work_order")


def _labor(value: Decimal | int | str) -> Decimal:
    try:
        amount = to_money(value)
    except ValueError as exc:
        raise ValidationError("labor_cost", str(exc)) from exc
    if amount < ZERO:
        raise ValidationError("labor_cost", f"must not be negative, got {amount}")
    return round_money(amount)


class WorkOrderEngine(BaseService[WorkOrder]):
    """
    Service for work orders.

    Contract:
        Mutating methods lock the rows they change, flush, and return a
        WorkOrderInfo.  Multi-step operations (part usage, completion,
        cancellation) run in a savepoint so a failure undoes all of them.

    Guarantees:
        - ``complete`` recomputes the vehicle's HPP before returning, in
          the caller's transaction.
        - WorkOrderAssigned / WorkOrderCompleted events are recorded on the
          session and published only after commit (see unit_of_work).
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settings: KernelSettings | None = None,
    ):
        super().__init__(session, clock, settings)
        self._roles = RoleAuthority(session)
        self._vehicles = VehicleLifecycle(session, self.clock, self.settings)
        self._inventory = InventoryLedger(session, self.clock, self.settings)

    def create(
        self,
        vehicle_id: UUID,
        description: str,
        mechanic_id: UUID,
        labor_cost: Decimal,
        actor_id: UUID,
        notes: str | None = None,
    ) -> WorkOrderInfo:
        """
        Open a work order on a vehicle and assign it to a mechanic.

        An AVAILABLE (or RESERVED) vehicle moves to IN_REPAIR.  A SOLD
        vehicle cannot be repaired.

        Raises:
            ValidationError: Blank description or negative labor cost.
            RoleMismatchError: ``mechanic_id`` is not a mechanic.
            InvalidTransitionError: The vehicle is sold.
        """
        if not description or not description.strip():
            raise ValidationError("description", "is required")
        labor = _labor(labor_cost)
        self._roles.require_role(mechanic_id, UserRole.MECHANIC)

        with atomic(self.session):
            self._vehicles.open_repair(vehicle_id, actor_id)

            numbering = self.settings.numbering
            wo_number = SequenceService(self.session).next_identifier(
                numbering.work_order_prefix,
                SequenceScope.DAILY,
                numbering.work_order_width,
                on_date=self.clock.today(),
            )

            work_order = WorkOrder(
                wo_number=wo_number,
                vehicle_id=vehicle_id,
                description=description.strip(),
                assigned_mechanic_id=mechanic_id,
                status=WorkOrderStatus.PENDING,
                progress_percentage=0,
                total_parts_cost=ZERO,
                labor_cost=labor,
                total_cost=compute_work_order_total(ZERO, labor),
                notes=notes,
                created_by_id=actor_id,
            )
            self.session.add(work_order)
            self.session.flush()

            with LogContext.bind(
                work_order_id=work_order.id, vehicle_id=vehicle_id, actor_id=actor_id
            ):
                logger.info(
                    "work_order_created",
                    extra={
                        "wo_number": wo_number,
                        "mechanic_id": str(mechanic_id),
                        "labor_cost": labor,
                    },
                )
            self._record_assignment(work_order, actor_id)

        return work_order_to_info(work_order)

    def start(self, work_order_id: UUID, actor_id: UUID) -> WorkOrderInfo:
        work_order = self._get_for_update(WorkOrder, work_order_id)
        self._transition(work_order, WorkOrderEvent.START)
        work_order.started_at = self.clock.now()
        work_order.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "work_order_started",
            extra={"work_order_id": str(work_order_id), "wo_number": work_order.wo_number},
        )
        return work_order_to_info(work_order)

    def update_progress(
        self, work_order_id: UUID, progress: int, actor_id: UUID
    ) -> WorkOrderInfo:
        """
        Set the progress percentage of an open work order.

        Raises:
            InvalidProgressError: ``progress`` outside [0, 100].
            WorkOrderTerminalError: Order is completed or cancelled.
        """
        if not 0 <= progress <= 100:
            raise InvalidProgressError(progress)
        work_order = self._get_for_update(WorkOrder, work_order_id)
        self._require_open(work_order, "update progress of")
        work_order.progress_percentage = progress
        work_order.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "work_order_progress_updated",
            extra={"work_order_id": str(work_order_id), "progress": progress},
        )
        return work_order_to_info(work_order)

    def assign_mechanic(
        self, work_order_id: UUID, mechanic_id: UUID, actor_id: UUID
    ) -> WorkOrderInfo:
        """Reassign an open work order to another mechanic."""
        self._roles.require_role(mechanic_id, UserRole.MECHANIC)
        work_order = self._get_for_update(WorkOrder, work_order_id)
        self._require_open(work_order, "reassign")
        previous = work_order.assigned_mechanic_id
        work_order.assigned_mechanic_id = mechanic_id
        work_order.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "work_order_reassigned",
            extra={
                "work_order_id": str(work_order_id),
                "from_mechanic_id": str(previous),
                "to_mechanic_id": str(mechanic_id),
            },
        )
        self._record_assignment(work_order, actor_id)
        return work_order_to_info(work_order)

    def set_labor_cost(
        self, work_order_id: UUID, labor_cost: Decimal, actor_id: UUID
    ) -> WorkOrderInfo:
        labor = _labor(labor_cost)
        work_order = self._get_for_update(WorkOrder, work_order_id)
        self._require_open(work_order, "change labor cost of")
        work_order.labor_cost = labor
        work_order.total_cost = compute_work_order_total(work_order.total_parts_cost, labor)
        work_order.updated_by_id = actor_id
        self.session.flush()
        return work_order_to_info(work_order)

    def use_part(
        self,
        work_order_id: UUID,
        part_id: UUID,
        quantity: int,
        used_by: UUID,
    ) -> WorkOrderPartInfo:
        """
        Consume spare parts for a work order.

        1. Lock the work order and check it is open
        2. Take the stock out (locks the part; fails if insufficient)
        3. Append a usage row with the unit cost read under that lock
        4. Re-sum total_parts_cost from all live usage rows

        Raises:
            InsufficientStockError: Not enough stock.  Nothing is written.
            WorkOrderTerminalError: Order is completed or cancelled.
        """
        if quantity <= 0:
            raise ValidationError("quantity", f"must be positive, got {quantity}")
        self._roles.require_actor(used_by)

        with atomic(self.session):
            work_order = self._get_for_update(WorkOrder, work_order_id)
            self._require_open(work_order, "use parts on")

            consumption = self._inventory.consume_for_work_order(
                part_id, quantity, work_order_id, used_by
            )
            usage = WorkOrderPart(
                work_order_id=work_order_id,
                spare_part_id=part_id,
                quantity_used=quantity,
                unit_cost=consumption.unit_cost,
                total_cost=compute_line_cost(consumption.unit_cost, quantity),
                used_by_id=used_by,
                used_at=self.clock.now(),
                created_by_id=used_by,
            )
            self.session.add(usage)
            self.session.flush()
            self._rollup_parts_cost(work_order)
            work_order.updated_by_id = used_by
            self.session.flush()

        logger.info(
            "work_order_part_used",
            extra={
                "work_order_id": str(work_order_id),
                "spare_part_id": str(part_id),
                "quantity": quantity,
                "unit_cost": consumption.unit_cost,
                "total_parts_cost": work_order.total_parts_cost,
            },
        )
        return usage_to_info(usage)

    def complete(
        self,
        work_order_id: UUID,
        actor_id: UUID,
        labor_cost: Decimal | None = None,
    ) -> WorkOrderInfo:
        """
        Complete a work order and fold its cost into the vehicle.

        Postconditions:
            - status == COMPLETED, progress == 100, completed_at set.
            - Vehicle repair_cost/hpp recomputed from all completed orders.
            - Vehicle AVAILABLE when it was IN_REPAIR and no other order on
              it is open.
        """
        labor = _labor(labor_cost) if labor_cost is not None else None

        with atomic(self.session):
            vehicle_id = self._get_live(WorkOrder, work_order_id).vehicle_id
            vehicle = self._get_for_update(Vehicle, vehicle_id)
            work_order = self._get_for_update(WorkOrder, work_order_id)

            self._transition(
                work_order,
                WorkOrderEvent.COMPLETE,
                allow_complete_from_pending=self.settings.allow_complete_from_pending,
            )
            now = self.clock.now()
            if work_order.started_at is None:
                work_order.started_at = now
            if labor is not None:
                work_order.labor_cost = labor
            self._rollup_parts_cost(work_order)
            work_order.progress_percentage = 100
            work_order.completed_at = now
            work_order.updated_by_id = actor_id
            self.session.flush()

            vehicle_info = self._vehicles.recompute_hpp(vehicle_id)
            if vehicle.status is VehicleStatus.IN_REPAIR and not self._vehicles.open_work_order_count(vehicle_id):
                vehicle_info = self._vehicles.mark_available(vehicle_id, actor_id)

            with LogContext.bind(
                work_order_id=work_order_id, vehicle_id=vehicle_id, actor_id=actor_id
            ):
                logger.info(
                    "work_order_completed",
                    extra={
                        "wo_number": work_order.wo_number,
                        "total_cost": work_order.total_cost,
                        "vehicle_hpp": vehicle_info.hpp,
                        "vehicle_status": vehicle_info.status.value,
                    },
                )
            record_event(
                self.session,
                WorkOrderCompleted(
                    occurred_at=now,
                    work_order_id=work_order.id,
                    wo_number=work_order.wo_number,
                    vehicle_id=vehicle_id,
                    total_cost=work_order.total_cost,
                    vehicle_hpp=vehicle_info.hpp,
                    vehicle_available=vehicle_info.status is VehicleStatus.AVAILABLE,
                ),
            )

        return work_order_to_info(work_order)

    def cancel(self, work_order_id: UUID, actor_id: UUID) -> WorkOrderInfo:
        """
        Cancel an open work order.

        Parts already used stay consumed; a cancelled order's cost never
        enters the vehicle's HPP.  If this was the last open order on an
        IN_REPAIR vehicle, the vehicle becomes AVAILABLE.
        """
        with atomic(self.session):
            vehicle_id = self._get_live(WorkOrder, work_order_id).vehicle_id
            vehicle = self._get_for_update(Vehicle, vehicle_id)
            work_order = self._get_for_update(WorkOrder, work_order_id)

            self._transition(work_order, WorkOrderEvent.CANCEL)
            work_order.updated_by_id = actor_id
            self.session.flush()

            if vehicle.status is VehicleStatus.IN_REPAIR and not self._vehicles.open_work_order_count(vehicle_id):
                self._vehicles.mark_available(vehicle_id, actor_id)

        logger.info(
            "work_order_cancelled",
            extra={"work_order_id": str(work_order_id), "wo_number": work_order.wo_number},
        )
        return work_order_to_info(work_order)

    def get(self, work_order_id: UUID) -> WorkOrderInfo:
        return work_order_to_info(self._get_live(WorkOrder, work_order_id))

    def list_parts(self, work_order_id: UUID) -> list[WorkOrderPartInfo]:
        self._get_live(WorkOrder, work_order_id)
        return WorkOrderSelector(self.session).parts_for(work_order_id)

    # Internals

    def _rollup_parts_cost(self, work_order: WorkOrder) -> None:
        costs = self.session.execute(
            select(WorkOrderPart.total_cost).where(
                WorkOrderPart.work_order_id == work_order.id,
                WorkOrderPart.not_deleted(),
            )
        ).scalars().all()
        work_order.total_parts_cost = sum_line_costs(costs)
        work_order.total_cost = compute_work_order_total(
            work_order.total_parts_cost, work_order.labor_cost
        )

    def _transition(
        self,
        work_order: WorkOrder,
        event: WorkOrderEvent,
        allow_complete_from_pending: bool = False,
    ) -> None:
        target = next_work_order_status(
            work_order.status, event, allow_complete_from_pending
        )
        if target is None:
            logger.warning(
                "work_order_transition_rejected",
                extra={
                    "work_order_id": str(work_order.id),
                    "status": work_order.status.value,
                    "event": event.value,
                },
            )
            raise InvalidTransitionError(
                "WorkOrder",
                str(work_order.id),
                work_order.status.value,
                event.value,
                reason=f"cannot {event.value} a {work_order.status.value} work order",
            )
        work_order.status = target

    def _require_open(self, work_order: WorkOrder, operation: str) -> None:
        if work_order.is_terminal:
            raise WorkOrderTerminalError(
                str(work_order.id), work_order.status.value, operation
            )

    def _record_assignment(self, work_order: WorkOrder, actor_id: UUID) -> None:
        record_event(
            self.session,
            WorkOrderAssigned(
                occurred_at=self.clock.now(),
                work_order_id=work_order.id,
                wo_number=work_order.wo_number,
                vehicle_id=work_order.vehicle_id,
                mechanic_id=work_order.assigned_mechanic_id,
                assigned_by=actor_id,
            ),
        )
