"""
Lifecycle -- closed status enums and transition tables.

Pure domain module (no I/O).  Every status change in the kernel is looked up
in one of the tables below; a missing key means the transition is illegal.

Vehicle:

    (new) --ACQUIRED--> IN_REPAIR --REPAIRS_FINISHED--> AVAILABLE --SOLD--> SOLD
                            ^                               |
                            +--------REPAIR_OPENED----------+

    ADMIN_OVERRIDE moves any non-sold vehicle to AVAILABLE, IN_REPAIR or
    RESERVED.  SOLD is terminal; a sale can only be reached through SOLD.

Work order:

    PENDING --START--> IN_PROGRESS --COMPLETE--> COMPLETED
       |                    |
       +-----CANCEL---------+-----CANCEL-------> CANCELLED

    PENDING --COMPLETE--> COMPLETED is allowed only in permissive mode.
"""

from enum import Enum, unique


@unique
class VehicleStatus(str, Enum):
    """Vehicle stock status."""

    AVAILABLE = "available"
    IN_REPAIR = "in_repair"
    SOLD = "sold"
    RESERVED = "reserved"


@unique
class VehicleEvent(str, Enum):
    ACQUIRED = "acquired"
    REPAIR_OPENED = "repair_opened"
    REPAIRS_FINISHED = "repairs_finished"
    SOLD = "sold"
    ADMIN_OVERRIDE = "admin_override"


@unique
class WorkOrderStatus(str, Enum):
    """Work order execution status."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@unique
class WorkOrderEvent(str, Enum):
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"


@unique
class UserRole(str, Enum):
    ADMIN = "admin"
    CASHIER = "cashier"
    MECHANIC = "mechanic"


@unique
class PaymentMethod(str, Enum):
    CASH = "cash"
    TRANSFER = "transfer"


@unique
class TransactionType(str, Enum):
    """Who the dealership bought the vehicle from."""

    CUSTOMER = "customer"
    SUPPLIER = "supplier"


@unique
class MovementType(str, Enum):
    IN = "in"
    OUT = "out"


@unique
class ReferenceType(str, Enum):
    """What caused a stock movement."""

    WORK_ORDER = "work_order"
    PURCHASE = "purchase"
    ADJUSTMENT = "adjustment"


OPEN_WORK_ORDER_STATUSES: frozenset[WorkOrderStatus] = frozenset(
    {WorkOrderStatus.PENDING, WorkOrderStatus.IN_PROGRESS}
)

TERMINAL_WORK_ORDER_STATUSES: frozenset[WorkOrderStatus] = frozenset(
    {WorkOrderStatus.COMPLETED, WorkOrderStatus.CANCELLED}
)

UNDELETABLE_VEHICLE_STATUSES: frozenset[VehicleStatus] = frozenset(
    {VehicleStatus.SOLD, VehicleStatus.IN_REPAIR}
)

# (current, event) -> target.  ACQUIRED from None covers a brand-new record.
VEHICLE_TRANSITIONS: dict[tuple[VehicleStatus | None, VehicleEvent], VehicleStatus] = {
    (None, VehicleEvent.ACQUIRED): VehicleStatus.IN_REPAIR,
    (VehicleStatus.AVAILABLE, VehicleEvent.ACQUIRED): VehicleStatus.IN_REPAIR,
    (VehicleStatus.IN_REPAIR, VehicleEvent.ACQUIRED): VehicleStatus.IN_REPAIR,
    (VehicleStatus.AVAILABLE, VehicleEvent.REPAIR_OPENED): VehicleStatus.IN_REPAIR,
    (VehicleStatus.RESERVED, VehicleEvent.REPAIR_OPENED): VehicleStatus.IN_REPAIR,
    (VehicleStatus.IN_REPAIR, VehicleEvent.REPAIR_OPENED): VehicleStatus.IN_REPAIR,
    (VehicleStatus.IN_REPAIR, VehicleEvent.REPAIRS_FINISHED): VehicleStatus.AVAILABLE,
    (VehicleStatus.AVAILABLE, VehicleEvent.SOLD): VehicleStatus.SOLD,
}

ADMIN_OVERRIDE_TARGETS: frozenset[VehicleStatus] = frozenset(
    {VehicleStatus.AVAILABLE, VehicleStatus.IN_REPAIR, VehicleStatus.RESERVED}
)

WORK_ORDER_TRANSITIONS: dict[tuple[WorkOrderStatus, WorkOrderEvent], WorkOrderStatus] = {
    (WorkOrderStatus.PENDING, WorkOrderEvent.START): WorkOrderStatus.IN_PROGRESS,
    (WorkOrderStatus.IN_PROGRESS, WorkOrderEvent.COMPLETE): WorkOrderStatus.COMPLETED,
    (WorkOrderStatus.PENDING, WorkOrderEvent.CANCEL): WorkOrderStatus.CANCELLED,
    (WorkOrderStatus.IN_PROGRESS, WorkOrderEvent.CANCEL): WorkOrderStatus.CANCELLED,
}

# Only consulted when completing straight from PENDING is enabled
_PERMISSIVE_WORK_ORDER_TRANSITIONS: dict[
    tuple[WorkOrderStatus, WorkOrderEvent], WorkOrderStatus
] = {
    (WorkOrderStatus.PENDING, WorkOrderEvent.COMPLETE): WorkOrderStatus.COMPLETED,
}


def next_vehicle_status(
    current: VehicleStatus | None,
    event: VehicleEvent,
    target: VehicleStatus | None = None,
) -> VehicleStatus | None:
    """
    Resolve the status a vehicle moves to, or None when the move is illegal.

    ``target`` is required for ADMIN_OVERRIDE and ignored otherwise.
    """
    if event is VehicleEvent.ADMIN_OVERRIDE:
        if current is VehicleStatus.SOLD or current is None:
            return None
        if target not in ADMIN_OVERRIDE_TARGETS:
            return None
        return target
    return VEHICLE_TRANSITIONS.get((current, event))


def next_work_order_status(
    current: WorkOrderStatus,
    event: WorkOrderEvent,
    allow_complete_from_pending: bool = False,
) -> WorkOrderStatus | None:
    """Resolve the status a work order moves to, or None when illegal."""
    target = WORK_ORDER_TRANSITIONS.get((current, event))
    if target is None and allow_complete_from_pending:
        target = _PERMISSIVE_WORK_ORDER_TRANSITIONS.get((current, event))
    return target


def is_open(status: WorkOrderStatus) -> bool:
    return status in OPEN_WORK_ORDER_STATUSES
