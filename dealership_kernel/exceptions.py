"""
Typed exception hierarchy for the dealership kernel.

Every business-rule failure raised by the kernel is a subclass of
``DealershipKernelError`` carrying:

  1. a ``code`` class attribute (machine-readable, API-safe), and
  2. structured attributes describing what went wrong.

Callers catch by type and read attributes; they never parse messages.

    DealershipKernelError (base)
    |
    +-- InsufficientStockError            INSUFFICIENT_STOCK
    |
    +-- InvalidTransitionError            INVALID_TRANSITION
    |   +-- VehicleNotAvailableError      VEHICLE_NOT_AVAILABLE
    |   +-- VehicleNotDeletableError      VEHICLE_NOT_DELETABLE
    |   +-- WorkOrderTerminalError        WORK_ORDER_TERMINAL
    |
    +-- NotFoundError                     NOT_FOUND
    |
    +-- ValidationError                   VALIDATION_ERROR
    |   +-- InvalidProgressError          INVALID_PROGRESS
    |   +-- RoleMismatchError             ROLE_MISMATCH
    |   +-- DuplicateValueError           DUPLICATE_VALUE
    |
    +-- ConcurrencyConflictError          CONCURRENCY_CONFLICT
    |
    +-- ImmutabilityViolationError        IMMUTABILITY_VIOLATION

Mapping to transport status (applied by the excluded HTTP layer):

    NotFoundError             -> 404
    ValidationError           -> 400 / 422
    InsufficientStockError    -> 409
    InvalidTransitionError    -> 409
    ConcurrencyConflictError  -> 409 (caller should retry)

Anything that is not a ``DealershipKernelError`` (e.g. storage unreachable)
is unexpected and propagates unchanged.
"""


class DealershipKernelError(Exception):
    """Base exception for all dealership kernel errors."""

    code: str = "DEALERSHIP_KERNEL_ERROR"


# Stock


class InsufficientStockError(DealershipKernelError):
    """A stock adjustment would take a part's quantity below zero."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, part_id: str, available: int, requested: int):
        self.part_id = part_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for part {part_id}: "
            f"available {available}, requested {requested}"
        )


# Status transitions


class InvalidTransitionError(DealershipKernelError):
    """A status change is not permitted from the current state."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_status: str,
        target_status: str,
        reason: str | None = None,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_status = current_status
        self.target_status = target_status
        self.reason = reason
        message = (
            f"Cannot move {entity_type} {entity_id} "
            f"from {current_status} to {target_status}"
        )
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class VehicleNotAvailableError(InvalidTransitionError):
    """Vehicle must be available to be sold."""

    code: str = "VEHICLE_NOT_AVAILABLE"

    def __init__(self, vehicle_id: str, current_status: str):
        super().__init__(
            entity_type="Vehicle",
            entity_id=vehicle_id,
            current_status=current_status,
            target_status="sold",
            reason="vehicle is not available for sale",
        )


class VehicleNotDeletableError(InvalidTransitionError):
    """Sold and in-repair vehicles cannot be deleted."""

    code: str = "VEHICLE_NOT_DELETABLE"

    def __init__(self, vehicle_id: str, current_status: str):
        super().__init__(
            entity_type="Vehicle",
            entity_id=vehicle_id,
            current_status=current_status,
            target_status="deleted",
            reason=f"vehicles in status {current_status} cannot be deleted",
        )


class WorkOrderTerminalError(InvalidTransitionError):
    """Work order is completed or cancelled and accepts no further changes."""

    code: str = "WORK_ORDER_TERMINAL"

    def __init__(self, work_order_id: str, current_status: str, operation: str):
        self.operation = operation
        super().__init__(
            entity_type="WorkOrder",
            entity_id=work_order_id,
            current_status=current_status,
            target_status=current_status,
            reason=f"cannot {operation} a {current_status} work order",
        )


# Lookup


class NotFoundError(DealershipKernelError):
    """Referenced aggregate does not exist or is soft-deleted."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


# Validation


class ValidationError(DealershipKernelError):
    """Structural or range violation in the input."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class InvalidProgressError(ValidationError):
    """Progress percentage outside [0, 100]."""

    code: str = "INVALID_PROGRESS"

    def __init__(self, progress: int):
        self.progress = progress
        super().__init__(
            "progress_percentage",
            f"progress must be between 0 and 100, got {progress}",
        )


class RoleMismatchError(ValidationError):
    """User does not hold the role the operation requires."""

    code: str = "ROLE_MISMATCH"

    def __init__(self, user_id: str, required_role: str, actual_role: str):
        self.user_id = user_id
        self.required_role = required_role
        self.actual_role = actual_role
        super().__init__(
            "user_id",
            f"user {user_id} has role {actual_role}, {required_role} required",
        )


class DuplicateValueError(ValidationError):
    """A value that must be unique already exists."""

    code: str = "DUPLICATE_VALUE"

    def __init__(self, field: str, value: str):
        self.value = value
        super().__init__(field, f"{value!r} already exists")


# Concurrency


class ConcurrencyConflictError(DealershipKernelError):
    """Lock contention or serialization failure detected at commit time."""

    code: str = "CONCURRENCY_CONFLICT"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(
            f"Concurrent modification during {operation}: {detail}. Retry."
        )


# Persistence


class ImmutabilityViolationError(DealershipKernelError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
