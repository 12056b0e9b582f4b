"""
ORM-level immutability for the cost ledgers.

Part consumption rows (WorkOrderPart) and stock movements (StockMovement) are
the evidence behind a vehicle's cost basis and a part's quantity.  Once
flushed they are never edited in place:

    Entity          | Mutable after insert                       | DELETE
    ----------------|--------------------------------------------|--------
    WorkOrderPart   | deleted_at, deleted_by_id, updated_* only  | blocked
    StockMovement   | updated_* only                             | blocked

SQLAlchemy fires ``before_update`` / ``before_delete`` before the SQL is sent,
so a violation aborts the flush and the database is never touched.

Called once at startup (``bootstrap()`` does this):

    from dealership_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()

Tests that need to tamper with rows on purpose may call
``unregister_immutability_listeners()`` and re-register afterwards.
"""

from sqlalchemy import event, inspect

from dealership_kernel.exceptions import ImmutabilityViolationError
from dealership_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

WORK_ORDER_PART_MUTABLE_FIELDS = frozenset({
    "deleted_at",
    "deleted_by_id",
    "updated_at",
    "updated_by_id",
})

STOCK_MOVEMENT_MUTABLE_FIELDS = frozenset({
    "updated_at",
    "updated_by_id",
})


def _reject_changed_fields(target, entity_type: str, mutable_fields: frozenset[str]) -> None:
    insp = inspect(target)
    for attr in insp.attrs:
        if attr.key in mutable_fields:
            continue
        if attr.history.has_changes():
            logger.error(
                "immutability_violation_blocked",
                extra={
                    "entity_type": entity_type,
                    "entity_id": str(target.id),
                    "operation": "UPDATE",
                    "field": attr.key,
                },
            )
            raise ImmutabilityViolationError(
                entity_type=entity_type,
                entity_id=str(target.id),
                reason=f"Cannot modify field '{attr.key}'",
            )


def _reject_delete(target, entity_type: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=f"{entity_type} rows cannot be deleted",
    )


def _check_work_order_part_update(mapper, connection, target):
    """Only the soft-delete stamp may change on a part usage line."""
    _reject_changed_fields(target, "WorkOrderPart", WORK_ORDER_PART_MUTABLE_FIELDS)


def _check_work_order_part_delete(mapper, connection, target):
    _reject_delete(target, "WorkOrderPart")


def _check_stock_movement_update(mapper, connection, target):
    _reject_changed_fields(target, "StockMovement", STOCK_MOVEMENT_MUTABLE_FIELDS)


def _check_stock_movement_delete(mapper, connection, target):
    _reject_delete(target, "StockMovement")


def _listeners():
    from dealership_kernel.models.spare_part import StockMovement
    from dealership_kernel.models.work_order import WorkOrderPart

    return [
        (WorkOrderPart, "before_update", _check_work_order_part_update),
        (WorkOrderPart, "before_delete", _check_work_order_part_delete),
        (StockMovement, "before_update", _check_stock_movement_update),
        (StockMovement, "before_delete", _check_stock_movement_delete),
    ]


def register_immutability_listeners() -> None:
    """Register the before_update/before_delete guards (idempotent)."""
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if it was never registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners() -> None:
    """
    Remove the guards.

    WARNING: Only use this in tests that need to violate the rules on purpose.
    """
    for target, event_name, listener_fn in _listeners():
        _safe_remove_listener(target, event_name, listener_fn)
