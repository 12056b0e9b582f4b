"""
Unit of work -- one transaction per business operation.

``unit_of_work`` wraps ``session_scope`` and publishes the domain events the
operation recorded, but only after the commit succeeded.  ``atomic`` makes a
multi-step operation all-or-nothing inside a longer caller transaction by
running it in a savepoint.

Usage:
    sink = LoggingEventSink()
    with unit_of_work(sink, operation="purchase_invoice") as session:
        AcquisitionFlow(session, clock=clock).create_purchase_invoice(...)
    # events delivered here
"""

from contextlib import contextmanager
from typing import Generator
from uuid import uuid4

from sqlalchemy.orm import Session, sessionmaker

from dealership_kernel.db.engine import session_scope
from dealership_kernel.logging_config import LogContext, get_logger
from dealership_kernel.services.event_sink import (
    EventSink,
    drain_pending_events,
    pending_events,
    publish_all,
)

logger = get_logger("services.unit_of_work")


@contextmanager
def unit_of_work(
    sink: EventSink,
    factory: sessionmaker[Session] | None = None,
    operation: str = "transaction",
) -> Generator[Session, None, None]:
    """
    Commit the block's work, then publish its events.

    Every line logged inside the block carries the caller's correlation_id, or a
    fresh one when none is bound.
    On any exception the transaction rolls back, recorded events are
    dropped, and the exception propagates (lock contention surfaces as
    ConcurrencyConflictError).
    """
    correlation_id = LogContext.get_all().get("correlation_id") or uuid4().hex
    with LogContext.bind(correlation_id=correlation_id):
        with session_scope(factory, operation) as session:
            yield session
            events = drain_pending_events(session)
        # session_scope has committed by the time control reaches here
        if events:
            logger.debug(
                "publishing_events",
                extra={"operation": operation, "event_count": len(events)},
            )
        publish_all(sink, events)


@contextmanager
def atomic(session: Session) -> Generator[Session, None, None]:
    """
    Run the block in a savepoint.

    If the block raises, its writes and any events it recorded are rolled
    back while earlier work in the caller's transaction is kept.
    """
    events = pending_events(session)
    mark = len(events)
    try:
        with session.begin_nested():
            yield session
    except Exception:
        del events[mark:]
        raise
