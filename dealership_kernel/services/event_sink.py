"""
EventSink -- the seam to the notification collaborator.

Services never deliver notifications themselves.  They record domain events
on the session (``record_event``); ``unit_of_work`` hands the recorded events
to an ``EventSink`` once the transaction has committed, and discards them
when it rolls back.  A mechanic is therefore never told about a work order
that does not exist.
"""

from typing import Protocol, runtime_checkable

from sqlalchemy.orm import Session

from dealership_kernel.domain.events import DomainEvent
from dealership_kernel.logging_config import get_logger

logger = get_logger("services.events")

_PENDING_KEY = "dealership_pending_events"


@runtime_checkable
class EventSink(Protocol):
    """Anything that accepts committed domain events."""

    def publish(self, event: DomainEvent) -> None: ...


class CollectingEventSink:
    """Buffers published events in memory."""

    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    def publish(self, event: DomainEvent) -> None:
        self.events.append(event)

    def of_type(self, event_cls: type[DomainEvent]) -> list[DomainEvent]:
        return [e for e in self.events if isinstance(e, event_cls)]

    def clear(self) -> None:
        self.events.clear()


class LoggingEventSink:
    """Writes one structured log line per event."""

    def publish(self, event: DomainEvent) -> None:
        payload = {
            k: v for k, v in vars(event).items() if k != "occurred_at"
        }
        logger.info(
            "domain_event_published",
            extra={
                "event_type": event.event_type,
                "occurred_at": event.occurred_at,
                "payload": payload,
            },
        )


def pending_events(session: Session) -> list[DomainEvent]:
    """Events recorded on ``session`` and not yet published."""
    return session.info.setdefault(_PENDING_KEY, [])


def record_event(session: Session, event: DomainEvent) -> None:
    pending_events(session).append(event)
    logger.debug("domain_event_recorded", extra={"event_type": event.event_type})


def drain_pending_events(session: Session) -> list[DomainEvent]:
    """Remove and return everything recorded on ``session``."""
    events = list(pending_events(session))
    session.info[_PENDING_KEY] = []
    return events


def publish_all(sink: EventSink, events: list[DomainEvent]) -> None:
    """
    Deliver events in recording order.

    Delivery failures are logged and do not undo the committed work.
    """
    for event in events:
        try:
            sink.publish(event)
        except Exception:
            logger.exception(
                "domain_event_delivery_failed",
                extra={"event_type": event.event_type},
            )
