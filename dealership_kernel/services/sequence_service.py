"""
SequenceService -- document numbers from locked counter rows.

Responsibility:
    Hands out unique, human-readable numbers: vehicle codes (VH-0001),
    work order numbers (WO-20240115-0001), invoice numbers
    (INV-/PUR-SUP-/PUR-CUS-...) and spare part codes (SP-000001).  Each
    number comes from a keyed counter row incremented under
    ``SELECT ... FOR UPDATE``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Called by
    VehicleLifecycle, WorkOrderEngine, InventoryLedger and the flows.

Invariants enforced:
    - Uniqueness under concurrency: the next value is always read from the
      locked counter row.  Counting existing documents and adding one is
      FORBIDDEN; two concurrent callers would both read the same count.
    - Transactional: the increment is only visible once the caller's
      transaction commits.  A rollback leaves a gap, never a duplicate.

Failure modes:
    - IntegrityError on concurrent first use of a counter name (handled
      with a savepoint rollback and a locked re-read).
"""

from datetime import date
from enum import Enum

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dealership_kernel.exceptions import ValidationError
from dealership_kernel.logging_config import get_logger
from dealership_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


class SequenceScope(str, Enum):
    """How often a numbered series restarts."""

    DAILY = "daily"
    ALL_TIME = "all_time"


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Contract:
        Accepts a counter name and returns the next integer for it, or a
        prefix/scope/width triple and returns a formatted identifier.

    Guarantees:
        - Concurrency safety: ``SELECT ... FOR UPDATE`` (BEGIN IMMEDIATE on
          SQLite) serializes allocations for the same counter.
        - Values for one counter are strictly increasing.

    Non-goals:
        - Does NOT call ``session.commit()``.
        - Does NOT promise gap-free series; rolled-back numbers are lost.

    Usage:
        with session_scope() as session:
            number = SequenceService(session).next_identifier(
                "WO", SequenceScope.DAILY, 4, on_date=date(2024, 1, 15),
            )
            # "WO-20240115-0001"
    """

    def __init__(self, session: Session):
        self._session = session

    def next_value(self, sequence_name: str) -> int:
        """
        Get the next value for a named counter.

        1. Lock the counter row (or create it on first use)
        2. Increment it
        3. Return the new value

        Returns:
            The next value (always > 0).
        """
        if not sequence_name:
            raise ValidationError("sequence_name", "must not be empty")

        counter = self._lock_counter(sequence_name)

        if counter is None:
            # First use of this counter.  Another transaction may be creating
            # it at the same moment; the savepoint keeps the caller's work.
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._lock_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def next_identifier(
        self,
        prefix: str,
        scope: SequenceScope,
        width: int,
        on_date: date | None = None,
    ) -> str:
        """
        Allocate and format the next identifier for ``prefix``.

        DAILY:    ``PREFIX-YYYYMMDD-NNNN``, counter keyed ``PREFIX-YYYYMMDD``
        ALL_TIME: ``PREFIX-NNNN``, counter keyed ``PREFIX``

        ``width`` is a minimum; values that outgrow it are printed in full.

        Raises:
            ValidationError: If a DAILY identifier is requested without a date.
        """
        if width < 1:
            raise ValidationError("width", f"must be positive, got {width}")

        if scope is SequenceScope.DAILY:
            if on_date is None:
                raise ValidationError("on_date", "required for daily sequences")
            key = f"{prefix}-{on_date:%Y%m%d}"
        else:
            key = prefix

        value = self.next_value(key)
        return f"{key}-{value:0{width}d}"

    def current_value(self, sequence_name: str) -> int | None:
        """
        Get the current value of a counter without incrementing.

        Returns:
            Current value, or None if the counter doesn't exist.
        """
        counter = self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()

        return counter.current_value if counter else None

    def reset(self, sequence_name: str, value: int = 0) -> None:
        """
        Reset a counter to a specific value.

        WARNING: For tests and data migrations only.  Resetting a live counter
        below an issued number produces duplicate document numbers.
        """
        counter = self._lock_counter(sequence_name)

        if counter is None:
            counter = SequenceCounter(name=sequence_name, current_value=value)
            self._session.add(counter)
        else:
            counter.current_value = value

        self._session.flush()

    def _lock_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
