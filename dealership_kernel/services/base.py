"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every service in the kernel layer.  Services receive a SQLAlchemy
    ``Session`` and persist through ``session.flush()``, never
    ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell.  Every write-side service in
    ``dealership_kernel/services/`` extends this class.

Invariants enforced:
    - Transaction boundaries belong to the caller (``session_scope`` or
      ``unit_of_work``).  A flow that composes several services therefore
      commits or rolls back as one unit.
    - Row locks are taken with ``SELECT ... FOR UPDATE`` through
      ``_get_for_update``; lookups skip soft-deleted rows.
"""

from abc import ABC
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from dealership_kernel.db.base import Base
from dealership_kernel.domain.clock import Clock, SystemClock
from dealership_kernel.domain.settings import DEFAULT_SETTINGS, KernelSettings
from dealership_kernel.exceptions import NotFoundError

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide listing/report queries -- those belong in
          ``dealership_kernel/selectors/``.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settings: KernelSettings | None = None,
    ):
        """
        Initialize the service.

        Args:
            session: SQLAlchemy session for database operations.
            clock: Time source; defaults to SystemClock.
            settings: Tunable constants; defaults to DEFAULT_SETTINGS.
        """
        self.session = session
        self.clock = clock or SystemClock()
        self.settings = settings or DEFAULT_SETTINGS

    def _get_live(self, model: type[ModelType], entity_id: UUID) -> ModelType:
        """Get a non-deleted row by id, raising NotFoundError."""
        row = self.session.execute(
            select(model).where(model.id == entity_id, model.not_deleted())
        ).scalar_one_or_none()
        if row is None:
            raise NotFoundError(model.__name__, str(entity_id))
        return row

    def _get_for_update(self, model: type[ModelType], entity_id: UUID) -> ModelType:
        """Get a non-deleted row by id under a row lock, raising NotFoundError."""
        row = self.session.execute(
            select(model)
            .where(model.id == entity_id, model.not_deleted())
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if row is None:
            raise NotFoundError(model.__name__, str(entity_id))
        return row
