"""
Module: dealership_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.  Selectors
    are the read side of the kernel: listings and derived views such as low
    stock, open work orders and cost breakdowns.
Architecture position: Kernel > Selectors.  May import from db/, domain/ and
    models/.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors never add, flush, delete or commit.
    - DTO return convention: selectors return frozen dataclasses, not ORM rows.
    - Soft-deleted rows are excluded from every result.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from dealership_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only queries,
        and return DTOs.  They MUST NOT mutate any data.
    """

    def __init__(self, session: Session):
        self.session = session
