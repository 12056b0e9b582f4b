"""
Module: dealership_kernel.models.sequence
Responsibility: Keyed counter rows backing every human-readable document
    number (vehicle codes, work order numbers, invoice numbers, part codes).
Architecture position: Kernel > Models.  Written only by SequenceService.

Invariants enforced:
    - One row per counter name (unique constraint).
    - current_value only increases outside of explicit resets; the next
      number is always taken from the locked row, never from a COUNT(*).
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from dealership_kernel.db.base import Base


class SequenceCounter(Base):
    """
    Named counter.

    Daily document numbers use one row per prefix and day
    (e.g. ``WO-20240115``); all-time codes use the bare prefix (``VH``).
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<SequenceCounter {self.name}={self.current_value}>"
