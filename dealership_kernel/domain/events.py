"""
Domain events emitted by the kernel.

Plain immutable data handed to an ``EventSink`` after the transaction that
produced them commits.  Delivery (push, e-mail, in-app notification) is the
sink's business.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class DomainEvent:
    occurred_at: datetime

    @property
    def event_type(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class WorkOrderAssigned(DomainEvent):
    work_order_id: UUID
    wo_number: str
    vehicle_id: UUID
    mechanic_id: UUID
    assigned_by: UUID


@dataclass(frozen=True)
class WorkOrderCompleted(DomainEvent):
    work_order_id: UUID
    wo_number: str
    vehicle_id: UUID
    total_cost: Decimal
    vehicle_hpp: Decimal
    vehicle_available: bool


@dataclass(frozen=True)
class LowStockDetected(DomainEvent):
    spare_part_id: UUID
    part_code: str
    name: str
    stock_quantity: int
    min_stock_level: int
