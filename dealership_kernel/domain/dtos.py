"""
Read-only snapshots returned by services and selectors.

Services never hand ORM instances to callers; the rendering and HTTP
collaborators consume these frozen dataclasses instead.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from dealership_kernel.domain.lifecycle import (
    MovementType,
    PaymentMethod,
    ReferenceType,
    TransactionType,
    VehicleStatus,
    WorkOrderStatus,
)


@dataclass(frozen=True)
class VehicleInfo:
    id: UUID
    vehicle_code: str
    category_id: UUID | None
    brand: str
    model: str
    year: int
    chassis_number: str | None
    engine_number: str | None
    plate_number: str | None
    purchase_price: Decimal | None
    repair_cost: Decimal
    hpp: Decimal | None
    selling_price: Decimal | None
    status: VehicleStatus
    purchased_date: date | None
    sold_date: date | None

    @property
    def is_sold(self) -> bool:
        return self.status is VehicleStatus.SOLD


@dataclass(frozen=True)
class WorkOrderInfo:
    id: UUID
    wo_number: str
    vehicle_id: UUID
    description: str
    assigned_mechanic_id: UUID
    status: WorkOrderStatus
    progress_percentage: int
    total_parts_cost: Decimal
    labor_cost: Decimal
    total_cost: Decimal
    started_at: datetime | None
    completed_at: datetime | None


@dataclass(frozen=True)
class WorkOrderPartInfo:
    id: UUID
    work_order_id: UUID
    spare_part_id: UUID
    quantity_used: int
    unit_cost: Decimal
    total_cost: Decimal
    used_by_id: UUID
    used_at: datetime


@dataclass(frozen=True)
class SparePartInfo:
    id: UUID
    part_code: str
    barcode: str | None
    name: str
    cost_price: Decimal
    selling_price: Decimal
    stock_quantity: int
    min_stock_level: int
    unit: str

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.min_stock_level


@dataclass(frozen=True)
class StockConsumption:
    """Result of consuming stock: the frozen unit cost and what is left."""

    spare_part_id: UUID
    quantity: int
    unit_cost: Decimal
    remaining_quantity: int


@dataclass(frozen=True)
class StockMovementInfo:
    id: UUID
    spare_part_id: UUID
    movement_type: MovementType
    quantity: int
    quantity_after: int
    reference_type: ReferenceType
    reference_id: UUID | None
    unit_cost: Decimal
    total_value: Decimal
    notes: str | None


@dataclass(frozen=True)
class PurchaseInvoiceInfo:
    id: UUID
    invoice_number: str
    transaction_type: TransactionType
    customer_id: UUID | None
    supplier_id: UUID | None
    vehicle_id: UUID
    purchase_price: Decimal
    negotiated_price: Decimal | None
    final_price: Decimal
    payment_method: PaymentMethod
    transaction_date: date
    work_order_id: UUID


@dataclass(frozen=True)
class SalesInvoiceInfo:
    id: UUID
    invoice_number: str
    customer_id: UUID
    vehicle_id: UUID
    selling_price: Decimal
    discount_percentage: Decimal
    discount_amount: Decimal
    final_price: Decimal
    hpp_at_sale: Decimal
    profit_amount: Decimal
    payment_method: PaymentMethod
    transaction_date: date
