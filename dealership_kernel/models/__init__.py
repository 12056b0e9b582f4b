"""
ORM models for the dealership kernel.

Importing this package registers every table on ``Base.metadata``.
"""

from dealership_kernel.models.invoice import PurchaseInvoice, SalesInvoice
from dealership_kernel.models.party import Customer, Supplier
from dealership_kernel.models.sequence import SequenceCounter
from dealership_kernel.models.spare_part import SparePart, StockMovement
from dealership_kernel.models.user import User
from dealership_kernel.models.vehicle import Vehicle, VehicleCategory
from dealership_kernel.models.work_order import WorkOrder, WorkOrderPart

__all__ = [
    "Customer",
    "PurchaseInvoice",
    "SalesInvoice",
    "SequenceCounter",
    "SparePart",
    "StockMovement",
    "Supplier",
    "User",
    "Vehicle",
    "VehicleCategory",
    "WorkOrder",
    "WorkOrderPart",
]
