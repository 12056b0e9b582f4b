"""Selectors for the dealership kernel (read side)."""

from dealership_kernel.selectors.inventory_selector import InventorySelector
from dealership_kernel.selectors.vehicle_selector import VehicleCostBreakdown, VehicleSelector
from dealership_kernel.selectors.work_order_selector import WorkOrderSelector

__all__ = [
    "InventorySelector",
    "VehicleCostBreakdown",
    "VehicleSelector",
    "WorkOrderSelector",
]
