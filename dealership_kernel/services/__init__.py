"""Services for the dealership kernel (write side)."""

from dealership_kernel.services.acquisition_flow import AcquisitionFlow, NewVehicle
from dealership_kernel.services.event_sink import (
    CollectingEventSink,
    EventSink,
    LoggingEventSink,
    record_event,
)
from dealership_kernel.services.inventory_ledger import InventoryLedger
from dealership_kernel.services.role_authority import RoleAuthority
from dealership_kernel.services.sale_flow import SaleFlow
from dealership_kernel.services.sequence_service import SequenceScope, SequenceService
from dealership_kernel.services.unit_of_work import atomic, unit_of_work
from dealership_kernel.services.vehicle_lifecycle import VehicleLifecycle
from dealership_kernel.services.work_order_engine import WorkOrderEngine

__all__ = [
    "AcquisitionFlow",
    "CollectingEventSink",
    "EventSink",
    "InventoryLedger",
    "LoggingEventSink",
    "NewVehicle",
    "RoleAuthority",
    "SaleFlow",
    "SequenceScope",
    "SequenceService",
    "VehicleLifecycle",
    "WorkOrderEngine",
    "atomic",
    "record_event",
    "unit_of_work",
]
