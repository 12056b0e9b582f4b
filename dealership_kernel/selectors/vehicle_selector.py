"""
Module: dealership_kernel.selectors.vehicle_selector
Responsibility: Read-only vehicle listings and the cost breakdown behind a
    vehicle's HPP.
Architecture position: Kernel > Selectors.
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from dealership_kernel.domain.cost_accounting import sum_line_costs
from dealership_kernel.domain.dtos import VehicleInfo
from dealership_kernel.domain.lifecycle import VehicleStatus, WorkOrderStatus
from dealership_kernel.exceptions import NotFoundError
from dealership_kernel.models.vehicle import Vehicle
from dealership_kernel.models.work_order import WorkOrder
from dealership_kernel.selectors.base import BaseSelector


def vehicle_to_info(vehicle: Vehicle) -> VehicleInfo:
    return VehicleInfo(
        id=vehicle.id,
        vehicle_code=vehicle.vehicle_code,
        category_id=vehicle.category_id,
        brand=vehicle.brand,
        model=vehicle.model,
        year=vehicle.year,
        chassis_number=vehicle.chassis_number,
        engine_number=vehicle.engine_number,
        plate_number=vehicle.plate_number,
        purchase_price=vehicle.purchase_price,
        repair_cost=vehicle.repair_cost,
        hpp=vehicle.hpp,
        selling_price=vehicle.selling_price,
        status=vehicle.status,
        purchased_date=vehicle.purchased_date,
        sold_date=vehicle.sold_date,
    )


@dataclass(frozen=True)
class VehicleCostBreakdown:
    """How a vehicle's cost basis is made up."""

    vehicle_id: UUID
    purchase_price: Decimal | None
    completed_work_orders: tuple[tuple[str, Decimal], ...]
    repair_cost: Decimal
    hpp: Decimal | None


class VehicleSelector(BaseSelector[Vehicle]):
    def list_vehicles(self, status: VehicleStatus | None = None) -> list[VehicleInfo]:
        """Live vehicles by code, optionally of one status."""
        stmt = select(Vehicle).where(Vehicle.not_deleted())
        if status is not None:
            stmt = stmt.where(Vehicle.status == status)
        vehicles = self.session.execute(stmt.order_by(Vehicle.vehicle_code)).scalars().all()
        return [vehicle_to_info(v) for v in vehicles]

    def available_for_sale(self) -> list[VehicleInfo]:
        return self.list_vehicles(VehicleStatus.AVAILABLE)

    def cost_breakdown(self, vehicle_id: UUID) -> VehicleCostBreakdown:
        """
        The completed work orders that make up repair_cost.

        ``repair_cost`` here is summed fresh from the work orders, so it can
        be compared with the stored value.
        """
        vehicle = self.session.execute(
            select(Vehicle).where(Vehicle.id == vehicle_id, Vehicle.not_deleted())
        ).scalar_one_or_none()
        if vehicle is None:
            raise NotFoundError("Vehicle", str(vehicle_id))
        orders = self.session.execute(
            select(WorkOrder.wo_number, WorkOrder.total_cost)
            .where(
                WorkOrder.vehicle_id == vehicle_id,
                WorkOrder.status == WorkOrderStatus.COMPLETED,
                WorkOrder.not_deleted(),
            )
            .order_by(WorkOrder.wo_number)
        ).all()
        lines = tuple((number, cost) for number, cost in orders)
        return VehicleCostBreakdown(
            vehicle_id=vehicle.id,
            purchase_price=vehicle.purchase_price,
            completed_work_orders=lines,
            repair_cost=sum_line_costs(cost for _, cost in lines),
            hpp=vehicle.hpp,
        )
