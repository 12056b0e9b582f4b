"""
Module: dealership_kernel.selectors.work_order_selector
Responsibility: Read-only work order listings (per vehicle, per mechanic) and
    part usage lines.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import select

from dealership_kernel.domain.dtos import WorkOrderInfo, WorkOrderPartInfo
from dealership_kernel.domain.lifecycle import OPEN_WORK_ORDER_STATUSES
from dealership_kernel.models.work_order import WorkOrder, WorkOrderPart
from dealership_kernel.selectors.base import BaseSelector


def work_order_to_info(work_order: WorkOrder) -> WorkOrderInfo:
    return WorkOrderInfo(
        id=work_order.id,
        wo_number=work_order.wo_number,
        vehicle_id=work_order.vehicle_id,
        description=work_order.description,
        assigned_mechanic_id=work_order.assigned_mechanic_id,
        status=work_order.status,
        progress_percentage=work_order.progress_percentage,
        total_parts_cost=work_order.total_parts_cost,
        labor_cost=work_order.labor_cost,
        total_cost=work_order.total_cost,
        started_at=work_order.started_at,
        completed_at=work_order.completed_at,
    )


def usage_to_info(usage: WorkOrderPart) -> WorkOrderPartInfo:
    return WorkOrderPartInfo(
        id=usage.id,
        work_order_id=usage.work_order_id,
        spare_part_id=usage.spare_part_id,
        quantity_used=usage.quantity_used,
        unit_cost=usage.unit_cost,
        total_cost=usage.total_cost,
        used_by_id=usage.used_by_id,
        used_at=usage.used_at,
    )


class WorkOrderSelector(BaseSelector[WorkOrder]):
    def for_vehicle(self, vehicle_id: UUID) -> list[WorkOrderInfo]:
        orders = self.session.execute(
            select(WorkOrder)
            .where(WorkOrder.vehicle_id == vehicle_id, WorkOrder.not_deleted())
            .order_by(WorkOrder.wo_number)
        ).scalars().all()
        return [work_order_to_info(o) for o in orders]

    def open_for_mechanic(self, mechanic_id: UUID) -> list[WorkOrderInfo]:
        """A mechanic's pending and in-progress orders."""
        orders = self.session.execute(
            select(WorkOrder)
            .where(
                WorkOrder.assigned_mechanic_id == mechanic_id,
                WorkOrder.status.in_(list(OPEN_WORK_ORDER_STATUSES)),
                WorkOrder.not_deleted(),
            )
            .order_by(WorkOrder.wo_number)
        ).scalars().all()
        return [work_order_to_info(o) for o in orders]

    def parts_for(self, work_order_id: UUID) -> list[WorkOrderPartInfo]:
        usages = self.session.execute(
            select(WorkOrderPart)
            .where(
                WorkOrderPart.work_order_id == work_order_id,
                WorkOrderPart.not_deleted(),
            )
            .order_by(WorkOrderPart.used_at, WorkOrderPart.created_at)
        ).scalars().all()
        return [usage_to_info(u) for u in usages]
