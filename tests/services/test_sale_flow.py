"""
Tests for SaleFlow (sales invoices).

Covers:
- Discount, final price and profit against the HPP at sale time
- The vehicle moving to SOLD with price and date stamped
- Rejection of non-available vehicles with nothing written
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from dealership_kernel.domain.lifecycle import PaymentMethod, VehicleStatus
from dealership_kernel.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
    VehicleNotAvailableError,
)
from dealership_kernel.models.invoice import SalesInvoice


@pytest.fixture
def ready_vehicle(purchase_vehicle, work_orders, test_actor_id):
    """Purchased for 10,000,000 and repaired for 300,000; AVAILABLE."""
    invoice = purchase_vehicle(purchase_price=Decimal("10000000"))
    work_orders.complete(invoice.work_order_id, test_actor_id, labor_cost=Decimal("300000"))
    return invoice.vehicle_id


class TestSale:
    def test_sale_with_discount(self, sales, vehicles, ready_vehicle, customer, cashier):
        invoice = sales.create_sales_invoice(
            vehicle_id=ready_vehicle,
            customer_id=customer.id,
            selling_price=Decimal("12000000"),
            payment_method=PaymentMethod.TRANSFER,
            actor_id=cashier.id,
            discount_percentage=Decimal("5"),
        )

        assert invoice.invoice_number == "INV-20240115-0001"
        assert invoice.discount_amount == Decimal("600000")
        assert invoice.final_price == Decimal("11400000")
        assert invoice.hpp_at_sale == Decimal("10300000")
        assert invoice.profit_amount == Decimal("1100000")
        assert invoice.transaction_date == date(2024, 1, 15)

        vehicle = vehicles.get(ready_vehicle)
        assert vehicle.status is VehicleStatus.SOLD
        assert vehicle.selling_price == Decimal("11400000")
        assert vehicle.sold_date == date(2024, 1, 15)

    def test_sale_without_discount(self, sales, ready_vehicle, customer, cashier):
        invoice = sales.create_sales_invoice(
            vehicle_id=ready_vehicle,
            customer_id=customer.id,
            selling_price=Decimal("10000000"),
            payment_method=PaymentMethod.CASH,
            actor_id=cashier.id,
        )
        assert invoice.discount_amount == Decimal("0")
        assert invoice.final_price == Decimal("10000000")
        assert invoice.profit_amount == Decimal("-300000")

    def test_registered_vehicle_without_cost_basis(self, sales, vehicles, customer, cashier, test_actor_id):
        vehicle = vehicles.register_vehicle(
            brand="Mitsubishi", model="Xpander", year=2022, actor_id=test_actor_id
        )
        invoice = sales.create_sales_invoice(
            vehicle_id=vehicle.id,
            customer_id=customer.id,
            selling_price=Decimal("5000000"),
            payment_method=PaymentMethod.CASH,
            actor_id=cashier.id,
        )
        assert invoice.hpp_at_sale == Decimal("0")
        assert invoice.profit_amount == Decimal("5000000")

    def test_lookup_by_number(self, sales, ready_vehicle, customer, cashier):
        invoice = sales.create_sales_invoice(
            vehicle_id=ready_vehicle,
            customer_id=customer.id,
            selling_price=Decimal("12000000"),
            payment_method=PaymentMethod.TRANSFER,
            actor_id=cashier.id,
        )
        assert sales.get_by_number(invoice.invoice_number).id == invoice.id
        with pytest.raises(NotFoundError):
            sales.get_by_number("INV-19990101-0001")

    def test_sale_logged(self, sales, ready_vehicle, customer, cashier, captured_logs):
        invoice = sales.create_sales_invoice(
            vehicle_id=ready_vehicle,
            customer_id=customer.id,
            selling_price=Decimal("12000000"),
            payment_method=PaymentMethod.TRANSFER,
            actor_id=cashier.id,
            discount_percentage=Decimal("5"),
        )
        record = next(r for r in captured_logs() if r["message"] == "sale_recorded")
        assert record["invoice_number"] == invoice.invoice_number
        assert Decimal(record["profit_amount"]) == Decimal("1100000")


class TestRejections:
    def test_in_repair_vehicle_rejected(self, session, sales, vehicles, purchase_vehicle, customer, cashier):
        invoice = purchase_vehicle()

        with pytest.raises(VehicleNotAvailableError) as exc_info:
            sales.create_sales_invoice(
                vehicle_id=invoice.vehicle_id,
                customer_id=customer.id,
                selling_price=Decimal("12000000"),
                payment_method=PaymentMethod.CASH,
                actor_id=cashier.id,
            )

        assert isinstance(exc_info.value, InvalidTransitionError)
        assert exc_info.value.current_status == "in_repair"
        assert vehicles.get(invoice.vehicle_id).status is VehicleStatus.IN_REPAIR
        assert session.execute(select(func.count(SalesInvoice.id))).scalar_one() == 0

    def test_sold_vehicle_rejected(self, session, sales, ready_vehicle, customer, cashier):
        sales.create_sales_invoice(
            vehicle_id=ready_vehicle,
            customer_id=customer.id,
            selling_price=Decimal("12000000"),
            payment_method=PaymentMethod.CASH,
            actor_id=cashier.id,
        )
        with pytest.raises(VehicleNotAvailableError):
            sales.create_sales_invoice(
                vehicle_id=ready_vehicle,
                customer_id=customer.id,
                selling_price=Decimal("13000000"),
                payment_method=PaymentMethod.CASH,
                actor_id=cashier.id,
            )
        assert session.execute(select(func.count(SalesInvoice.id))).scalar_one() == 1

    def test_reserved_vehicle_rejected(self, sales, vehicles, customer, cashier, test_actor_id):
        vehicle = vehicles.register_vehicle(
            brand="Honda", model="HR-V", year=2021, actor_id=test_actor_id
        )
        vehicles.update_status(vehicle.id, VehicleStatus.RESERVED, test_actor_id)
        with pytest.raises(VehicleNotAvailableError):
            sales.create_sales_invoice(
                vehicle_id=vehicle.id,
                customer_id=customer.id,
                selling_price=Decimal("1"),
                payment_method=PaymentMethod.CASH,
                actor_id=cashier.id,
            )

    @pytest.mark.parametrize("discount", [Decimal("-1"), Decimal("100.5")])
    def test_discount_out_of_range(self, sales, ready_vehicle, customer, cashier, discount):
        with pytest.raises(ValidationError) as exc_info:
            sales.create_sales_invoice(
                vehicle_id=ready_vehicle,
                customer_id=customer.id,
                selling_price=Decimal("12000000"),
                payment_method=PaymentMethod.CASH,
                actor_id=cashier.id,
                discount_percentage=discount,
            )
        assert exc_info.value.field == "discount_percentage"

    def test_unknown_customer(self, sales, ready_vehicle, cashier):
        with pytest.raises(NotFoundError) as exc_info:
            sales.create_sales_invoice(
                vehicle_id=ready_vehicle,
                customer_id=uuid4(),
                selling_price=Decimal("12000000"),
                payment_method=PaymentMethod.CASH,
                actor_id=cashier.id,
            )
        assert exc_info.value.entity_type == "Customer"

    def test_unknown_vehicle(self, sales, customer, cashier):
        with pytest.raises(NotFoundError):
            sales.create_sales_invoice(
                vehicle_id=uuid4(),
                customer_id=customer.id,
                selling_price=Decimal("1"),
                payment_method=PaymentMethod.CASH,
                actor_id=cashier.id,
            )

    def test_rejection_logged(self, sales, purchase_vehicle, customer, cashier, captured_logs):
        invoice = purchase_vehicle()
        with pytest.raises(VehicleNotAvailableError):
            sales.create_sales_invoice(
                vehicle_id=invoice.vehicle_id,
                customer_id=customer.id,
                selling_price=Decimal("1"),
                payment_method=PaymentMethod.CASH,
                actor_id=cashier.id,
            )
        record = next(r for r in captured_logs() if r["message"] == "sale_rejected")
        assert record["level"] == "WARNING"
        assert record["status"] == "in_repair"
