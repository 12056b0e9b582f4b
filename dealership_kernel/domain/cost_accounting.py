"""
CostAccounting -- pure derivations for cost basis (HPP) and sale profit.

Pure functional core: no I/O, no session, no clock.  Every function takes
Decimals and returns a Decimal rounded with ``round_money``.

    discount_amount = selling_price * discount_percentage / 100
    final_price     = selling_price - discount_amount
    hpp             = purchase_price + repair_cost
    profit          = final_price - hpp
                      (final_price - purchase_price - repair_cost when the
                       vehicle has no recorded hpp)
"""

from collections.abc import Iterable
from decimal import Decimal

from dealership_kernel.db.types import ZERO, round_money, to_money
from dealership_kernel.exceptions import ValidationError

HUNDRED = Decimal("100")


def _non_negative(field: str, value: Decimal) -> Decimal:
    try:
        value = to_money(value)
    except ValueError as exc:
        raise ValidationError(field, str(exc)) from exc
    if value < ZERO:
        raise ValidationError(field, f"must not be negative, got {value}")
    return value


def compute_discount(selling_price: Decimal, discount_percentage: Decimal) -> Decimal:
    """Discount amount for a percentage in [0, 100]."""
    selling_price = _non_negative("selling_price", selling_price)
    discount_percentage = _non_negative("discount_percentage", discount_percentage)
    if discount_percentage > HUNDRED:
        raise ValidationError(
            "discount_percentage",
            f"must not exceed 100, got {discount_percentage}",
        )
    return round_money(selling_price * discount_percentage / HUNDRED)


def compute_final_price(selling_price: Decimal, discount_amount: Decimal) -> Decimal:
    selling_price = _non_negative("selling_price", selling_price)
    discount_amount = _non_negative("discount_amount", discount_amount)
    if discount_amount > selling_price:
        raise ValidationError(
            "discount_amount",
            f"{discount_amount} exceeds selling price {selling_price}",
        )
    return round_money(selling_price - discount_amount)


def compute_hpp(purchase_price: Decimal | None, repair_cost: Decimal) -> Decimal:
    """Cost basis: acquisition price plus accumulated completed-repair cost."""
    base = ZERO if purchase_price is None else to_money(purchase_price)
    return round_money(base + to_money(repair_cost))


def compute_profit(
    final_price: Decimal,
    hpp: Decimal | None,
    purchase_price: Decimal | None = None,
    repair_cost: Decimal = ZERO,
) -> Decimal:
    """
    Sale profit against the vehicle's cost basis.

    When ``hpp`` is None the basis is rebuilt from its parts; the rounding is
    the same in both paths.
    """
    final_price = to_money(final_price)
    if hpp is not None:
        return round_money(final_price - to_money(hpp))
    basis = ZERO if purchase_price is None else to_money(purchase_price)
    return round_money(final_price - basis - to_money(repair_cost))


def compute_line_cost(unit_cost: Decimal, quantity: int) -> Decimal:
    """Cost of one part-usage line."""
    return round_money(to_money(unit_cost) * quantity)


def sum_line_costs(costs: Iterable[Decimal]) -> Decimal:
    """Sum a set of already-rounded costs; empty input sums to zero."""
    return round_money(sum((to_money(c) for c in costs), ZERO))


def compute_work_order_total(total_parts_cost: Decimal, labor_cost: Decimal) -> Decimal:
    return round_money(to_money(total_parts_cost) + to_money(labor_cost))
