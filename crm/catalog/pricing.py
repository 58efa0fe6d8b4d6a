"""Pricing / billing calculator.

Pure functions over a service + plan + billing cycle. Rounding matches
JavaScript ``Math.round`` (half rounds up) so totals agree with what the
front-end displays.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Any, Optional

from crm.common.constants import BillingCycle
from crm.config import settings

_HALF = Decimal("0.5")


def round_half_up(value: Decimal | int | float) -> int:
    """Halves round toward positive infinity: floor(x + 0.5)."""
    return int((Decimal(str(value)) + _HALF).to_integral_value(rounding=ROUND_FLOOR))


def effective_gst_rate(value: Any) -> Decimal:
    """Stored rate when it is a positive number, else the default (18)."""
    default = Decimal(settings.DEFAULT_GST_RATE)
    if value is None or isinstance(value, bool):
        return default
    try:
        rate = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default
    if not rate.is_finite() or rate <= 0:
        return default
    return rate


def plan_price(plan: Any, cycle: BillingCycle) -> Decimal:
    """The plan's price field for *cycle*; missing prices count as 0."""
    field = {
        BillingCycle.monthly: "price_monthly",
        BillingCycle.yearly: "price_yearly",
        BillingCycle.one_time: "price_one_time",
    }[BillingCycle(cycle)]
    return Decimal(str(getattr(plan, field, None) or 0))


def total_with_gst(amount: Decimal | int | float, gst_rate: Any) -> int:
    base = Decimal(str(amount or 0))
    rate = effective_gst_rate(gst_rate)
    return round_half_up(base + base * rate / 100)


def base_amount(
    service: Any,
    plan_id: Optional[Any],
    cycle: BillingCycle = BillingCycle.monthly,
) -> Decimal:
    """Pre-tax amount: the plan's price for the cycle when non-zero, else
    the service base price, else 0."""
    if service is None:
        return Decimal("0")

    base = Decimal("0")
    plan = service.find_plan(plan_id) if plan_id else None
    if plan is not None:
        base = plan_price(plan, cycle)

    if not base and service.base_price is not None:
        base = Decimal(str(service.base_price))
    return base


def compute_total(
    service: Any,
    plan_id: Optional[Any],
    cycle: BillingCycle = BillingCycle.monthly,
) -> int:
    """Total price with GST for *service* / *plan_id* / *cycle*.

    A 1000 plan at 18% gives 1180.
    """
    if service is None:
        return 0
    return total_with_gst(base_amount(service, plan_id, cycle), service.gst_rate)
