"""
Fee Policy Module

Plan surcharges applied to debits (online payments, cash withdrawals,
transfers) and the one-off fees charged for plan upgrades. Thresholds and
upgrade fees are expressed in the configured base currency.
"""

from decimal import Decimal
from typing import Optional

from .config import get_config
from .entities import Plan


def surcharge_rate(plan: Plan, amount_in_base: Optional[Decimal] = None) -> Decimal:
    """
    Surcharge rate for a debit under the given plan

    Args:
        plan: Fee plan of the debited account
        amount_in_base: Nominal amount expressed in the base currency;
            only consulted for the silver plan

    Returns:
        Fractional surcharge (0.002 = 0.2%)

    Raises:
        ValueError: If the plan is silver and amount_in_base is missing
    """
    settings = get_config()

    if plan == Plan.STANDARD:
        return settings.standard_surcharge_rate

    if plan == Plan.SILVER:
        if amount_in_base is None:
            raise ValueError("Silver plan surcharge needs the amount in the base currency")
        if amount_in_base < settings.silver_surcharge_threshold:
            return settings.silver_surcharge_rate
        return Decimal('0')

    # Gold and student plans pay no surcharge
    return Decimal('0')


def needs_base_amount(plan: Plan) -> bool:
    """Check if the surcharge for plan depends on the amount in the base currency"""
    return plan == Plan.SILVER


def total_with_fee(plan: Plan, amount: Decimal, amount_in_base: Optional[Decimal] = None) -> Decimal:
    """Nominal amount plus the plan surcharge, in the amount's own currency"""
    return amount + amount * surcharge_rate(plan, amount_in_base)


def upgrade_fee(current_plan: Plan, new_plan: Plan) -> Decimal:
    """
    Fee (in the base currency) for moving an account to new_plan

    silver costs 100, silver -> gold costs 250, any other path to gold 350.
    """
    settings = get_config()

    if new_plan == Plan.SILVER:
        return settings.silver_upgrade_fee
    if new_plan == Plan.GOLD and current_plan == Plan.SILVER:
        return settings.silver_to_gold_upgrade_fee
    if new_plan == Plan.GOLD:
        return settings.gold_upgrade_fee

    raise ValueError(f"Cannot upgrade to plan {new_plan.value}")
