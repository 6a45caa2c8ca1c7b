"""
Aggregate Balance Aggregator

Rolls per-counterpart net balances up into dashboard views.

Two presentations are supported and must stay distinct:
    aggregate_balances()  - nets each counterpart to one signed figure and sums
                            the negative and positive sides separately
    advanced_breakdown()  - same netted view, plus gross figures that are
                            accumulated without netting (see
                            pairwise_balance.counterpart_balances)

Counterparts whose balance rounds to zero are left out of both lists.
Lists are sorted by amount, largest first; ties keep input order.
"""

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from splitledger.schemas.balance_schema import (
    AdvancedBalanceSummary, BalanceSummary, CounterpartBalance, OweDetails, UserProfile
)
from splitledger.utils.ledger_rules import ZERO, round_decimal

logger = logging.getLogger(__name__)


def _entry(user_id: str, amount: Decimal, profiles: Mapping[str, UserProfile]) -> CounterpartBalance:
    profile = profiles.get(user_id)
    return CounterpartBalance(
        user_id=user_id,
        name=profile.name if profile else "",
        image_url=profile.image_url if profile else None,
        amount=amount
    )


def aggregate_balances(
    per_counterpart: Mapping[str, Decimal],
    profiles: Optional[Mapping[str, UserProfile]] = None
) -> BalanceSummary:
    """
    Build the you-owe / you-are-owed summary.

    Args:
        per_counterpart: Net balance per counterpart (positive = they owe the viewer)
        profiles: Optional display data per counterpart

    Returns:
        BalanceSummary with total_balance = you_are_owed - you_owe
    """
    profiles = profiles or {}
    you_owe = ZERO
    you_are_owed = ZERO
    you_owe_list: List[CounterpartBalance] = []
    you_are_owed_list: List[CounterpartBalance] = []

    for user_id, balance in per_counterpart.items():
        if round_decimal(balance) == ZERO:
            continue
        if balance > ZERO:
            you_are_owed += balance
            you_are_owed_list.append(_entry(user_id, balance, profiles))
        else:
            you_owe += -balance
            you_owe_list.append(_entry(user_id, -balance, profiles))

    you_owe_list.sort(key=lambda entry: entry.amount, reverse=True)
    you_are_owed_list.sort(key=lambda entry: entry.amount, reverse=True)

    return BalanceSummary(
        you_owe=you_owe,
        you_are_owed=you_are_owed,
        total_balance=you_are_owed - you_owe,
        owe_details=OweDetails(you_owe=you_owe_list, you_are_owed=you_are_owed_list)
    )


def advanced_breakdown(
    per_counterpart: Mapping[str, Decimal],
    gross_you_owe: Decimal,
    gross_you_are_owed: Decimal,
    profiles: Optional[Mapping[str, UserProfile]] = None
) -> AdvancedBalanceSummary:
    """
    Netted summary plus un-netted gross totals.

    total_users_involved counts every direct counterpart in per_counterpart,
    settled ones included. Co-participants who never paid for or owed the
    viewer are not counterparts.
    """
    summary = aggregate_balances(per_counterpart, profiles)
    return AdvancedBalanceSummary(
        **summary.model_dump(),
        gross_you_owe=gross_you_owe,
        gross_you_are_owed=gross_you_are_owed,
        total_users_involved=len(per_counterpart)
    )


def combine_contexts(
    individual: Mapping[str, Decimal],
    group_contexts: Iterable[Mapping[str, Decimal]]
) -> Dict[str, Decimal]:
    """Sum individual-context and per-group balances into one figure per counterpart"""
    combined: Dict[str, Decimal] = dict(individual)
    for context in group_contexts:
        for user_id, balance in context.items():
            combined[user_id] = combined.get(user_id, ZERO) + balance
    return combined


def nonzero_by_magnitude(balances: Mapping[str, Decimal]) -> List[Tuple[str, Decimal]]:
    """Drop settled counterparts and order the rest by absolute balance, largest first"""
    ranked = [(user_id, balance) for user_id, balance in balances.items() if round_decimal(balance) != ZERO]
    ranked.sort(key=lambda item: abs(item[1]), reverse=True)
    return ranked
