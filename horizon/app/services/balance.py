"""
Balance aggregation.

Effective balance = contributions total + signed adjustments total, computed on
read. Nothing caches it. Amounts are used at native float precision; there is
no rounding or currency conversion.
"""
from typing import Any, Iterable, Mapping

ADD = "add"
DEDUCT = "deduct"


def _amount(row: Mapping[str, Any]) -> float:
    return float(row.get("amount") or 0)


def total_contributions(contributions: Iterable[Mapping[str, Any]]) -> float:
    return sum((_amount(c) for c in contributions), 0.0)


def signed_adjustment(adjustment: Mapping[str, Any]) -> float:
    """`add` counts positive and `deduct` negative; untyped rows are already signed."""
    amount = _amount(adjustment)
    kind = adjustment.get("adjustment_type")
    if kind == ADD:
        return abs(amount)
    if kind == DEDUCT:
        return -abs(amount)
    return amount


def total_adjustments(adjustments: Iterable[Mapping[str, Any]]) -> float:
    return sum((signed_adjustment(a) for a in adjustments), 0.0)


def effective_balance(
    contributions: Iterable[Mapping[str, Any]],
    adjustments: Iterable[Mapping[str, Any]],
) -> float:
    return total_contributions(contributions) + total_adjustments(adjustments)
