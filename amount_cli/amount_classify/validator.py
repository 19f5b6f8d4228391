"""Advisory consistency checks over classified amounts.

Findings never block a result; they are attached next to it so callers can
decide whether to trust the classification:

* a soft-singleton role (``total_bill``, ``subtotal``, ``paid``) carrying
  more than one distinct value
* ``total_bill - paid`` disagreeing with the largest ``due`` by more than
  one currency unit
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from amount_cli.shared.utils import format_amount

from .rules import SINGLETON_TYPES
from .types import ClassifiedAmount, ValidationReport

BALANCE_TOLERANCE = 1.0


def validate_classification(
    amounts: Iterable[ClassifiedAmount | Mapping[str, Any]],
) -> ValidationReport:
    """Validate classified amounts and emit advisory findings."""

    report = ValidationReport()
    by_type = _group_by_type(amounts)

    for type_ in SINGLETON_TYPES:
        values = by_type.get(type_, [])
        distinct = list(dict.fromkeys(values))
        if len(distinct) > 1:
            rendered = ", ".join(format_amount(value) for value in distinct)
            report.add(f"multiple_{type_}", f"Multiple {type_} amounts found: {rendered}")

    if by_type.get("total_bill") and by_type.get("paid") and by_type.get("due"):
        total = by_type["total_bill"][0]
        paid = by_type["paid"][0]
        due = max(by_type["due"])
        if abs((total - paid) - due) > BALANCE_TOLERANCE:
            report.add(
                "inconsistent_balance",
                f"Inconsistent amounts: Total({format_amount(total)}) - Paid({format_amount(paid)}) "
                f"≠ Due({format_amount(due)})",
            )

    return report


def _group_by_type(amounts: Iterable[ClassifiedAmount | Mapping[str, Any]]) -> dict[str, list[float]]:
    grouped: dict[str, list[float]] = {}
    for amount in amounts:
        if isinstance(amount, Mapping):
            type_, value = str(amount["type"]), float(amount["value"])
        else:
            type_, value = amount.type, amount.value
        grouped.setdefault(type_, []).append(value)
    return grouped
