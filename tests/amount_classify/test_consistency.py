from __future__ import annotations

from amount_cli.amount_classify.types import ClassifiedAmount, ValidationIssue
from amount_cli.amount_classify.validator import validate_classification


def _amount(type_: str, value: float) -> ClassifiedAmount:
    return ClassifiedAmount(type=type_, value=value, source=f"text: '{type_}: {value}'")


def test_consistent_bill_is_valid() -> None:
    report = validate_classification(
        [_amount("total_bill", 3304), _amount("paid", 2000), _amount("due", 1304)]
    )
    assert report.valid is True
    assert report.to_dict() == {"valid": True, "issues": []}


def test_balance_mismatch_is_reported() -> None:
    report = validate_classification(
        [_amount("total_bill", 2000), _amount("paid", 1500), _amount("due", 600)]
    )
    assert report.valid is False
    assert [issue.code for issue in report.issues] == ["inconsistent_balance"]
    assert report.issues[0].message == "Inconsistent amounts: Total(2000) - Paid(1500) ≠ Due(600)"


def test_balance_within_tolerance_passes() -> None:
    report = validate_classification(
        [_amount("total_bill", 100.5), _amount("paid", 50), _amount("due", 50)]
    )
    assert report.valid is True


def test_largest_due_is_compared() -> None:
    report = validate_classification(
        [_amount("total_bill", 100), _amount("paid", 40), _amount("due", 5), _amount("due", 60)]
    )
    assert report.valid is True


def test_multiple_totals_are_flagged() -> None:
    report = validate_classification([_amount("total_bill", 2000), _amount("total_bill", 2500)])
    assert [issue.code for issue in report.issues] == ["multiple_total_bill"]
    assert report.issues[0].message == "Multiple total_bill amounts found: 2000, 2500"
    assert report.issues == [
        ValidationIssue(code="multiple_total_bill", message="Multiple total_bill amounts found: 2000, 2500")
    ]


def test_repeated_due_values_are_not_flagged() -> None:
    assert validate_classification([_amount("due", 10), _amount("due", 20)]).valid is True


def test_accepts_plain_mappings() -> None:
    report = validate_classification(
        [
            {"type": "total_bill", "value": 2000},
            {"type": "paid", "value": "1500"},
            {"type": "due", "value": 600},
        ]
    )
    assert report.valid is False
