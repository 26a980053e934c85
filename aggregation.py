"""Monthly aggregation of financial records.

Everything here is a pure function over snapshots handed in by the ledger
store; nothing reads from or writes to the database.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Sequence

from periods import Period

ZERO = Decimal(0)


@dataclass(frozen=True)
class FinancialRecord:
    id: int
    description: str
    value: Decimal
    type_id: Optional[int]
    status: bool
    date: date
    user_id: int
    observation: Optional[str] = None

    @classmethod
    def from_row(cls, row: Any) -> "FinancialRecord":
        return cls(
            id=row.id,
            description=row.description,
            value=Decimal(row.value) if row.value is not None else ZERO,
            type_id=row.type_id,
            status=bool(row.status),
            date=row.date,
            user_id=row.user_id,
            observation=row.observation,
        )


@dataclass(frozen=True)
class CategorySum:
    type_id: Optional[int]
    total: Decimal


@dataclass(frozen=True)
class CategoryReportLine:
    category_type: Optional[Any]
    total: Decimal


def _matching(
    records: Iterable[FinancialRecord],
    user_id: int,
    period: Period,
    status: Optional[bool],
) -> Iterable[FinancialRecord]:
    for record in records:
        if record.user_id != user_id:
            continue
        if not period.contains(record.date):
            continue
        if status is not None and record.status != status:
            continue
        yield record


def sum_by_period(
    records: Iterable[FinancialRecord],
    user_id: int,
    period: Period,
    status: Optional[bool] = None,
) -> Decimal:
    total = ZERO
    for record in _matching(records, user_id, period, status):
        total += record.value or ZERO
    return total


def group_sum_by_category(
    records: Iterable[FinancialRecord],
    user_id: int,
    period: Period,
    status: Optional[bool] = None,
) -> list[CategorySum]:
    """Per-type totals in first-seen order, one entry per ``type_id``."""
    totals: dict[Optional[int], Decimal] = {}
    for record in _matching(records, user_id, period, status):
        running = totals.get(record.type_id) or ZERO
        totals[record.type_id] = running + (record.value or ZERO)
    return [CategorySum(type_id, total or ZERO) for type_id, total in totals.items()]


def join_categories(
    sums: Sequence[CategorySum], lookup: Mapping[Optional[int], Any]
) -> list[CategoryReportLine]:
    # Types deleted after the fact still keep their money in the report.
    return [CategoryReportLine(lookup.get(item.type_id), item.total) for item in sums]


def compute_balance(total_income: Decimal, total_expense: Decimal) -> Decimal:
    return total_income - total_expense


def assemble_report(lines: Sequence[CategoryReportLine]) -> list[dict[str, Any]]:
    return [{"type": line.category_type, "total": line.total} for line in lines]
