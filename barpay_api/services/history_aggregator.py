# barpay_api/services/history_aggregator.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from barpay_api.services.payroll_model import (
    ZERO, DEFAULT_BAR_PERCENTAGE, DEFAULT_TOTAL_BAR_AMOUNT,
    Employee, FormulaConfig, PayrollPeriod, as_number, num,
)

if TYPE_CHECKING:
    from barpay_api.services.salary_engine import CalculatedSalary


class PeriodNotFound(LookupError):
    """No history records exist for the requested period."""


def _get(record, key: str):
    if isinstance(record, Mapping):
        return record.get(key)
    return getattr(record, key, None)


def _iso(v) -> str:
    if v is None:
        return ""
    if isinstance(v, (date, datetime)):
        return v.isoformat()
    return str(v)


@dataclass
class EmployeeStats:
    employee_name: str
    total_shifts: Decimal = ZERO
    total_internship_shifts: Decimal = ZERO
    total_corkage_fee: Decimal = ZERO
    total_penalties: Decimal = ZERO
    total_bar_debt: Decimal = ZERO
    total_salary: Decimal = ZERO
    periods_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "employee_name": self.employee_name,
            "total_shifts": as_number(self.total_shifts),
            "total_internship_shifts": as_number(self.total_internship_shifts),
            "total_corkage_fee": as_number(self.total_corkage_fee),
            "total_penalties": as_number(self.total_penalties),
            "total_bar_debt": as_number(self.total_bar_debt),
            "total_salary": as_number(self.total_salary),
            "periods_count": self.periods_count,
        }


@dataclass
class SavedPeriod:
    period_start: str
    period_end: str
    total_employees: int
    total_payroll: Decimal
    total_bar_amount: Decimal
    bar_percentage: Decimal
    created_at: Optional[str]

    @property
    def id(self) -> str:
        return f"{self.period_start}_{self.period_end}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "period_start": self.period_start,
            "period_end": self.period_end,
            "total_employees": self.total_employees,
            "total_payroll": as_number(self.total_payroll),
            "total_bar_amount": as_number(self.total_bar_amount),
            "bar_percentage": as_number(self.bar_percentage),
            "created_at": self.created_at,
        }


def aggregate_by_employee(records: Iterable[Any]) -> List[EmployeeStats]:
    """
    Lifetime totals per employee, keyed by `employee_name`.

    Records with different `employee_id` but the same name land in one row;
    a renamed employee gets a second row. Output keeps first-seen order.
    """
    stats: Dict[str, EmployeeStats] = {}
    for r in records:
        name = _get(r, "employee_name")
        name = "" if name is None else str(name)
        s = stats.get(name)
        if s is None:
            s = stats[name] = EmployeeStats(employee_name=name)
        s.total_shifts += num(_get(r, "shifts"))
        s.total_internship_shifts += num(_get(r, "internship_shifts"))
        s.total_corkage_fee += num(_get(r, "corkage_fee"))
        s.total_penalties += num(_get(r, "penalties"))
        s.total_bar_debt += num(_get(r, "bar_debt"))
        s.total_salary += num(_get(r, "total_salary"))
        s.periods_count += 1
    return list(stats.values())


def aggregate_by_period(records: Iterable[Any]) -> List[SavedPeriod]:
    """
    One row per (period_start, period_end).

    Scalar fields (bar amount, percentage, created_at) come from the first
    record seen for the period, so pass records newest first.
    """
    periods: Dict[Tuple[str, str], SavedPeriod] = {}
    for r in records:
        key = (_iso(_get(r, "period_start")), _iso(_get(r, "period_end")))
        p = periods.get(key)
        if p is None:
            periods[key] = SavedPeriod(
                period_start=key[0],
                period_end=key[1],
                total_employees=1,
                total_payroll=num(_get(r, "total_salary")),
                total_bar_amount=num(_get(r, "total_bar_amount")),
                bar_percentage=num(_get(r, "bar_percentage")) or DEFAULT_BAR_PERCENTAGE,
                created_at=_iso(_get(r, "created_at")) or None,
            )
            continue
        p.total_employees += 1
        p.total_payroll += num(_get(r, "total_salary"))
    return list(periods.values())


def build_history_records(calculated: Sequence["CalculatedSalary"], formula: FormulaConfig,
                          period: PayrollPeriod) -> List[Dict[str, Any]]:
    """Snapshot rows for every calculated employee, carrying the formula's bar pool at save time."""
    rows = []
    for c in calculated:
        e = c.employee
        rows.append({
            "period_start": period.start_date,
            "period_end": period.end_date,
            "employee_id": e.id,
            "employee_name": e.name,
            "shifts": e.shifts,
            "internship_shifts": e.internship_shifts,
            "corkage_fee": e.corkage_fee,
            "penalties": e.penalties,
            "bar_debt": e.bar_debt,
            "total_salary": c.total,
            "total_bar_amount": formula.total_bar_amount,
            "bar_percentage": formula.bar_percentage,
        })
    return rows


def restore_period(records: Sequence[Any], formula: FormulaConfig) -> Tuple[PayrollPeriod, List[Employee], FormulaConfig]:
    """Rebuild period, roster and bar pool from one period's history records."""
    if not records:
        raise PeriodNotFound("no history records for this period")

    first = records[0]
    period = PayrollPeriod(
        start_date=_iso(_get(first, "period_start")),
        end_date=_iso(_get(first, "period_end")),
    )
    restored_formula = FormulaConfig.from_mapping({
        "total_bar_amount": num(_get(first, "total_bar_amount")) or DEFAULT_TOTAL_BAR_AMOUNT,
        "bar_percentage": num(_get(first, "bar_percentage")) or DEFAULT_BAR_PERCENTAGE,
    }, base=formula)

    # a period saved more than once holds repeated rows per employee; newest (first) wins.
    # employees present only in an older save of the period are restored as well
    employees: List[Employee] = []
    seen = set()
    for r in records:
        emp_id = str(_get(r, "employee_id") or "")
        if emp_id in seen:
            continue
        seen.add(emp_id)
        employees.append(Employee(
            id=emp_id,
            name=_get(r, "employee_name"),
            shifts=_get(r, "shifts"),
            internship_shifts=_get(r, "internship_shifts"),
            corkage_fee=_get(r, "corkage_fee"),
            penalties=_get(r, "penalties"),
            bar_debt=_get(r, "bar_debt"),
        ))
    return period, employees, restored_formula
