# barpay_api/services/salary_engine.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Sequence, Tuple

from barpay_api.services.payroll_model import (
    ZERO, Employee, FormulaConfig, as_number, num,
)


@dataclass(frozen=True)
class SalaryBreakdown:
    from_shifts: Decimal = ZERO
    from_internship_shifts: Decimal = ZERO
    from_bar: Decimal = ZERO
    from_corkage_fee: Decimal = ZERO
    from_penalties: Decimal = ZERO      # subtracted
    from_bar_debt: Decimal = ZERO       # subtracted

    @property
    def total(self) -> Decimal:
        return (self.from_shifts + self.from_internship_shifts + self.from_bar
                + self.from_corkage_fee - self.from_penalties - self.from_bar_debt)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from_shifts": as_number(self.from_shifts),
            "from_internship_shifts": as_number(self.from_internship_shifts),
            "from_bar": as_number(self.from_bar),
            "from_corkage_fee": as_number(self.from_corkage_fee),
            "from_penalties": as_number(self.from_penalties),
            "from_bar_debt": as_number(self.from_bar_debt),
        }


@dataclass(frozen=True)
class CalculatedSalary:
    employee: Employee
    breakdown: SalaryBreakdown
    total: Decimal
    is_intern: bool
    regular_shifts: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "employee": self.employee.to_dict(),
            "breakdown": self.breakdown.to_dict(),
            "total": as_number(self.total),
            "is_intern": self.is_intern,
            "regular_shifts": as_number(self.regular_shifts),
        }


@dataclass(frozen=True)
class RosterSummary:
    employee_count: int
    total_payroll: Decimal
    total_regular_shifts: Decimal
    total_internship_shifts: Decimal

    @property
    def total_shifts(self) -> Decimal:
        return self.total_regular_shifts + self.total_internship_shifts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "employee_count": self.employee_count,
            "total_payroll": as_number(self.total_payroll),
            "total_regular_shifts": as_number(self.total_regular_shifts),
            "total_internship_shifts": as_number(self.total_internship_shifts),
            "total_shifts": as_number(self.total_shifts),
        }


def regular_shifts_of(employee: Employee) -> Decimal:
    # internship shifts are a subset of shifts; nothing enforces that, so floor at 0
    return max(ZERO, employee.shifts - employee.internship_shifts)


def bar_pool(formula: FormulaConfig) -> Decimal:
    return formula.total_bar_amount * formula.bar_percentage


def calculate_salary(employee: Employee, formula: FormulaConfig, employee_count) -> CalculatedSalary:
    """
    Itemized salary of one employee.

    The bar share is an equal split of the pool over the whole current roster
    (`employee_count`), paid only to employees with at least one regular shift.
    Pure: the same inputs always give an equal result.
    """
    count = num(employee_count)
    regular = regular_shifts_of(employee)

    from_bar = ZERO
    if regular > 0 and count > 0:
        from_bar = bar_pool(formula) / count

    breakdown = SalaryBreakdown(
        from_shifts=regular * formula.shift_rate,
        from_internship_shifts=employee.internship_shifts * formula.internship_rate,
        from_bar=from_bar,
        from_corkage_fee=employee.corkage_fee,
        from_penalties=employee.penalties,
        from_bar_debt=employee.bar_debt,
    )
    return CalculatedSalary(
        employee=employee,
        breakdown=breakdown,
        total=breakdown.total,
        is_intern=employee.internship_shifts > 0,
        regular_shifts=regular,
    )


def calculate_roster(employees: Sequence[Employee], formula: FormulaConfig) -> Tuple[List[CalculatedSalary], RosterSummary]:
    """Calculate every employee against the size of this roster, plus roster totals."""
    count = len(employees)
    calculated = [calculate_salary(e, formula, count) for e in employees]
    summary = RosterSummary(
        employee_count=count,
        total_payroll=sum((c.total for c in calculated), ZERO),
        total_regular_shifts=sum((c.regular_shifts for c in calculated), ZERO),
        total_internship_shifts=sum((e.internship_shifts for e in employees), ZERO),
    )
    return calculated, summary
