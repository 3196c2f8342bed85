from decimal import Decimal

import pytest

from barpay_api.services.history_aggregator import (
    PeriodNotFound, aggregate_by_employee, aggregate_by_period,
    build_history_records, restore_period,
)
from barpay_api.services.payroll_model import Employee, FormulaConfig, PayrollPeriod
from barpay_api.services.salary_engine import calculate_roster


def _rec(start, end, emp_id, name, **kw):
    r = {
        "period_start": start, "period_end": end,
        "employee_id": emp_id, "employee_name": name,
        "shifts": 10, "internship_shifts": 0, "corkage_fee": 0,
        "penalties": 0, "bar_debt": 0, "total_salary": 10000,
        "total_bar_amount": 100000, "bar_percentage": 0.07,
    }
    r.update(kw)
    return r


JAN = ("2024-01-01", "2024-01-31")
FEB = ("2024-02-01", "2024-02-29")


def test_same_name_merges_across_ids():
    records = [
        _rec(*JAN, "a1", "Иван", shifts=20, total_salary=24700),
        _rec(*FEB, "a2", "Иван", shifts=10, total_salary=12000),
    ]
    stats = aggregate_by_employee(records)
    assert len(stats) == 1
    s = stats[0]
    assert s.employee_name == "Иван"
    assert s.periods_count == 2
    assert s.total_shifts == 30
    assert s.total_salary == 36700


def test_period_rollup_first_record_scalars():
    records = [
        _rec(*JAN, "a", "A", total_salary=100, total_bar_amount=50000, bar_percentage=0.1,
             created_at="2024-02-01T10:00:00"),
        _rec(*JAN, "b", "B", total_salary=200, total_bar_amount=90000, bar_percentage=0.2,
             created_at="2024-01-31T10:00:00"),
        _rec(*FEB, "a", "A", total_salary=300, bar_percentage=0),
    ]
    periods = aggregate_by_period(records)
    assert [p.id for p in periods] == ["2024-01-01_2024-01-31", "2024-02-01_2024-02-29"]

    jan, feb = periods
    assert jan.total_employees == 2
    assert jan.total_payroll == 300
    assert jan.total_bar_amount == 50000
    assert jan.bar_percentage == Decimal("0.1")
    assert jan.created_at == "2024-02-01T10:00:00"
    # a zero percentage reads back as the default
    assert feb.bar_percentage == Decimal("0.07")


def test_removing_period_drops_it_from_both_views():
    records = [
        _rec(*JAN, "a", "A"), _rec(*JAN, "b", "B"),
        _rec(*FEB, "a", "A"),
    ]
    remaining = [r for r in records if (r["period_start"], r["period_end"]) != JAN]

    assert [p.id for p in aggregate_by_period(remaining)] == ["2024-02-01_2024-02-29"]
    by_name = {s.employee_name: s for s in aggregate_by_employee(remaining)}
    assert set(by_name) == {"A"}
    assert by_name["A"].periods_count == 1


def test_malformed_numbers_count_as_zero():
    records = [_rec(*JAN, "a", "A", shifts="abc", total_salary=None, penalties="")]
    s = aggregate_by_employee(records)[0]
    assert s.total_shifts == 0
    assert s.total_salary == 0
    assert s.total_penalties == 0
    assert s.periods_count == 1


def test_build_history_records_snapshot():
    emps = [Employee(id="1", name="A", shifts=20, corkage_fee=2000, penalties=500, bar_debt=300)]
    f = FormulaConfig()
    calculated, _ = calculate_roster(emps, f)
    rows = build_history_records(calculated, f, PayrollPeriod(*JAN))
    assert len(rows) == 1
    r = rows[0]
    assert (r["period_start"], r["period_end"]) == JAN
    assert r["employee_id"] == "1"
    assert r["total_salary"] == 20000 + 7000 + 2000 - 500 - 300
    assert r["total_bar_amount"] == 100000
    assert r["bar_percentage"] == Decimal("0.07")


def test_restore_period():
    records = [
        _rec(*JAN, "a", "A", shifts=20, total_bar_amount=80000, bar_percentage=0.05),
        _rec(*JAN, "b", "B", shifts=18, internship_shifts=4),
        _rec(*JAN, "a", "A", shifts=1),  # older duplicate of "a"
    ]
    current = FormulaConfig(shift_rate=1500)
    period, employees, formula = restore_period(records, current)

    assert period == PayrollPeriod(*JAN)
    assert [e.id for e in employees] == ["a", "b"]
    assert employees[0].shifts == 20
    assert employees[1].internship_shifts == 4
    assert formula.total_bar_amount == 80000
    assert formula.bar_percentage == Decimal("0.05")
    assert formula.shift_rate == 1500


def test_restore_zero_bar_fields_fall_back():
    _, _, formula = restore_period([_rec(*JAN, "a", "A", total_bar_amount=0, bar_percentage=0)],
                                   FormulaConfig())
    assert formula.total_bar_amount == 100000
    assert formula.bar_percentage == Decimal("0.07")


def test_restore_empty_raises():
    with pytest.raises(PeriodNotFound):
        restore_period([], FormulaConfig())


def test_restore_after_smaller_resave_brings_back_older_employees():
    # the same period saved twice: newest save (first) only had "b"
    records = [
        _rec(*JAN, "b", "B", shifts=12, created_at="2024-02-02T09:00:00"),
        _rec(*JAN, "a", "A", shifts=20, created_at="2024-02-01T09:00:00"),
        _rec(*JAN, "b", "B", shifts=8, created_at="2024-02-01T09:00:00"),
    ]
    _, employees, _ = restore_period(records, FormulaConfig())
    assert [(e.id, e.shifts) for e in employees] == [("b", 12), ("a", 20)]
