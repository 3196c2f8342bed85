import json
import os
from datetime import date
from decimal import Decimal

import pytest

from barpay_api import create_app
from barpay_api.common.errors import APIError, StorageError
from barpay_api.extensions import db
from barpay_api.services.payroll_model import Employee, FormulaConfig, PayrollPeriod, PayrollState
from barpay_api.services.storage import (
    DatabaseStore, LocalFileStore, PayrollStore, TieredStore, build_store,
)


@pytest.fixture(scope="function")
def app(tmp_path):
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    os.environ["LOCAL_STORE_PATH"] = str(tmp_path / "payroll_local.json")
    app = create_app()
    with app.app_context():
        db.create_all()
        yield app


class BrokenStore(PayrollStore):
    """A database tier whose server is unreachable."""
    tier = "database"

    def _down(self, *args, **kwargs):
        raise StorageError("connection refused", tier=self.tier)

    load_formula = load_employees = load_period = _down
    save_formula = save_employees = save_period = _down


def _state():
    return PayrollState(
        formula=FormulaConfig(shift_rate=1200, bar_percentage="0.1"),
        employees=[
            Employee(id="1", name="Иван Петров", shifts=20, corkage_fee=2000, penalties=500, bar_debt=300),
            Employee(id="2", name="Мария Сидорова", shifts=18, internship_shifts=4, corkage_fee=2500),
        ],
        period=PayrollPeriod("2024-01-01", "2024-01-31"),
    )


def test_database_defaults_on_first_run(app):
    state = DatabaseStore().read_state()
    assert state.formula == FormulaConfig()
    assert state.employees == []
    today = date.today()
    assert state.period.start_date == date(today.year, today.month, 1).isoformat()


def test_database_round_trip_and_prune(app):
    store = DatabaseStore()
    store.write_state(_state())

    back = store.read_state()
    assert back.formula.shift_rate == 1200
    assert back.formula.bar_percentage == FormulaConfig(bar_percentage="0.1").bar_percentage
    assert back.period == PayrollPeriod("2024-01-01", "2024-01-31")
    assert [e.id for e in back.employees] == ["1", "2"]
    assert back.employees[0].penalties == 500

    # upsert "2", drop "1", add "3"
    emps = back.employees[1:] + [Employee(id="3", name="Анна", shifts=5)]
    emps[0].shifts = 19
    store.save_employees(emps)
    ids = {e.id: e for e in store.load_employees()}
    assert set(ids) == {"2", "3"}
    assert ids["2"].shifts == 19


def test_database_history(app):
    store = DatabaseStore()
    rows = [
        {"period_start": "2024-01-01", "period_end": "2024-01-31", "employee_id": "1",
         "employee_name": "A", "shifts": 20, "total_salary": 24700,
         "total_bar_amount": 100000, "bar_percentage": 0.07},
        {"period_start": "2024-02-01", "period_end": "2024-02-29", "employee_id": "1",
         "employee_name": "A", "shifts": 10, "total_salary": 12000,
         "total_bar_amount": 100000, "bar_percentage": 0.07},
    ]
    assert store.append_history_records(rows) == 2

    jan = store.load_history_records("2024-01-01", "2024-01-31")
    assert len(jan) == 1
    assert jan[0]["total_salary"] == 24700
    assert jan[0]["period_start"] == "2024-01-01"

    assert store.delete_history_records("2024-01-01", "2024-01-31") == 1
    assert [r["period_start"] for r in store.load_history_records()] == ["2024-02-01"]


def test_database_history_rejects_bad_date(app):
    with pytest.raises(APIError) as ei:
        DatabaseStore().append_history_records([{"period_start": "soon", "period_end": "2024-01-31"}])
    assert ei.value.status_code == 422


def test_database_describe(app):
    info = DatabaseStore().describe()
    assert info["ready"] is True
    assert info["missing_tables"] == []


def test_local_round_trip(tmp_path):
    path = tmp_path / "state.json"
    store = LocalFileStore(path)
    store.write_state(_state())

    doc = json.loads(path.read_text(encoding="utf-8"))
    assert doc["salaryFormula"]["shiftRate"] == 1200
    assert doc["employees"][1]["internshipShifts"] == 4
    assert doc["payrollPeriod"] == {"startDate": "2024-01-01", "endDate": "2024-01-31"}

    back = LocalFileStore(path).read_state()
    assert back.formula == _state().formula
    assert back.employees == _state().employees
    assert back.period == _state().period


def test_local_corrupt_file_reads_as_empty(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")
    state = LocalFileStore(path).read_state()
    assert state.employees == []
    assert state.formula == FormulaConfig()


def test_local_has_no_history(tmp_path):
    with pytest.raises(StorageError):
        LocalFileStore(tmp_path / "s.json").load_history_records()


def test_tiered_falls_back_to_local(tmp_path):
    local = LocalFileStore(tmp_path / "s.json")
    store = TieredStore(BrokenStore(), local)

    assert store.save_state(_state()) == "local"
    state, tier = store.load_state()
    assert tier == "local"
    assert [e.name for e in state.employees] == ["Иван Петров", "Мария Сидорова"]


def test_tiered_without_fallback_raises():
    with pytest.raises(StorageError):
        TieredStore(BrokenStore()).load_state()


def test_history_write_refused_while_busy(app):
    store = TieredStore(DatabaseStore())
    store._busy.acquire()
    try:
        with pytest.raises(APIError) as ei:
            store.delete_history_records("2024-01-01", "2024-01-31")
    finally:
        store._busy.release()
    assert ei.value.status_code == 409
    assert ei.value.code == "SAVE_IN_PROGRESS"


def test_build_store_modes(tmp_path):
    assert build_store("local", tmp_path / "s.json").tier == "local"
    auto = build_store("auto", tmp_path / "s.json")
    assert auto.tier == "database"
    assert auto.fallback.tier == "local"
    assert build_store("database", tmp_path / "s.json").fallback is None


def test_unbindable_value_falls_back_to_local(app, tmp_path, monkeypatch):
    def overflow():
        raise OverflowError("Python int too large to convert to SQLite INTEGER")

    monkeypatch.setattr(db.session, "commit", overflow)
    with pytest.raises(StorageError):
        DatabaseStore().save_formula(FormulaConfig())

    store = TieredStore(DatabaseStore(), LocalFileStore(tmp_path / "s.json"))
    assert store.save_state(_state()) == "local"
    monkeypatch.undo()

    # the failed transaction was rolled back; the session is usable again
    assert DatabaseStore().load_formula() is None


def test_fractional_values_survive_database(app):
    store = DatabaseStore()
    store.save_formula(FormulaConfig(bar_percentage="0.07125", shift_rate="1234.567"))
    store.save_employees([Employee(id="1", name="A", shifts="2.5", corkage_fee="10.125")])

    f = store.load_formula()
    assert f.bar_percentage == Decimal("0.07125")
    assert f.shift_rate == Decimal("1234.567")
    emp = store.load_employees()[0]
    assert emp.shifts == Decimal("2.5")
    assert emp.corkage_fee == Decimal("10.125")
