# barpay_api/services/storage.py
"""
Persistence tiers for the payroll calculator.

- DatabaseStore : hosted relational tier (Flask-SQLAlchemy models)
- LocalFileStore: durable local JSON document (formula, roster, period only)
- TieredStore   : tries the primary tier, falls back to the secondary on StorageError

All tiers speak the same narrow interface and hand back the plain value types
from payroll_model; history records travel as plain dicts.
"""
from __future__ import annotations

import json
import logging
import os
import threading
from contextlib import contextmanager
from decimal import DecimalException
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from flask import current_app
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from barpay_api.common.errors import APIError, StorageError
from barpay_api.common.http import parse_iso_date
from barpay_api.extensions import db
from barpay_api.models.employee import Employee as EmployeeRow
from barpay_api.models.formula import SINGLETON_ID, SalaryFormula
from barpay_api.models.history import PayrollHistory
from barpay_api.models.period import PayrollPeriod as PeriodRow
from barpay_api.services.payroll_model import (
    Employee, FormulaConfig, PayrollPeriod, PayrollState, as_number, default_period, num,
)

log = logging.getLogger(__name__)

STORE_KEY = "payroll_store"
TABLES = ("salary_formulas", "employees", "payroll_periods", "payroll_history")


class PayrollStore:
    """Data-access interface shared by every tier."""
    tier = "abstract"

    # ---- current state ----
    def load_formula(self) -> Optional[FormulaConfig]:
        raise NotImplementedError

    def load_employees(self) -> Optional[List[Employee]]:
        raise NotImplementedError

    def load_period(self) -> Optional[PayrollPeriod]:
        raise NotImplementedError

    def save_formula(self, formula: FormulaConfig) -> None:
        raise NotImplementedError

    def save_employees(self, employees: Sequence[Employee]) -> None:
        raise NotImplementedError

    def save_period(self, period: PayrollPeriod, formula: Optional[FormulaConfig] = None) -> None:
        raise NotImplementedError

    # ---- history ----
    def load_history_records(self, period_start=None, period_end=None) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def append_history_records(self, rows: Sequence[Dict[str, Any]]) -> int:
        raise NotImplementedError

    def delete_history_records(self, period_start, period_end) -> int:
        raise NotImplementedError

    def describe(self) -> Dict[str, Any]:
        return {"tier": self.tier}

    # ---- whole state ----
    def read_state(self) -> PayrollState:
        """Missing pieces (first run) fall back to defaults."""
        employees = self.load_employees()
        return PayrollState(
            formula=self.load_formula() or FormulaConfig(),
            employees=employees if employees is not None else [],
            period=self.load_period() or default_period(),
        )

    def write_state(self, state: PayrollState) -> None:
        self.save_formula(state.formula)
        self.save_period(state.period, state.formula)
        self.save_employees(state.employees)


# ---------------------------------------------------------------------------
# hosted relational tier
# ---------------------------------------------------------------------------

def _row_history(r: PayrollHistory) -> Dict[str, Any]:
    return {
        "id": r.id,
        "period_start": r.period_start.isoformat() if r.period_start else None,
        "period_end": r.period_end.isoformat() if r.period_end else None,
        "employee_id": r.employee_id,
        "employee_name": r.employee_name,
        "shifts": as_number(num(r.shifts)),
        "internship_shifts": as_number(num(r.internship_shifts)),
        "corkage_fee": as_number(num(r.corkage_fee)),
        "penalties": as_number(num(r.penalties)),
        "bar_debt": as_number(num(r.bar_debt)),
        "total_salary": as_number(num(r.total_salary)),
        "total_bar_amount": as_number(num(r.total_bar_amount)),
        "bar_percentage": as_number(num(r.bar_percentage)),
        "created_at": r.created_at.isoformat() if r.created_at else None,
    }


def _require_date(value, field: str):
    d = parse_iso_date(value)
    if d is None:
        raise APIError("INVALID_DATE", f"{field} must be YYYY-MM-DD", 422)
    return d


class DatabaseStore(PayrollStore):
    tier = "database"

    @contextmanager
    def _guard(self, action: str):
        try:
            yield
        except (SQLAlchemyError, OverflowError, DecimalException) as e:
            # values the driver cannot bind surface as plain Python errors
            db.session.rollback()
            log.warning("database %s failed: %s", action, e)
            raise StorageError(f"database {action} failed", tier=self.tier) from e

    def load_formula(self) -> Optional[FormulaConfig]:
        with self._guard("formula read"):
            row = db.session.get(SalaryFormula, SINGLETON_ID)
        if row is None:
            return None
        return FormulaConfig(
            shift_rate=row.shift_rate,
            internship_rate=row.internship_rate,
            total_bar_amount=row.total_bar_amount,
            bar_percentage=row.bar_percentage,
        )

    def load_employees(self) -> Optional[List[Employee]]:
        with self._guard("employees read"):
            rows = EmployeeRow.query.order_by(EmployeeRow.name.asc(), EmployeeRow.id.asc()).all()
        return [
            Employee(
                id=r.id, name=r.name, shifts=r.shifts, internship_shifts=r.internship_shifts,
                corkage_fee=r.corkage_fee, penalties=r.penalties, bar_debt=r.bar_debt,
            )
            for r in rows
        ]

    def load_period(self) -> Optional[PayrollPeriod]:
        with self._guard("period read"):
            row = db.session.get(PeriodRow, SINGLETON_ID)
        if row is None:
            return None
        return PayrollPeriod(start_date=row.start_date, end_date=row.end_date)

    def save_formula(self, formula: FormulaConfig) -> None:
        with self._guard("formula write"):
            row = db.session.get(SalaryFormula, SINGLETON_ID)
            if row is None:
                row = SalaryFormula(id=SINGLETON_ID)
                db.session.add(row)
            row.shift_rate = formula.shift_rate
            row.internship_rate = formula.internship_rate
            row.total_bar_amount = formula.total_bar_amount
            row.bar_percentage = formula.bar_percentage
            db.session.commit()

    def save_period(self, period: PayrollPeriod, formula: Optional[FormulaConfig] = None) -> None:
        start = _require_date(period.start_date, "start_date")
        end = _require_date(period.end_date, "end_date")
        with self._guard("period write"):
            row = db.session.get(PeriodRow, SINGLETON_ID)
            if row is None:
                row = PeriodRow(id=SINGLETON_ID)
                db.session.add(row)
            row.start_date = start
            row.end_date = end
            if formula is not None:
                row.total_bar_amount = formula.total_bar_amount
                row.bar_percentage = formula.bar_percentage
            db.session.commit()

    def save_employees(self, employees: Sequence[Employee]) -> None:
        """Upsert by id; stored employees missing from `employees` are removed."""
        with self._guard("employees write"):
            existing = {r.id: r for r in EmployeeRow.query.all()}
            keep = set()
            for e in employees:
                if e.id in keep:
                    continue
                row = existing.get(e.id)
                if row is None:
                    row = EmployeeRow(id=e.id)
                    db.session.add(row)
                row.name = e.name
                row.shifts = e.shifts
                row.internship_shifts = e.internship_shifts
                row.corkage_fee = e.corkage_fee
                row.penalties = e.penalties
                row.bar_debt = e.bar_debt
                keep.add(e.id)
            for emp_id, row in existing.items():
                if emp_id not in keep:
                    db.session.delete(row)
            db.session.commit()

    def load_history_records(self, period_start=None, period_end=None) -> List[Dict[str, Any]]:
        with self._guard("history read"):
            q = PayrollHistory.query
            if period_start is not None:
                q = q.filter(PayrollHistory.period_start == _require_date(period_start, "period_start"))
            if period_end is not None:
                q = q.filter(PayrollHistory.period_end == _require_date(period_end, "period_end"))
            rows = q.order_by(PayrollHistory.created_at.desc()).all()
        return [_row_history(r) for r in rows]

    def append_history_records(self, rows: Sequence[Dict[str, Any]]) -> int:
        objs = []
        for r in rows:
            objs.append(PayrollHistory(
                period_start=_require_date(r.get("period_start"), "period_start"),
                period_end=_require_date(r.get("period_end"), "period_end"),
                employee_id=str(r.get("employee_id") or ""),
                employee_name=str(r.get("employee_name") or ""),
                shifts=num(r.get("shifts")),
                internship_shifts=num(r.get("internship_shifts")),
                corkage_fee=num(r.get("corkage_fee")),
                penalties=num(r.get("penalties")),
                bar_debt=num(r.get("bar_debt")),
                total_salary=num(r.get("total_salary")),
                total_bar_amount=num(r.get("total_bar_amount")),
                bar_percentage=num(r.get("bar_percentage")),
            ))
        with self._guard("history write"):
            db.session.add_all(objs)
            db.session.commit()
        return len(objs)

    def delete_history_records(self, period_start, period_end) -> int:
        start = _require_date(period_start, "period_start")
        end = _require_date(period_end, "period_end")
        with self._guard("history delete"):
            n = (PayrollHistory.query
                 .filter(PayrollHistory.period_start == start, PayrollHistory.period_end == end)
                 .delete(synchronize_session=False))
            db.session.commit()
        return n

    def describe(self) -> Dict[str, Any]:
        try:
            names = set(inspect(db.engine).get_table_names())
        except SQLAlchemyError as e:
            log.warning("database inspect failed: %s", e)
            return {"tier": self.tier, "ready": False, "missing_tables": list(TABLES)}
        missing = [t for t in TABLES if t not in names]
        return {"tier": self.tier, "ready": not missing, "missing_tables": missing}


# ---------------------------------------------------------------------------
# local JSON tier
# ---------------------------------------------------------------------------

# keys mirror what the browser client keeps in its own local storage
_K_FORMULA = "salaryFormula"
_K_EMPLOYEES = "employees"
_K_PERIOD = "payrollPeriod"


class LocalFileStore(PayrollStore):
    tier = "local"

    def __init__(self, path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                doc = json.load(fh)
        except (OSError, ValueError) as e:
            # a corrupt file reads as "nothing saved yet"
            log.warning("local store %s unreadable: %s", self.path, e)
            return {}
        return doc if isinstance(doc, dict) else {}

    def _write(self, doc: Dict[str, Any]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as fh:
                json.dump(doc, fh, ensure_ascii=False, indent=2)
            os.replace(tmp, self.path)
        except OSError as e:
            log.warning("local store %s write failed: %s", self.path, e)
            raise StorageError("local storage write failed", tier=self.tier) from e

    def _update(self, key: str, value) -> None:
        with self._lock:
            doc = self._read()
            doc[key] = value
            self._write(doc)

    def load_formula(self) -> Optional[FormulaConfig]:
        raw = self._read().get(_K_FORMULA)
        return FormulaConfig.from_mapping(raw) if isinstance(raw, dict) else None

    def load_employees(self) -> Optional[List[Employee]]:
        raw = self._read().get(_K_EMPLOYEES)
        if not isinstance(raw, list):
            return None
        return [Employee.from_mapping(x) for x in raw if isinstance(x, dict)]

    def load_period(self) -> Optional[PayrollPeriod]:
        raw = self._read().get(_K_PERIOD)
        return PayrollPeriod.from_mapping(raw) if isinstance(raw, dict) else None

    def save_formula(self, formula: FormulaConfig) -> None:
        self._update(_K_FORMULA, formula.to_client())

    def save_employees(self, employees: Sequence[Employee]) -> None:
        self._update(_K_EMPLOYEES, [e.to_client() for e in employees])

    def save_period(self, period: PayrollPeriod, formula: Optional[FormulaConfig] = None) -> None:
        self._update(_K_PERIOD, period.to_client())

    def _no_history(self, *args, **kwargs):
        raise StorageError("payroll history requires the database tier", tier=self.tier)

    load_history_records = _no_history
    append_history_records = _no_history
    delete_history_records = _no_history

    def describe(self) -> Dict[str, Any]:
        return {"tier": self.tier, "ready": True, "path": str(self.path)}


# ---------------------------------------------------------------------------
# fallback chain
# ---------------------------------------------------------------------------

class TieredStore(PayrollStore):
    """
    Current-state reads and writes go to `primary` and fall back to `fallback`
    when the primary raises StorageError. History lives on the primary only.

    History writes are serialized by a non-blocking busy lock: a second save
    while one is running is refused instead of queued.
    """

    def __init__(self, primary: PayrollStore, fallback: Optional[PayrollStore] = None):
        self.primary = primary
        self.fallback = fallback
        self._busy = threading.Lock()

    @property
    def tier(self) -> str:
        return self.primary.tier

    def _call(self, name: str, *args) -> Tuple[Any, str]:
        try:
            return getattr(self.primary, name)(*args), self.primary.tier
        except StorageError as e:
            if self.fallback is None:
                raise
            log.warning("%s failed on %s tier (%s); falling back to %s",
                        name, self.primary.tier, e.message, self.fallback.tier)
            return getattr(self.fallback, name)(*args), self.fallback.tier

    # ---- whole-state helpers used by the API ----
    def load_state(self) -> Tuple[PayrollState, str]:
        return self._call("read_state")

    def save_state(self, state: PayrollState) -> str:
        _, tier = self._call("write_state", state)
        return tier

    # ---- interface ----
    def load_formula(self):
        return self._call("load_formula")[0]

    def load_employees(self):
        return self._call("load_employees")[0]

    def load_period(self):
        return self._call("load_period")[0]

    def save_formula(self, formula):
        self._call("save_formula", formula)

    def save_employees(self, employees):
        self._call("save_employees", employees)

    def save_period(self, period, formula=None):
        self._call("save_period", period, formula)

    def load_history_records(self, period_start=None, period_end=None):
        return self.primary.load_history_records(period_start, period_end)

    @contextmanager
    def _exclusive(self):
        if not self._busy.acquire(blocking=False):
            raise APIError("SAVE_IN_PROGRESS", "another history update is in progress", 409)
        try:
            yield
        finally:
            self._busy.release()

    def append_history_records(self, rows):
        with self._exclusive():
            return self.primary.append_history_records(rows)

    def delete_history_records(self, period_start, period_end):
        with self._exclusive():
            return self.primary.delete_history_records(period_start, period_end)

    def describe(self) -> Dict[str, Any]:
        out = {"primary": self.primary.describe()}
        if self.fallback is not None:
            out["fallback"] = self.fallback.describe()
        return out


# ---------------------------------------------------------------------------
# app wiring
# ---------------------------------------------------------------------------

def build_store(mode: str, local_path) -> TieredStore:
    mode = (mode or "auto").strip().lower()
    if mode == "local":
        return TieredStore(LocalFileStore(local_path))
    if mode == "database":
        return TieredStore(DatabaseStore())
    if mode != "auto":
        log.warning("unknown PAYROLL_STORAGE %r, using 'auto'", mode)
    return TieredStore(DatabaseStore(), LocalFileStore(local_path))


def init_store(app) -> TieredStore:
    store = build_store(app.config.get("PAYROLL_STORAGE", "auto"), app.config["LOCAL_STORE_PATH"])
    app.extensions[STORE_KEY] = store
    return store


def get_store() -> TieredStore:
    return current_app.extensions[STORE_KEY]
