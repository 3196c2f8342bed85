# barpay_api/services/payroll_model.py
"""
Plain value types shared by the salary engine, the history aggregator and the
storage tiers.

Every numeric field is coerced on construction: missing, empty, non-numeric or
non-finite input becomes the field's default (0 for employee counters, the
documented defaults for the formula). Nothing here raises on bad numbers.
"""
from __future__ import annotations

import calendar
import uuid
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional

ZERO = Decimal("0")

DEFAULT_SHIFT_RATE = Decimal("1000")
DEFAULT_INTERNSHIP_RATE = Decimal("1000")
DEFAULT_TOTAL_BAR_AMOUNT = Decimal("100000")
DEFAULT_BAR_PERCENTAGE = Decimal("0.07")

NEW_EMPLOYEE_NAME = "Новый сотрудник"

# magnitudes of 10**16 and above count as invalid input so engine arithmetic cannot overflow
MAX_ADJUSTED_EXPONENT = 15


def num(value: Any, default: Decimal = ZERO) -> Decimal:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        d = value
    else:
        try:
            d = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return default
    if not d.is_finite() or d.adjusted() > MAX_ADJUSTED_EXPONENT:
        return default
    return d


def as_number(d: Decimal):
    """JSON-friendly rendering: ints stay ints, everything else becomes float."""
    if d == d.to_integral_value():
        return int(d)
    return float(d)


def _pick(data: Mapping[str, Any], *keys: str):
    for k in keys:
        if k in data:
            return True, data[k]
    return False, None


# ---------- formula ----------

# snake_case attribute -> camelCase key used by the browser client
_FORMULA_KEYS = {
    "shift_rate": "shiftRate",
    "internship_rate": "internshipRate",
    "total_bar_amount": "totalBarAmount",
    "bar_percentage": "barPercentage",
}

_FORMULA_DEFAULTS = {
    "shift_rate": DEFAULT_SHIFT_RATE,
    "internship_rate": DEFAULT_INTERNSHIP_RATE,
    "total_bar_amount": DEFAULT_TOTAL_BAR_AMOUNT,
    "bar_percentage": DEFAULT_BAR_PERCENTAGE,
}


@dataclass(frozen=True)
class FormulaConfig:
    shift_rate: Decimal = DEFAULT_SHIFT_RATE
    internship_rate: Decimal = DEFAULT_INTERNSHIP_RATE
    total_bar_amount: Decimal = DEFAULT_TOTAL_BAR_AMOUNT
    bar_percentage: Decimal = DEFAULT_BAR_PERCENTAGE  # fraction: 0.07 == 7%

    def __post_init__(self):
        for name, default in _FORMULA_DEFAULTS.items():
            object.__setattr__(self, name, num(getattr(self, name), default))

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]], base: Optional["FormulaConfig"] = None) -> "FormulaConfig":
        """Build from snake_case or camelCase keys. Keys that are absent keep `base` values."""
        base = base or cls()
        if not data:
            return base
        kw = {}
        for attr, camel in _FORMULA_KEYS.items():
            found, raw = _pick(data, attr, camel)
            if found:
                kw[attr] = num(raw, _FORMULA_DEFAULTS[attr])
        return replace(base, **kw)

    def to_dict(self) -> Dict[str, Any]:
        return {attr: as_number(getattr(self, attr)) for attr in _FORMULA_KEYS}

    def to_client(self) -> Dict[str, Any]:
        return {camel: as_number(getattr(self, attr)) for attr, camel in _FORMULA_KEYS.items()}


# ---------- employee ----------

_EMPLOYEE_NUMERIC = {
    "shifts": "shifts",
    "internship_shifts": "internshipShifts",
    "corkage_fee": "corkageFee",
    "penalties": "penalties",
    "bar_debt": "barDebt",
}


def new_employee_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Employee:
    id: str
    name: str = ""
    shifts: Decimal = ZERO             # total worked, internship shifts included
    internship_shifts: Decimal = ZERO
    corkage_fee: Decimal = ZERO        # credited to the employee
    penalties: Decimal = ZERO
    bar_debt: Decimal = ZERO

    def __post_init__(self):
        self.id = str(self.id)
        self.name = "" if self.name is None else str(self.name)
        for attr in _EMPLOYEE_NUMERIC:
            setattr(self, attr, num(getattr(self, attr)))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Employee":
        emp = cls(id=data.get("id") or new_employee_id())
        emp.update(data)
        return emp

    def update(self, data: Mapping[str, Any]) -> "Employee":
        """Apply any known fields present in `data`; unknown keys are ignored."""
        if "name" in data:
            self.name = "" if data["name"] is None else str(data["name"])
        for attr, camel in _EMPLOYEE_NUMERIC.items():
            found, raw = _pick(data, attr, camel)
            if found:
                setattr(self, attr, num(raw))
        return self

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id, "name": self.name}
        for attr in _EMPLOYEE_NUMERIC:
            out[attr] = as_number(getattr(self, attr))
        return out

    def to_client(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id, "name": self.name}
        for attr, camel in _EMPLOYEE_NUMERIC.items():
            out[camel] = as_number(getattr(self, attr))
        return out


# ---------- period ----------

def default_period(today: Optional[date] = None) -> "PayrollPeriod":
    today = today or date.today()
    last = calendar.monthrange(today.year, today.month)[1]
    return PayrollPeriod(
        start_date=date(today.year, today.month, 1).isoformat(),
        end_date=date(today.year, today.month, last).isoformat(),
    )


@dataclass(frozen=True)
class PayrollPeriod:
    start_date: str
    end_date: str

    def __post_init__(self):
        for attr in ("start_date", "end_date"):
            v = getattr(self, attr)
            object.__setattr__(self, attr, v.isoformat() if isinstance(v, date) else str(v or ""))

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]], base: Optional["PayrollPeriod"] = None) -> "PayrollPeriod":
        base = base or default_period()
        if not data:
            return base
        found_s, start = _pick(data, "start_date", "startDate", "period_start")
        found_e, end = _pick(data, "end_date", "endDate", "period_end")
        return cls(
            start_date=start if found_s else base.start_date,
            end_date=end if found_e else base.end_date,
        )

    @property
    def key(self) -> str:
        return f"{self.start_date}_{self.end_date}"

    def to_dict(self) -> Dict[str, Any]:
        return {"start_date": self.start_date, "end_date": self.end_date}

    def to_client(self) -> Dict[str, Any]:
        return {"startDate": self.start_date, "endDate": self.end_date}


# ---------- host state ----------

@dataclass
class PayrollState:
    """Everything the host edits between saves, passed explicitly into the engine."""
    formula: FormulaConfig = field(default_factory=FormulaConfig)
    employees: List[Employee] = field(default_factory=list)
    period: PayrollPeriod = field(default_factory=default_period)

    def find_employee(self, employee_id: str) -> Optional[Employee]:
        for e in self.employees:
            if e.id == str(employee_id):
                return e
        return None

    def add_employee(self, data: Optional[Mapping[str, Any]] = None) -> Employee:
        data = dict(data or {})
        data.setdefault("name", NEW_EMPLOYEE_NAME)
        emp = Employee.from_mapping(data)
        if self.find_employee(emp.id) is not None:
            # ids are unique within the roster; a clash gets a fresh one
            emp.id = new_employee_id()
        self.employees.append(emp)
        return emp

    def remove_employee(self, employee_id: str) -> bool:
        before = len(self.employees)
        self.employees = [e for e in self.employees if e.id != str(employee_id)]
        return len(self.employees) != before
