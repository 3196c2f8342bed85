from __future__ import annotations
from typing import Any, Dict

from flask import Blueprint, current_app

from barpay_api.common.formatting import format_money, format_percentage, format_period
from barpay_api.common.errors import APIError
from barpay_api.common.http import ok, json_body, parse_iso_date
from barpay_api.services.payroll_model import (
    Employee, FormulaConfig, PayrollPeriod, PayrollState, as_number,
)
from barpay_api.services.salary_engine import bar_pool, calculate_roster
from barpay_api.services.storage import get_store

bp = Blueprint("payroll", __name__, url_prefix="/api/v1/payroll")

# ---------- views shared with the other blueprints ----------
def formula_view(f: FormulaConfig) -> Dict[str, Any]:
    out = f.to_dict()
    out["bar_pool"] = as_number(bar_pool(f))
    out["bar_percentage_display"] = format_percentage(f.bar_percentage)
    return out

def period_view(p: PayrollPeriod) -> Dict[str, Any]:
    out = p.to_dict()
    out["id"] = p.key
    out["label"] = format_period(p.start_date, p.end_date)
    return out

def payroll_view(state: PayrollState) -> Dict[str, Any]:
    """Salaries are recomputed from the state on every call; nothing is cached."""
    calculated, summary = calculate_roster(state.employees, state.formula)
    totals = summary.to_dict()
    totals["total_payroll_display"] = format_money(summary.total_payroll)
    return {
        "period": period_view(state.period),
        "formula": formula_view(state.formula),
        "employees": [c.to_dict() for c in calculated],
        "summary": totals,
    }

def require_valid_period(p: PayrollPeriod) -> PayrollPeriod:
    # the only input ever rejected: a DATE column cannot hold a non-date
    parsed = {}
    for name, v in (("start_date", p.start_date), ("end_date", p.end_date)):
        parsed[name] = parse_iso_date(v)
        if parsed[name] is None:
            raise APIError("INVALID_DATE", f"{name} must be YYYY-MM-DD", 422)
    return PayrollPeriod(**parsed)

def _state_from_body(j: Dict[str, Any], current: PayrollState) -> PayrollState:
    emps = j.get("employees")
    return PayrollState(
        formula=FormulaConfig.from_mapping(j.get("formula") or {}, base=current.formula),
        employees=([Employee.from_mapping(x) for x in emps if isinstance(x, dict)]
                   if isinstance(emps, list) else current.employees),
        period=PayrollPeriod.from_mapping(j.get("period") or {}, base=current.period),
    )

# ---------- routes ----------
@bp.get("")
def get_payroll():
    state, tier = get_store().load_state()
    return ok(payroll_view(state), storage=tier)

@bp.post("/save")
def save_payroll():
    """
    Persist formula, period and roster in one go.
    Body may carry any of {"formula", "period", "employees"}; missing parts
    are taken from what is stored now.
    """
    store = get_store()
    current, _ = store.load_state()
    state = _state_from_body(json_body(), current)
    state.period = require_valid_period(state.period)
    tier = store.save_state(state)
    if tier != store.tier:
        current_app.logger.warning("payroll saved to %s tier instead of %s", tier, store.tier)
    return ok(payroll_view(state), storage=tier)
