from flask import Blueprint, current_app

from barpay_api.blueprints.payroll import payroll_view, period_view, require_valid_period
from barpay_api.common.http import ok, fail, json_body
from barpay_api.services.history_aggregator import (
    PeriodNotFound, aggregate_by_employee, aggregate_by_period,
    build_history_records, restore_period,
)
from barpay_api.services.payroll_model import PayrollPeriod
from barpay_api.services.salary_engine import calculate_roster
from barpay_api.services.storage import get_store

bp = Blueprint("history", __name__, url_prefix="/api/v1/history")

@bp.post("")
def save_to_history():
    """
    Snapshot the current roster into history for the current period
    (or for {"start_date", "end_date"} given in the body).
    Saving the same period twice appends a second set of records.
    """
    store = get_store()
    state, _ = store.load_state()
    if not state.employees:
        return fail("Roster is empty, nothing to save", 422, code="EMPTY_ROSTER")

    period = require_valid_period(PayrollPeriod.from_mapping(json_body(), base=state.period))
    calculated, summary = calculate_roster(state.employees, state.formula)
    rows = build_history_records(calculated, state.formula, period)
    saved = store.append_history_records(rows)
    current_app.logger.info("history: %d record(s) saved for %s", saved, period.key)
    return ok({
        "saved": saved,
        "period": period_view(period),
        "summary": summary.to_dict(),
    }, 201)

@bp.get("/periods")
def list_periods():
    records = get_store().load_history_records()
    return ok([p.to_dict() for p in aggregate_by_period(records)])

@bp.get("/employees")
def employee_stats():
    records = get_store().load_history_records()
    return ok([s.to_dict() for s in aggregate_by_employee(records)])

@bp.get("/periods/<start>/<end>")
def period_records(start: str, end: str):
    records = get_store().load_history_records(start, end)
    if not records:
        return fail("Period not found", 404)
    return ok(records, count=len(records))

@bp.post("/periods/<start>/<end>/restore")
def restore(start: str, end: str):
    """Load a saved period back as the current period, roster and bar pool."""
    store = get_store()
    current, _ = store.load_state()
    records = store.load_history_records(start, end)
    try:
        period, employees, formula = restore_period(records, current.formula)
    except PeriodNotFound:
        return fail("Period not found", 404)

    current.period = period
    current.employees = employees
    current.formula = formula
    tier = store.save_state(current)
    current_app.logger.info("history: period %s restored (%d employees)", period.key, len(employees))
    return ok(payroll_view(current), storage=tier)

@bp.delete("/periods/<start>/<end>")
def delete_period(start: str, end: str):
    deleted = get_store().delete_history_records(start, end)
    if not deleted:
        return fail("Period not found", 404)
    current_app.logger.info("history: %d record(s) deleted for %s_%s", deleted, start, end)
    return ok({"deleted": deleted})
