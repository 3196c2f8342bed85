from flask import Blueprint, current_app

from barpay_api.blueprints.payroll import payroll_view
from barpay_api.common.http import ok, fail, json_body
from barpay_api.services.salary_engine import calculate_salary
from barpay_api.services.storage import get_store

bp = Blueprint("employees", __name__, url_prefix="/api/v1/employees")

@bp.get("")
def list_employees():
    state, tier = get_store().load_state()
    view = payroll_view(state)
    return ok(view["employees"], storage=tier, summary=view["summary"])

@bp.get("/<emp_id>")
def get_employee(emp_id: str):
    state, tier = get_store().load_state()
    emp = state.find_employee(emp_id)
    if emp is None:
        return fail("Employee not found", 404)
    # bar share depends on the whole roster size, not just this employee
    calc = calculate_salary(emp, state.formula, len(state.employees))
    return ok(calc.to_dict(), storage=tier)

@bp.post("")
def add_employee():
    store = get_store()
    state, _ = store.load_state()
    emp = state.add_employee(json_body())
    tier = store.save_state(state)
    current_app.logger.info("employee %s added (roster size %d)", emp.id, len(state.employees))
    calc = calculate_salary(emp, state.formula, len(state.employees))
    return ok(calc.to_dict(), 201, storage=tier)

@bp.patch("/<emp_id>")
def update_employee(emp_id: str):
    """Update any of name, shifts, internship_shifts, corkage_fee, penalties, bar_debt."""
    store = get_store()
    state, _ = store.load_state()
    emp = state.find_employee(emp_id)
    if emp is None:
        return fail("Employee not found", 404)
    j = json_body()
    j.pop("id", None)
    emp.update(j)
    tier = store.save_state(state)
    calc = calculate_salary(emp, state.formula, len(state.employees))
    return ok(calc.to_dict(), storage=tier)

@bp.delete("/<emp_id>")
def delete_employee(emp_id: str):
    store = get_store()
    state, _ = store.load_state()
    if not state.remove_employee(emp_id):
        return fail("Employee not found", 404)
    tier = store.save_state(state)
    current_app.logger.info("employee %s removed (roster size %d)", emp_id, len(state.employees))
    return ok({"deleted": emp_id}, storage=tier)
