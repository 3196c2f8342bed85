from flask import Blueprint

from barpay_api.blueprints.payroll import formula_view
from barpay_api.common.http import ok, json_body
from barpay_api.services.payroll_model import FormulaConfig
from barpay_api.services.storage import get_store

bp = Blueprint("formula", __name__, url_prefix="/api/v1/formula")

@bp.get("")
def get_formula():
    store = get_store()
    state, tier = store.load_state()
    return ok(formula_view(state.formula), storage=tier)

@bp.route("", methods=["PUT", "PATCH"])
def update_formula():
    """
    Partial update. Accepts snake_case or camelCase keys:
      shift_rate / shiftRate, internship_rate / internshipRate,
      total_bar_amount / totalBarAmount, bar_percentage / barPercentage (fraction).
    A value that is not a number falls back to that field's default.
    """
    store = get_store()
    state, _ = store.load_state()
    state.formula = FormulaConfig.from_mapping(json_body(), base=state.formula)
    tier = store.save_state(state)
    return ok(formula_view(state.formula), storage=tier)
