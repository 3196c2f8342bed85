from flask import Blueprint

from barpay_api.blueprints.payroll import period_view, require_valid_period
from barpay_api.common.http import ok, json_body
from barpay_api.services.payroll_model import PayrollPeriod
from barpay_api.services.storage import get_store

bp = Blueprint("period", __name__, url_prefix="/api/v1/period")

@bp.get("")
def get_period():
    state, tier = get_store().load_state()
    return ok(period_view(state.period), storage=tier)

@bp.route("", methods=["PUT", "PATCH"])
def update_period():
    # no ordering / overlap checks: an inverted range is stored as given
    store = get_store()
    state, _ = store.load_state()
    state.period = require_valid_period(PayrollPeriod.from_mapping(json_body(), base=state.period))
    tier = store.save_state(state)
    return ok(period_view(state.period), storage=tier)
