from flask import Blueprint

from barpay_api.common.http import ok
from barpay_api.services.storage import get_store

bp = Blueprint("health", __name__, url_prefix="/api/v1")

@bp.get("/health")
def health():
    return ok({"status": "ok", "storage": get_store().describe()})
