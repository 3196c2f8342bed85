# barpay_api/common/errors.py
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from barpay_api.common.http import fail


class APIError(Exception):
    """Custom API Error class."""
    def __init__(self, code, message, status_code=400, payload=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.payload = payload


class StorageError(Exception):
    """A storage tier could not serve a read or write.

    Recoverable: the tiered store catches it and tries the next tier.
    """
    def __init__(self, message, tier=None):
        super().__init__(message)
        self.message = message
        self.tier = tier


def register_error_handlers(app):
    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        return fail(e.description or e.name, status=e.code or 500)

    @app.errorhandler(IntegrityError)
    def _integrity(e: IntegrityError):
        return fail("Duplicate or FK constraint failed", status=409, code="CONSTRAINT_ERROR")

    @app.errorhandler(APIError)
    def _api_error(e: APIError):
        return fail(e.message, status=e.status_code, code=e.code, detail=e.payload)

    @app.errorhandler(StorageError)
    def _storage(e: StorageError):
        app.logger.warning("storage unavailable (%s): %s", e.tier or "any", e.message)
        return fail(e.message, status=503, code="STORAGE_UNAVAILABLE")

    @app.errorhandler(Exception)
    def _500(e: Exception):
        app.logger.exception(e)
        return fail("Internal server error", status=500)
