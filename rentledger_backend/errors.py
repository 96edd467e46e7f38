# rentledger_backend/errors.py
from flask import jsonify


class LedgerError(Exception):
    """Base class for errors raised by the tenancy and rent-ledger operations."""

    status_code = 500
    code = "error"

    def __init__(self, message, field=None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self):
        body = {"error": self.code, "message": self.message}
        if self.field:
            body["field"] = self.field
        return body


class ValidationError(LedgerError):
    """Missing or malformed required input."""

    status_code = 400
    code = "validation_error"


class NotFoundError(LedgerError):
    status_code = 404
    code = "not_found"


class ConflictError(LedgerError):
    """A unique constraint was violated (unit number, obligation key, active tenancy)."""

    status_code = 409
    code = "conflict"


class PersistenceError(LedgerError):
    """The database was unreachable or the transaction was aborted."""

    status_code = 500
    code = "persistence_error"


def register_error_handlers(app):
    @app.errorhandler(LedgerError)
    def _ledger_error(e):
        if e.status_code >= 500:
            app.logger.error("Request failed: %s", e.message)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(400)
    def _bad_request(e):
        msg = getattr(e, "description", "Bad Request")
        return jsonify(error="bad_request", message=msg), 400

    @app.errorhandler(401)
    def _unauthorized(e):
        return jsonify(error="unauthorized"), 401

    @app.errorhandler(404)
    def _not_found(e):
        return jsonify(error="not_found", message="Not Found"), 404

    @app.errorhandler(405)
    def _method_not_allowed(e):
        return jsonify(error="method_not_allowed"), 405

    @app.errorhandler(500)
    def _server_error(e):
        app.logger.exception("Unhandled exception: %s", e)
        return jsonify(error="server_error"), 500
