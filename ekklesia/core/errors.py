# ekklesia/core/errors.py
import logging

from flask import jsonify, request
from marshmallow import ValidationError as SchemaValidationError
from werkzeug.exceptions import HTTPException

from .exceptions import BaseAPIException, TenantIsolationError, ValidationError

logger = logging.getLogger(__name__)


class APIError(Exception):
    def __init__(self, message, status_code=400, payload=None):
        super().__init__()
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv["success"] = False
        rv["message"] = self.message
        return rv

    def __str__(self):
        return self.message


def error_response(error_code, message, status_code, **extra):
    body = {"success": False, "error": error_code, "message": message}
    body.update(extra)
    response = jsonify(body)
    response.status_code = status_code
    return response


def isolation_message(entity_type):
    label = (entity_type or "Resource").replace("_", " ")
    return f"{label[:1].upper()}{label[1:]} not found or does not belong to your tenant."


def register_error_handlers(app):
    """Register error handlers with the Flask app"""

    @app.errorhandler(APIError)
    def handle_api_error(error):
        logger.error(f"API Error: {error}")
        response = jsonify(error.to_dict())
        response.status_code = error.status_code
        return response

    @app.errorhandler(TenantIsolationError)
    def handle_tenant_isolation(error):
        # Rendered exactly like a missing record so existence never leaks
        logger.warning(
            f"Tenant isolation violation on {error.entity_type}: actor tenant "
            f"{error.actor_tenant_id} -> entity tenant {error.entity_tenant_id} "
            f"({request.method} {request.path})"
        )
        return error_response("not_found", isolation_message(error.entity_type), 404)

    @app.errorhandler(ValidationError)
    def handle_validation_error(error):
        logger.info(f"Validation failed: {error.message}")
        extra = {"errors": error.errors} if error.errors else {}
        return error_response(error.error_code, error.message, error.status_code, **extra)

    @app.errorhandler(BaseAPIException)
    def handle_domain_error(error):
        logger.info(f"{error.__class__.__name__}: {error.message}")
        return error_response(error.error_code, error.message, error.status_code)

    @app.errorhandler(SchemaValidationError)
    def handle_schema_error(error):
        return error_response(
            "validation_error", "The given data was invalid.", 422, errors=error.messages
        )

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        if error.code == 404:
            logger.error(f"404 Error: {request.url}")
            return error_response(
                "not_found", f"The requested URL {request.path} was not found", 404
            )
        return error_response(error.name.lower().replace(" ", "_"), error.description, error.code)

    @app.errorhandler(Exception)
    def handle_exception(error):
        logger.error(f"Unhandled Exception: {error}", exc_info=True)
        return error_response("server_error", "An unexpected error occurred", 500)
