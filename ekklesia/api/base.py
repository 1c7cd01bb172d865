# ekklesia/api/base.py
"""Helpers shared by the API blueprints"""
from flask import current_app, jsonify, request
from marshmallow import EXCLUDE, Schema, ValidationError as SchemaValidationError

from ekklesia.core.errors import APIError
from ekklesia.core.exceptions import BaseAPIException
from ekklesia.core.utils import parse_int

# Raised on purpose by views and passed through untouched
EXPECTED_ERRORS = (BaseAPIException, APIError, SchemaValidationError)


class RequestSchema(Schema):
    """Base for request bodies; unknown keys are dropped"""

    class Meta:
        unknown = EXCLUDE


def load_json(schema, partial=False):
    """Validate the JSON body with a marshmallow schema"""
    data = request.get_json(silent=True)
    if data is None:
        raise APIError("No data provided", status_code=400)
    return schema.load(data, partial=partial)


def success(data=None, message=None, status_code=200, **extra):
    body = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return jsonify(body), status_code


def paginate(query, serialize):
    """Paginate a query from ``page``/``per_page`` request args"""
    page = max(parse_int(request.args.get("page"), 1), 1)
    per_page = min(
        max(parse_int(request.args.get("per_page"), current_app.config["DEFAULT_PAGE_SIZE"]), 1),
        current_app.config["MAX_PAGE_SIZE"],
    )
    pagination = query.paginate(page=page, per_page=per_page, error_out=False)
    return success(
        [serialize(item) for item in pagination.items],
        meta={
            "total": pagination.total,
            "pages": pagination.pages,
            "current_page": page,
            "per_page": per_page,
        },
    )


def bool_arg(name):
    """Parse a true/false query argument; None when absent"""
    value = request.args.get(name)
    if value is None:
        return None
    return value.lower() in ("1", "true", "yes")
