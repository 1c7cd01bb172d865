# ekklesia/core/monitoring.py

from functools import wraps

import sentry_sdk
from flask import g, has_request_context, request
from sentry_sdk.integrations.flask import FlaskIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration


def should_capture_error(exception):
    """Expected request failures (4xx domain errors) are not reported"""
    status_code = getattr(exception, "status_code", None)
    if status_code is not None and status_code < 500:
        return False
    return True


def _actor_context():
    user = g.get("current_user") if has_request_context() else None
    if user is None:
        return None
    return {"id": user.id, "tenant_id": user.tenant_id}


def init_sentry(app):
    """Initialize Sentry when a DSN is configured"""
    if not app.config.get("SENTRY_DSN"):
        app.logger.info("SENTRY_DSN not configured, skipping Sentry initialization")
        return

    def before_send(event, hint):
        exc_info = hint.get("exc_info")
        if exc_info and not should_capture_error(exc_info[1]):
            return None

        actor = _actor_context()
        if actor:
            event.setdefault("tags", {})["tenant_id"] = actor["tenant_id"] or "global"
            event["user"] = {"id": actor["id"]}

        if has_request_context():
            event.setdefault("request", {})
            event["request"]["url"] = request.url
            event["request"]["method"] = request.method

        return event

    sentry_sdk.init(
        dsn=app.config["SENTRY_DSN"],
        integrations=[FlaskIntegration(transaction_style="url"), SqlalchemyIntegration()],
        before_send=before_send,
        traces_sample_rate=0.01,
        environment=app.config.get("ENV_NAME", "production"),
        max_breadcrumbs=20,
        send_default_pii=False,
    )


def capture_error(func):
    """Report unexpected failures of the wrapped view to Sentry, then re-raise"""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            if should_capture_error(e):
                with sentry_sdk.new_scope() as scope:
                    actor = _actor_context()
                    if actor:
                        scope.set_tag("tenant_id", actor["tenant_id"] or "global")
                        scope.set_user({"id": actor["id"]})
                    sentry_sdk.capture_exception(e)
            raise

    return wrapper
