# ekklesia/__init__.py
import logging

from flask import Flask, jsonify, request, g

from .extensions import init_extensions
from .config import config_by_name, setup_logging
from .core.errors import register_error_handlers
from .core.monitoring import init_sentry
from .api.auth import auth_bp
from .api.tenant import tenant_bp
from .api.user import user_bp
from .api.role import role_bp
from .api.permission import permission_bp
from .api.family import family_bp
from .api.bcc import bcc_bp
from .api.audit import audit_bp
from .api.health import health_bp
from .commands import register_commands

logger = logging.getLogger(__name__)


def create_app(config_name="development"):
    app = Flask(__name__)

    # Load config
    app.config.from_object(config_by_name[config_name])
    app.config["ENV_NAME"] = config_name
    setup_logging(config_name)

    init_extensions(app)
    init_sentry(app)
    register_error_handlers(app)
    register_commands(app)

    @app.route("/")
    def root():
        return jsonify(
            {"service": "Ekklesia Backend API", "version": app.config["VERSION"], "status": "running"}
        )

    @app.before_request
    def reset_request_state():
        # g outlives a request when an outer app context is already pushed
        g.pop("current_user", None)
        g.pop("audit_changes", None)

    @app.before_request
    def log_request_info():
        logger.info(f"{request.method} {request.path}")

    # Register blueprints
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(tenant_bp, url_prefix="/api/tenants")
    app.register_blueprint(user_bp, url_prefix="/api/users")
    app.register_blueprint(role_bp, url_prefix="/api/roles")
    app.register_blueprint(permission_bp, url_prefix="/api/permissions")
    app.register_blueprint(family_bp, url_prefix="/api/families")
    app.register_blueprint(bcc_bp, url_prefix="/api/bccs")
    app.register_blueprint(audit_bp, url_prefix="/api/audit-logs")
    app.register_blueprint(health_bp, url_prefix="/api")

    logger.debug(f"Registered {len(list(app.url_map.iter_rules()))} routes")

    return app
