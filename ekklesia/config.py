import os
import sys
import logging
from datetime import timedelta
from logging.handlers import RotatingFileHandler

from flask import g, has_app_context


class TenantContextFilter(logging.Filter):
    """Stamp every record with the tenant of the authenticated user, if any"""

    def filter(self, record):
        if not hasattr(record, "tenant_id"):
            tenant_id = None
            if has_app_context():
                user = g.get("current_user")
                tenant_id = getattr(user, "tenant_id", None)
            record.tenant_id = tenant_id or "NO_TENANT"
        return True


def setup_logging(app_env, log_dir="logs"):
    """Configure logging based on environment"""
    log_level = logging.DEBUG if app_env == "development" else logging.INFO

    log_format = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - [%(tenant_id)s] - %(message)s"
    )
    tenant_filter = TenantContextFilter()

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(log_format)
    console_handler.addFilter(tenant_filter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear existing handlers to prevent duplicates
    root_logger.handlers = []
    root_logger.addHandler(console_handler)

    # Tests log to stdout only
    if app_env != "testing":
        if not os.path.exists(log_dir):
            os.makedirs(log_dir)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, "ekklesia.log"), maxBytes=10 * 1024 * 1024, backupCount=5  # 10MB
        )
        file_handler.setFormatter(log_format)
        file_handler.addFilter(tenant_filter)
        root_logger.addHandler(file_handler)

    return root_logger


def get_db_url(db_name):
    """Get database URL with connection parameters"""
    user = os.getenv("DB_USER", "postgres")
    password = os.getenv("DB_PASSWORD", "postgres")
    host = os.getenv("DB_HOST", "localhost")
    port = os.getenv("DB_PORT", "5432")

    # Add SSL mode for production
    ssl_mode = "?sslmode=verify-full" if os.getenv("FLASK_ENV") == "production" else ""

    return f"postgresql://{user}:{password}@{host}:{port}/{db_name}{ssl_mode}"


class BaseConfig:
    """Base configuration with shared settings"""

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = True

    # Security settings
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    # CORS settings
    CORS_ORIGINS = "*"

    # JWT settings
    JWT_TOKEN_LOCATION = ["headers"]
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=30)

    # Database settings
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_size": 10,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "max_overflow": 20,
        "pool_pre_ping": True,
    }

    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-jwt-secret-key")

    SENTRY_DSN = os.getenv("SENTRY_DSN")
    VERSION = "1.0.0"

    # Domain settings
    DEFAULT_PAGE_SIZE = 20
    MAX_PAGE_SIZE = 100
    TENANT_ADMIN_ROLE_NAME = "Administrator"


class DevelopmentConfig(BaseConfig):
    """Development configuration"""

    DEBUG = True
    DEVELOPMENT = True

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", get_db_url("ekklesia_dev"))
    SQLALCHEMY_ECHO = False

    SESSION_COOKIE_SECURE = False
    CORS_ORIGINS = ["http://localhost:3000"]

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
    }


class ProductionConfig(BaseConfig):
    """Production configuration"""

    DEBUG = False
    TESTING = False

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL")
    SQLALCHEMY_ECHO = False

    CORS_ORIGINS = os.getenv("ALLOWED_ORIGINS", "").split(",")

    PREFERRED_URL_SCHEME = "https"
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024  # 10MB


class TestingConfig(BaseConfig):
    """Testing configuration"""

    TESTING = True
    DEBUG = False

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ECHO = False
    # sqlite in-memory runs on a static pool, pool sizing does not apply
    SQLALCHEMY_ENGINE_OPTIONS = {}

    SECRET_KEY = "test-secret-key"
    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-length"
    SENTRY_DSN = None


config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
