# ekklesia/api/health/routes.py
import time

from flask import current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ekklesia.extensions import db
from . import health_bp


def check_database():
    """Check database connection"""
    try:
        db.session.execute(text("SELECT 1"))
        return True, "Healthy"
    except SQLAlchemyError as e:
        db.session.rollback()
        return False, str(e)


@health_bp.route("/health")
def health_check():
    start_time = time.time()
    db_healthy, db_message = check_database()
    status = "healthy" if db_healthy else "unhealthy"

    return jsonify(
        {
            "status": status,
            "response_time": f"{time.time() - start_time:.3f}s",
            "services": {
                "database": {
                    "status": "healthy" if db_healthy else "unhealthy",
                    "message": db_message,
                }
            },
            "version": current_app.config.get("VERSION", "1.0.0"),
        }
    ), (200 if db_healthy else 503)
