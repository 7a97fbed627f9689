# backend/roastery/routes/system.py
"""
System health endpoint.
"""

import time
from flask import Blueprint, current_app, jsonify
from ..extensions import db
from ..models import GreenCoffee, Shop, User

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """Run a few counting queries and time them."""
    start_time = time.time()
    try:
        details = {
            "users": db.session.query(User).count(),
            "shops": db.session.query(Shop).count(),
            "green_coffee": db.session.query(GreenCoffee).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    status = "ok" if database["status"] == "healthy" else "degraded"
    code = 200 if status == "ok" else 503
    return jsonify({"status": status, "checks": {"database": database}}), code
