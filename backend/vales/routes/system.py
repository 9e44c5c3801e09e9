# backend/vales/routes/system.py
"""
API root and health endpoints.
"""

import time
from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Store, Voucher

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity with two cheap counts.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        store_count = db.session.query(Store).count()
        voucher_count = db.session.query(Voucher).count()
        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "stores": store_count,
                "vouchers": voucher_count,
            }
        }
    except SQLAlchemyError:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/api")
def api_root():
    return jsonify({"message": "API de Sistema de Préstamos entre Locales"})


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "healthy"
    return jsonify({
        "success": healthy,
        "status": "healthy" if healthy else "unhealthy",
        "database": database,
    }), 200 if healthy else 503
