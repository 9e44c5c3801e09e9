# Overview: Flask API routes for the store directory; parses input and returns JSON responses.

from flask import Blueprint, current_app

from ..decorators import require_auth
from ..errors import ValesError
from ..services import store_service
from .responses import ok, fail, from_error


stores_bp = Blueprint("stores", __name__, url_prefix="/api/usuarios")


@stores_bp.get("")
@require_auth
def list_stores():
    """All stores ordered by name. Password hashes are never included."""
    try:
        stores = store_service.list_all()
        return ok(usuarios=[store.to_dict() for store in stores])
    except ValesError as exc:
        return from_error(exc)
    except Exception:
        current_app.logger.exception("Failed to list stores")
        return fail("Error al obtener usuarios", 500)
