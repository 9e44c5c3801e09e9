# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- POST /api/auth/login   : exchange store login + password for a bearer token
- GET  /api/auth/user    : store behind the presented token
- POST /api/auth/logout  : revoke the presented token
"""

from flask import Blueprint, request, current_app, g

from ..services import auth_service
from ..services import session_service
from ..errors import ValesError
from ..decorators import require_auth, bearer_token
from vales.time_utils import to_utc_z
from .responses import ok, fail, from_error


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate a store and create a session token.

    Request body:
    {
        "usuario": str,
        "password": str
    }

    Returns:
        200: {success, token, user, expires_at}
        400: Missing credentials
        401: Invalid credentials
    """
    try:
        data = request.get_json(silent=True) or {}
        login = data.get("usuario") or data.get("username")
        password = data.get("password")

        if not login or not password:
            return fail("Usuario y contraseña son requeridos", 400)

        store = auth_service.authenticate(login, password)
        if not store:
            return fail("Credenciales inválidas", 401)

        session, token = session_service.create_session(
            store_id=store.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr
        )

        return ok(
            user=store.to_dict(),
            token=token,
            expires_at=to_utc_z(session.expires_at),
            message="Inicio de sesión exitoso",
        )

    except ValesError as exc:
        return from_error(exc)
    except Exception:
        current_app.logger.exception("Failed to login store")
        return fail("Error en el servidor", 500)


@auth_bp.get("/user")
@require_auth
def current_user_route():
    return ok(user=g.current_store.to_dict())


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the presented session token."""
    try:
        session_service.revoke_session(bearer_token(), reason="User logout")
        return ok(message="Sesión cerrada correctamente")
    except Exception:
        current_app.logger.exception("Failed to logout store")
        return fail("Error en el servidor", 500)
