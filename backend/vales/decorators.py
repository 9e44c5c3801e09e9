# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service


def bearer_token() -> str | None:
    """Extract the token from an `Authorization: Bearer <token>` header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def require_auth(f):
    """
    Require a valid session token and establish the caller's store context.

    Sets the following Flask g attributes:
    - g.current_store: The authenticated Store
    - g.store_id: Its id (origin store for vouchers created in this request)
    - g.session_context: The full SessionContext object

    Returns 401 if the header is missing or the token is invalid, expired
    or revoked.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"success": False, "message": "No autorizado"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"success": False, "message": "Token inválido o expirado"}), 401

        g.current_store = context.store
        g.store_id = context.store_id
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function
