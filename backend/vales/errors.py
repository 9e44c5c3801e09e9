# Overview: Error taxonomy shared by services and routes.

"""
Every failure a service reports to a caller is one of these kinds.

Routes translate them into `{"success": false, "message": ...}` bodies using
`status_code`. Messages are user-facing (Spanish, like the frontend) and never
carry storage-level detail.
"""


class ValesError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    default_message = "Error en el servidor"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ValesError):
    """400-level input problem. Raised before any write."""

    status_code = 400
    default_message = "Datos inválidos"


class PasswordValidationError(ValidationError):
    """Raised when a password doesn't meet the minimum requirements."""


class AuthenticationError(ValesError):
    status_code = 401
    default_message = "No autorizado"


class NotFoundError(ValesError):
    status_code = 404
    default_message = "Recurso no encontrado"


class AuthorizationError(NotFoundError):
    """
    Caller is not allowed to touch the resource.

    Subclasses NotFoundError so it is presented exactly like a miss and does
    not leak the existence of another store's voucher.
    """


class ConflictError(ValesError):
    """409-level business rule conflict (duplicate login, backwards state change)."""

    status_code = 409
    default_message = "Conflicto con el estado actual"


class PersistenceError(ValesError):
    """Generic storage failure. Detail is logged, never returned."""

    status_code = 500
    default_message = "Error al acceder a la base de datos"
