# Overview: Store directory; lookups and credential mutations for the `usuarios` table.

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Store
from .auth_service import hash_password
from .concurrency import lock_for_update, run_guarded
from . import session_service


class StoreConflictError(ConflictError):
    """Raised when a login is already taken by another store."""

    default_message = "El usuario ya existe"


def find_by_login(login: str | None) -> Store | None:
    """Exact (case-sensitive) login lookup. Absence is None, not an error."""
    if not login:
        return None
    return run_guarded(
        lambda: db.session.query(Store).filter_by(login=login).first(),
        action=f"looking up store login {login!r}",
    )


def find_by_id(store_id: int) -> Store | None:
    return run_guarded(
        lambda: db.session.query(Store).filter_by(id=store_id).first(),
        action=f"looking up store {store_id}",
    )


def list_all() -> list[Store]:
    return run_guarded(
        lambda: db.session.query(Store).order_by(Store.name.asc(), Store.id.asc()).all(),
        action="listing stores",
    )


# Column sizes of usuarios.nombre / usuarios.usuario
MAX_NAME_LENGTH = 120
MAX_LOGIN_LENGTH = 64


def _clean(value: str | None, label: str, max_length: int) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"El campo {label} es obligatorio")
    if len(cleaned) > max_length:
        raise ValidationError(f"El campo {label} no puede superar {max_length} caracteres")
    return cleaned


def _commit_or_conflict() -> None:
    try:
        db.session.commit()
    except IntegrityError as exc:
        # Unique index on login caught a concurrent insert
        db.session.rollback()
        raise StoreConflictError() from exc


def create(name: str, login: str, password: str) -> Store:
    """
    Create a store with a bcrypt-hashed password.

    Raises:
        ValidationError: blank name/login or weak password
        StoreConflictError: login already exists (callers may fall back to update)
        PersistenceError: any other storage failure
    """
    name = _clean(name, "nombre", MAX_NAME_LENGTH)
    login = _clean(login, "usuario", MAX_LOGIN_LENGTH)
    password_hash = hash_password(password)

    def _op():
        existing = db.session.query(Store).filter_by(login=login).first()
        if existing:
            raise StoreConflictError()

        store = Store(name=name, login=login, password_hash=password_hash)
        db.session.add(store)
        _commit_or_conflict()
        return store

    store = run_guarded(_op, action=f"creating store {login!r}")
    current_app.logger.info("Created store %s (%r)", store.id, store.login)
    return store


def update(
    store_id: int,
    *,
    name: str | None = None,
    login: str | None = None,
    password: str | None = None
) -> Store:
    """
    Update store fields. A new password is re-hashed and revokes the store's
    open sessions; omitted fields are left alone.
    """
    new_name = _clean(name, "nombre", MAX_NAME_LENGTH) if name is not None else None
    new_login = _clean(login, "usuario", MAX_LOGIN_LENGTH) if login is not None else None
    new_hash = hash_password(password) if password is not None else None

    def _op():
        store = lock_for_update(db.session.query(Store).filter_by(id=store_id)).first()
        if not store:
            raise NotFoundError("Local no encontrado")

        if new_login is not None and new_login != store.login:
            taken = db.session.query(Store).filter(
                Store.login == new_login,
                Store.id != store_id,
            ).first()
            if taken:
                raise StoreConflictError()
            store.login = new_login

        if new_name is not None:
            store.name = new_name

        if new_hash is not None:
            store.password_hash = new_hash
            session_service.revoke_all_store_sessions(store.id, reason="Password changed", commit=False)

        _commit_or_conflict()
        return store

    return run_guarded(_op, action=f"updating store {store_id}")


def upsert(name: str, login: str, password: str) -> tuple[Store, bool]:
    """
    Create the store, or update its password when the login already exists.

    Returns (store, created).
    """
    try:
        return create(name, login, password), True
    except StoreConflictError:
        existing = find_by_login((login or "").strip())
        if not existing:
            raise
        current_app.logger.info("Store login %r exists, updating password", existing.login)
        return update(existing.id, password=password), False
