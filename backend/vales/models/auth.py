from __future__ import annotations

from ..extensions import db
from vales.time_utils import to_utc_z


class Store(db.Model):
    """
    A store ("local") that logs in, lends and borrows goods.

    Stores are the tenants and the users at the same time: each store has
    one login. Table/column names match the original `usuarios` table.

    SECURITY: password_hash is a bcrypt hash and is never serialized.
    """
    __tablename__ = "usuarios"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column("nombre", db.String(120), nullable=False)
    # Exact, case-sensitive match on login
    login = db.Column("usuario", db.String(64), nullable=False, unique=True, index=True)
    password_hash = db.Column("password", db.String(255), nullable=False)

    created_at = db.Column(
        "creado_en",
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Store id={self.id} login={self.login!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "nombre": self.name,
            "usuario": self.login,
            "creado_en": to_utc_z(self.created_at),
        }


class SessionToken(db.Model):
    """
    Opaque bearer token issued at login.

    SECURITY NOTES:
    - Tokens stored hashed in database (SHA-256)
    - Absolute and idle timeouts (see session_service)
    - Revocable on logout or password change
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_store_active", "store_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("usuarios.id"), nullable=False, index=True)

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length

    store = db.relationship("Store", backref=db.backref("session_tokens", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
            "revoked_at": to_utc_z(self.revoked_at) if self.revoked_at else None,
        }
