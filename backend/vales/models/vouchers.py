from __future__ import annotations

from ..extensions import db
from vales.time_utils import to_iso_date, to_utc_z


# Stored values are the ones the frontend filters on
VOUCHER_STATE_PENDING = "pendiente"
VOUCHER_STATE_SETTLED = "completado"
VOUCHER_STATES = (VOUCHER_STATE_PENDING, VOUCHER_STATE_SETTLED)


class Voucher(db.Model):
    """
    Loan voucher ("vale"): goods lent by the origin store to the destination store.

    LIFECYCLE:
    1. pendiente: created, goods not yet returned/paid
    2. completado: settled by the origin store (terminal)

    The voucher owns its items; they are deleted with it.
    """
    __tablename__ = "vales"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column("fecha", db.Date, nullable=False, index=True)

    # Lender and borrower
    origin_store_id = db.Column("local_origen_id", db.Integer, db.ForeignKey("usuarios.id"), nullable=False, index=True)
    destination_store_id = db.Column("local_destino_id", db.Integer, db.ForeignKey("usuarios.id"), nullable=False, index=True)

    responsible_person = db.Column("persona_responsable", db.String(255), nullable=False)
    state = db.Column("estado", db.String(16), nullable=False, default=VOUCHER_STATE_PENDING, index=True)

    created_at = db.Column("creado_en", db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    origin_store = db.relationship("Store", foreign_keys=[origin_store_id])
    destination_store = db.relationship("Store", foreign_keys=[destination_store_id])
    items = db.relationship(
        "VoucherItem",
        back_populates="voucher",
        cascade="all, delete-orphan",
        order_by="VoucherItem.id",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Voucher id={self.id} fecha={self.date} estado={self.state!r}>"

    @property
    def is_settled(self) -> bool:
        return self.state == VOUCHER_STATE_SETTLED

    def to_dict(self) -> dict:
        origin = self.origin_store
        destination = self.destination_store
        return {
            "id": self.id,
            "fecha": to_iso_date(self.date),
            "local_origen_id": self.origin_store_id,
            "local_destino_id": self.destination_store_id,
            "origen_id": self.origin_store_id,
            "origen_nombre": origin.name if origin else None,
            "destino_id": self.destination_store_id,
            "destino_nombre": destination.name if destination else None,
            "persona_responsable": self.responsible_person,
            "estado": self.state,
            "creado_en": to_utc_z(self.created_at),
            "items": [item.to_dict() for item in self.items],
        }


class VoucherItem(db.Model):
    """One free-text line of merchandise on a voucher."""
    __tablename__ = "items_mercaderia"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    voucher_id = db.Column(
        "vale_id",
        db.Integer,
        db.ForeignKey("vales.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    description = db.Column("descripcion", db.Text, nullable=False)

    voucher = db.relationship("Voucher", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "descripcion": self.description,
        }
