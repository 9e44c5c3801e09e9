# backend/vales/services/voucher_service.py
"""
Loan voucher ledger.

WHY: A store lending goods to another store records a voucher ("vale")
listing the merchandise. The lender later marks it as settled once the
goods are returned or paid for.

LIFECYCLE:
1. pendiente: created together with its items in one transaction
2. completado: settled by the origin (lending) store; terminal

A voucher and its items are one aggregate: items are never created, edited
or deleted on their own.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Mapping

from flask import current_app
from sqlalchemy.orm import joinedload, selectinload

from ..errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import (
    Store,
    Voucher,
    VoucherItem,
    VOUCHER_STATE_PENDING,
    VOUCHER_STATE_SETTLED,
    VOUCHER_STATES,
)
from vales.time_utils import parse_iso_date
from .concurrency import lock_for_update, run_guarded
from .export_service import ITEM_SEPARATOR


# Same message for "missing" and "belongs to another store"
NOT_FOUND_OR_FORBIDDEN = "No tienes permiso para modificar este vale o el vale no existe"

ALL_STATES = "todos"

# Matches the persona_responsable column
MAX_PERSON_LENGTH = 255


@dataclass(frozen=True)
class VoucherSearchFilters:
    """
    Optional search criteria. Every criterion that is set must match (AND).

    - date_from / date_to: inclusive bounds on the voucher date
    - origin_store_id / destination_store_id: exact store match
    - store_id: the store is either the origin or the destination
    - state: exact state ("pendiente" / "completado")
    - merchandise: case-insensitive substring of any item description,
      applied after the storage-level filters
    """
    date_from: date | None = None
    date_to: date | None = None
    origin_store_id: int | None = None
    destination_store_id: int | None = None
    store_id: int | None = None
    state: str | None = None
    merchandise: str | None = None

    @classmethod
    def from_args(cls, args: Mapping[str, str]) -> "VoucherSearchFilters":
        """Build filters from the query-string names the frontend sends."""
        state = (args.get("estado") or "").strip() or None
        if state == ALL_STATES:
            state = None
        if state is not None and state not in VOUCHER_STATES:
            raise ValidationError(f"Estado inválido: {state}")

        merchandise = (args.get("mercaderia") or "").strip() or None

        return cls(
            date_from=_parse_date(args.get("fechaDesde"), "fechaDesde"),
            date_to=_parse_date(args.get("fechaHasta"), "fechaHasta"),
            origin_store_id=_parse_id(args.get("localOrigen"), "localOrigen"),
            destination_store_id=_parse_id(args.get("localDestino"), "localDestino"),
            store_id=_parse_id(args.get("localId"), "localId"),
            state=state,
            merchandise=merchandise,
        )


def _parse_date(value, label: str) -> date | None:
    try:
        return parse_iso_date(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Fecha inválida en {label}")


def _parse_id(value, label: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"Identificador inválido en {label}")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        return None
    # isdigit() alone also accepts characters like "²" that int() rejects
    if not (text.isascii() and text.isdigit()):
        raise ValidationError(f"Identificador inválido en {label}")
    return int(text)


def clean_descriptions(items: Iterable | None) -> list[str]:
    """
    Strip item descriptions and drop blank ones.

    The CSV export joins items with ITEM_SEPARATOR, so a description may
    not contain it.
    """
    cleaned = []
    for item in items or []:
        if item is None:
            continue
        if not isinstance(item, str):
            raise ValidationError("Cada item de mercadería debe ser un texto")
        text = item.strip()
        # Padded so items starting with "| " or ending with " |" are caught too
        if ITEM_SEPARATOR in f" {text} ":
            raise ValidationError(
                f'La descripción de un item no puede contener "{ITEM_SEPARATOR}"'
            )
        if text:
            cleaned.append(text)
    return cleaned


def _require_descriptions(items) -> list[str]:
    descriptions = clean_descriptions(items)
    if not descriptions:
        raise ValidationError("Debe incluir al menos un item de mercadería")
    return descriptions


def _require_header(voucher_date, destination_store_id, responsible_person) -> tuple[date, int, str]:
    parsed_date = _parse_date(voucher_date, "fecha")
    if parsed_date is None:
        raise ValidationError("La fecha es obligatoria")

    destination_id = _parse_id(destination_store_id, "local_destino_id")
    if destination_id is None:
        raise ValidationError("El local destino es obligatorio")

    person = (responsible_person or "").strip() if isinstance(responsible_person, str) else ""
    if not person:
        raise ValidationError("La persona responsable es obligatoria")
    if len(person) > MAX_PERSON_LENGTH:
        raise ValidationError(
            f"La persona responsable no puede superar {MAX_PERSON_LENGTH} caracteres"
        )

    return parsed_date, destination_id, person


def _check_stores(origin_store_id: int, destination_store_id: int) -> None:
    if origin_store_id == destination_store_id:
        raise ValidationError("El local destino debe ser distinto del local origen")

    found = {
        store_id
        for (store_id,) in db.session.query(Store.id).filter(
            Store.id.in_([origin_store_id, destination_store_id])
        )
    }
    if origin_store_id not in found:
        raise ValidationError("Local origen no encontrado")
    if destination_store_id not in found:
        raise ValidationError("Local destino no encontrado")


def _insert_items(voucher: Voucher, descriptions: list[str]) -> list[VoucherItem]:
    items = [VoucherItem(voucher=voucher, description=text) for text in descriptions]
    db.session.add_all(items)
    db.session.flush()
    return items


def _enriched_query():
    return db.session.query(Voucher).options(
        joinedload(Voucher.origin_store),
        joinedload(Voucher.destination_store),
        selectinload(Voucher.items),
    )


def _newest_first(query):
    return query.order_by(Voucher.date.desc(), Voucher.id.desc())


def create_voucher(
    voucher_date,
    origin_store_id: int,
    destination_store_id,
    responsible_person: str,
    items: Iterable[str],
) -> Voucher:
    """
    Create a pending voucher with its items.

    Voucher row and item rows are written in one transaction: if inserting
    the items fails the voucher insert is rolled back too, so a voucher
    without items is never visible.

    Args:
        voucher_date: Loan date (date or "YYYY-MM-DD")
        origin_store_id: Lending store, taken from the authenticated session
        destination_store_id: Borrowing store
        responsible_person: Person carrying the goods
        items: Merchandise descriptions; blanks are ignored

    Raises:
        ValidationError: missing fields, no items, unknown or identical stores
        PersistenceError: storage failure (transaction rolled back)
    """
    parsed_date, destination_id, person = _require_header(
        voucher_date, destination_store_id, responsible_person
    )
    descriptions = _require_descriptions(items)

    def _op():
        _check_stores(origin_store_id, destination_id)
        try:
            voucher = Voucher(
                date=parsed_date,
                origin_store_id=origin_store_id,
                destination_store_id=destination_id,
                responsible_person=person,
                state=VOUCHER_STATE_PENDING,
            )
            db.session.add(voucher)
            db.session.flush()  # Get ID

            _insert_items(voucher, descriptions)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return voucher

    voucher = run_guarded(_op, action="creating voucher")
    current_app.logger.info(
        "Voucher %s created by store %s for store %s (%d items)",
        voucher.id, origin_store_id, destination_id, len(descriptions),
    )
    return voucher


def get_all() -> list[Voucher]:
    """All vouchers, newest date first, with stores and items loaded."""
    return run_guarded(
        lambda: _newest_first(_enriched_query()).all(),
        action="listing vouchers",
    )


def find_by_id(voucher_id: int) -> Voucher | None:
    return run_guarded(
        lambda: _enriched_query().filter(Voucher.id == voucher_id).first(),
        action=f"loading voucher {voucher_id}",
    )


def search(filters: VoucherSearchFilters | None = None) -> list[Voucher]:
    """
    Search vouchers. Date, store and state criteria run in SQL; the
    merchandise criterion spans the items and is applied afterwards.
    """
    filters = filters or VoucherSearchFilters()

    def _op():
        query = _enriched_query()
        if filters.date_from is not None:
            query = query.filter(Voucher.date >= filters.date_from)
        if filters.date_to is not None:
            query = query.filter(Voucher.date <= filters.date_to)
        if filters.origin_store_id is not None:
            query = query.filter(Voucher.origin_store_id == filters.origin_store_id)
        if filters.destination_store_id is not None:
            query = query.filter(Voucher.destination_store_id == filters.destination_store_id)
        if filters.store_id is not None:
            query = query.filter(db.or_(
                Voucher.origin_store_id == filters.store_id,
                Voucher.destination_store_id == filters.store_id,
            ))
        if filters.state is not None:
            query = query.filter(Voucher.state == filters.state)
        return _newest_first(query).all()

    vouchers = run_guarded(_op, action="searching vouchers")

    if filters.merchandise:
        needle = filters.merchandise.casefold()
        vouchers = [
            voucher for voucher in vouchers
            if any(needle in item.description.casefold() for item in voucher.items)
        ]

    return vouchers


def _scoped_for_update(voucher_id: int, origin_store_id: int | None) -> Voucher:
    query = db.session.query(Voucher).filter(Voucher.id == voucher_id)
    if origin_store_id is not None:
        query = query.filter(Voucher.origin_store_id == origin_store_id)

    voucher = lock_for_update(query).first()
    if voucher:
        return voucher
    if origin_store_id is not None:
        raise AuthorizationError(NOT_FOUND_OR_FORBIDDEN)
    raise NotFoundError("Vale no encontrado")


def mark_settled(voucher_id: int, caller_store_id: int) -> Voucher:
    """
    Mark a voucher as settled ("completado").

    Only the origin (lending) store may settle. A voucher that does not
    exist and one owned by another store produce the same error.
    Settling an already-settled voucher succeeds without changes.

    Raises:
        AuthorizationError: no voucher with that id lent by caller_store_id
    """
    def _op():
        voucher = _scoped_for_update(voucher_id, caller_store_id)
        already_settled = voucher.is_settled
        voucher.state = VOUCHER_STATE_SETTLED
        db.session.commit()
        return voucher, already_settled

    voucher, already_settled = run_guarded(_op, action=f"settling voucher {voucher_id}")
    if not already_settled:
        current_app.logger.info("Voucher %s settled by store %s", voucher_id, caller_store_id)
    return voucher


def update_voucher(
    voucher_id: int,
    *,
    voucher_date,
    destination_store_id,
    responsible_person: str,
    state: str | None = None,
    items: Iterable[str] | None = None,
    origin_store_id: int | None = None,
) -> Voucher:
    """
    Replace the voucher fields and, when given, its whole item list.

    Items are not diffed: all existing items are deleted and the new set
    inserted in the same transaction. `state=None` keeps the current state;
    moving a settled voucher back to pending is rejected.

    When origin_store_id is given, the voucher must have been lent by that
    store (same not-found-or-forbidden rule as mark_settled).
    """
    parsed_date, destination_id, person = _require_header(
        voucher_date, destination_store_id, responsible_person
    )
    if state is not None and state not in VOUCHER_STATES:
        raise ValidationError(f"Estado inválido: {state}")
    descriptions = _require_descriptions(items) if items is not None else None

    def _op():
        try:
            voucher = _scoped_for_update(voucher_id, origin_store_id)
            _check_stores(voucher.origin_store_id, destination_id)

            if state == VOUCHER_STATE_PENDING and voucher.is_settled:
                raise ConflictError("Un vale completado no puede volver a pendiente")

            voucher.date = parsed_date
            voucher.destination_store_id = destination_id
            voucher.responsible_person = person
            if state is not None:
                voucher.state = state

            if descriptions is not None:
                voucher.items = [VoucherItem(description=text) for text in descriptions]

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return voucher

    voucher = run_guarded(_op, action=f"updating voucher {voucher_id}")
    current_app.logger.info("Voucher %s updated", voucher_id)
    return voucher


def delete_voucher(voucher_id: int, origin_store_id: int | None = None) -> None:
    """Delete a voucher; its items go with it through the relationship cascade."""
    def _op():
        voucher = _scoped_for_update(voucher_id, origin_store_id)
        db.session.delete(voucher)
        db.session.commit()

    run_guarded(_op, action=f"deleting voucher {voucher_id}")
    current_app.logger.info("Voucher %s deleted", voucher_id)
