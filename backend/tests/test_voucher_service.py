# Overview: Pytest coverage for the voucher ledger (create, search, settle, update, delete).

from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError

from vales.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from vales.extensions import db
from vales.models import Voucher, VoucherItem, VOUCHER_STATE_PENDING, VOUCHER_STATE_SETTLED
from vales.services import voucher_service
from vales.services.voucher_service import VoucherSearchFilters


class TestCreateVoucher:

    def test_create_is_pending_with_items(self, central, norte):
        voucher = voucher_service.create_voucher(
            voucher_date="2025-04-12",
            origin_store_id=central.id,
            destination_store_id=norte.id,
            responsible_person="  Juan Pérez ",
            items=["Resma de papel A4", "  ", "Tinta negra HP"],
        )

        assert voucher.state == VOUCHER_STATE_PENDING
        assert voucher.date == date(2025, 4, 12)
        assert voucher.responsible_person == "Juan Pérez"
        assert [item.description for item in voucher.items] == ["Resma de papel A4", "Tinta negra HP"]

    def test_to_dict_includes_store_names(self, central, norte, make_voucher):
        data = make_voucher(central, norte).to_dict()

        assert data["fecha"] == "2025-04-12"
        assert data["origen_nombre"] == "Local Central"
        assert data["destino_nombre"] == "Local Norte"
        assert data["estado"] == "pendiente"
        assert data["items"][0]["descripcion"] == "Resma de papel A4"

    def test_all_blank_items_rejected_without_writing(self, central, norte):
        with pytest.raises(ValidationError):
            voucher_service.create_voucher(date(2025, 4, 12), central.id, norte.id, "Ana", ["", "   "])

        assert db.session.query(Voucher).count() == 0

    @pytest.mark.parametrize("field, value", [
        ("voucher_date", None),
        ("voucher_date", "12/04/2025"),
        ("responsible_person", "   "),
    ])
    def test_missing_header_fields_rejected(self, central, norte, field, value):
        kwargs = {
            "voucher_date": date(2025, 4, 12),
            "origin_store_id": central.id,
            "destination_store_id": norte.id,
            "responsible_person": "Ana",
            "items": ["Caja de lapiceras"],
        }
        kwargs[field] = value

        with pytest.raises(ValidationError):
            voucher_service.create_voucher(**kwargs)

    @pytest.mark.parametrize("description", ["Cable 2 | 3 m", "Tinta |", "| Tinta"])
    def test_item_containing_csv_separator_rejected(self, central, norte, description):
        with pytest.raises(ValidationError):
            voucher_service.create_voucher(
                date(2025, 4, 12), central.id, norte.id, "Ana", [description, "Tinta"],
            )

        assert db.session.query(Voucher).count() == 0

    def test_item_with_bare_pipe_accepted(self, central, norte):
        voucher = voucher_service.create_voucher(
            date(2025, 4, 12), central.id, norte.id, "Ana", ["Cable 2|3 m"],
        )

        assert [item.description for item in voucher.items] == ["Cable 2|3 m"]

    def test_overlong_responsible_person_rejected(self, central, norte):
        with pytest.raises(ValidationError):
            voucher_service.create_voucher(
                date(2025, 4, 12), central.id, norte.id, "A" * 256, ["Tinta"],
            )

        assert db.session.query(Voucher).count() == 0

    def test_same_origin_and_destination_rejected(self, central):
        with pytest.raises(ValidationError):
            voucher_service.create_voucher(date(2025, 4, 12), central.id, central.id, "Ana", ["Cinta"])

    def test_unknown_destination_rejected(self, central):
        with pytest.raises(ValidationError):
            voucher_service.create_voucher(date(2025, 4, 12), central.id, 999999, "Ana", ["Cinta"])

        assert db.session.query(Voucher).count() == 0

    def test_item_insert_failure_leaves_no_voucher(self, central, norte, monkeypatch):
        def failing_insert(voucher, descriptions):
            raise IntegrityError("INSERT INTO items_mercaderia", {}, Exception("disk full"))

        monkeypatch.setattr(voucher_service, "_insert_items", failing_insert)

        with pytest.raises(PersistenceError):
            voucher_service.create_voucher(date(2025, 4, 12), central.id, norte.id, "Ana", ["Cinta"])

        assert db.session.query(Voucher).count() == 0
        assert db.session.query(VoucherItem).count() == 0


class TestQueries:

    def test_get_all_newest_first(self, central, norte, make_voucher):
        older = make_voucher(central, norte, fecha=date(2025, 4, 1))
        newer = make_voucher(norte, central, fecha=date(2025, 4, 20))

        assert [v.id for v in voucher_service.get_all()] == [newer.id, older.id]

    def test_find_by_id(self, central, norte, make_voucher):
        voucher = make_voucher(central, norte)

        assert voucher_service.find_by_id(voucher.id).origin_store.name == "Local Central"
        assert voucher_service.find_by_id(999999) is None

    def test_search_by_date_range(self, central, norte, make_voucher):
        make_voucher(central, norte, fecha=date(2025, 3, 31))
        in_range = make_voucher(central, norte, fecha=date(2025, 4, 12))
        make_voucher(central, norte, fecha=date(2025, 5, 1))

        found = voucher_service.search(VoucherSearchFilters(
            date_from=date(2025, 4, 1), date_to=date(2025, 4, 30),
        ))

        assert [v.id for v in found] == [in_range.id]

    def test_search_date_bounds_are_inclusive(self, central, norte, make_voucher):
        make_voucher(central, norte, fecha=date(2025, 4, 11))
        first_day = make_voucher(central, norte, fecha=date(2025, 4, 12))
        last_day = make_voucher(central, norte, fecha=date(2025, 4, 15))
        make_voucher(central, norte, fecha=date(2025, 4, 16))

        found = voucher_service.search(VoucherSearchFilters.from_args({
            "fechaDesde": "2025-04-12",
            "fechaHasta": "2025-04-15",
        }))

        assert [v.id for v in found] == [last_day.id, first_day.id]

    def test_search_by_merchandise_is_case_insensitive(self, central, norte, make_voucher):
        ink = make_voucher(central, norte, items=("Cartucho de TINTA negra", "Papel"))
        make_voucher(central, norte, items=("Resma de papel A4",))

        found = voucher_service.search(VoucherSearchFilters(merchandise="tinta"))

        assert [v.id for v in found] == [ink.id]

    def test_search_filters_combine(self, central, norte, sur, make_voucher):
        target = make_voucher(central, norte, items=("Tinta",))
        make_voucher(central, sur, items=("Tinta",))
        make_voucher(norte, central, items=("Tinta",))
        settled = make_voucher(central, norte, items=("Tinta",))
        voucher_service.mark_settled(settled.id, central.id)

        found = voucher_service.search(VoucherSearchFilters(
            origin_store_id=central.id,
            destination_store_id=norte.id,
            state=VOUCHER_STATE_PENDING,
            merchandise="tinta",
        ))

        assert [v.id for v in found] == [target.id]

    def test_search_by_store_matches_either_side(self, central, norte, sur, make_voucher):
        lent = make_voucher(central, norte)
        borrowed = make_voucher(sur, central)
        make_voucher(norte, sur)

        found = voucher_service.search(VoucherSearchFilters(store_id=central.id))

        assert {v.id for v in found} == {lent.id, borrowed.id}

    def test_filters_from_query_args(self):
        filters = VoucherSearchFilters.from_args({
            "fechaDesde": "2025-04-01",
            "localOrigen": "3",
            "estado": "todos",
            "mercaderia": "  tinta ",
        })

        assert filters.date_from == date(2025, 4, 1)
        assert filters.origin_store_id == 3
        assert filters.state is None
        assert filters.merchandise == "tinta"

    @pytest.mark.parametrize("args", [
        {"fechaDesde": "ayer"},
        {"localDestino": "abc"},
        {"estado": "perdido"},
        {"localOrigen": "²"},
        {"localId": "-1"},
    ])
    def test_invalid_query_args_rejected(self, args):
        with pytest.raises(ValidationError):
            VoucherSearchFilters.from_args(args)


class TestMarkSettled:

    def test_origin_settles_voucher(self, central, norte, make_voucher):
        voucher = make_voucher(central, norte)

        settled = voucher_service.mark_settled(voucher.id, central.id)

        assert settled.state == VOUCHER_STATE_SETTLED

    def test_settling_twice_is_a_no_op(self, central, norte, make_voucher):
        voucher = make_voucher(central, norte)
        voucher_service.mark_settled(voucher.id, central.id)

        again = voucher_service.mark_settled(voucher.id, central.id)

        assert again.state == VOUCHER_STATE_SETTLED

    def test_destination_cannot_settle(self, central, norte, make_voucher):
        voucher = make_voucher(central, norte)

        with pytest.raises(AuthorizationError):
            voucher_service.mark_settled(voucher.id, norte.id)

        assert voucher_service.find_by_id(voucher.id).state == VOUCHER_STATE_PENDING

    def test_missing_and_foreign_vouchers_look_the_same(self, central, norte, make_voucher):
        voucher = make_voucher(central, norte)

        with pytest.raises(NotFoundError) as foreign:
            voucher_service.mark_settled(voucher.id, norte.id)
        with pytest.raises(NotFoundError) as missing:
            voucher_service.mark_settled(999999, norte.id)

        assert foreign.value.message == missing.value.message


class TestUpdateVoucher:

    def test_update_replaces_items(self, central, norte, sur, make_voucher):
        voucher = make_voucher(central, norte, items=("Resma", "Tinta"))

        updated = voucher_service.update_voucher(
            voucher.id,
            voucher_date="2025-04-15",
            destination_store_id=sur.id,
            responsible_person="María López",
            items=["Abrochadora"],
            origin_store_id=central.id,
        )

        assert updated.date == date(2025, 4, 15)
        assert updated.destination_store_id == sur.id
        assert [item.description for item in updated.items] == ["Abrochadora"]
        assert db.session.query(VoucherItem).count() == 1

    def test_update_rejects_item_containing_csv_separator(self, central, norte, make_voucher):
        voucher = make_voucher(central, norte, items=("Resma",))

        with pytest.raises(ValidationError):
            voucher_service.update_voucher(
                voucher.id,
                voucher_date=date(2025, 4, 12),
                destination_store_id=norte.id,
                responsible_person="Juan Pérez",
                items=["Cable 2 | 3 m"],
            )

        assert [item.description for item in voucher_service.find_by_id(voucher.id).items] == ["Resma"]

    def test_update_without_items_keeps_them(self, central, norte, make_voucher):
        voucher = make_voucher(central, norte, items=("Resma", "Tinta"))

        updated = voucher_service.update_voucher(
            voucher.id,
            voucher_date=date(2025, 4, 12),
            destination_store_id=norte.id,
            responsible_person="Otra persona",
        )

        assert len(updated.items) == 2
        assert updated.state == VOUCHER_STATE_PENDING

    def test_settled_voucher_cannot_go_back_to_pending(self, central, norte, make_voucher):
        voucher = make_voucher(central, norte)
        voucher_service.mark_settled(voucher.id, central.id)

        with pytest.raises(ConflictError):
            voucher_service.update_voucher(
                voucher.id,
                voucher_date=date(2025, 4, 12),
                destination_store_id=norte.id,
                responsible_person="Juan Pérez",
                state=VOUCHER_STATE_PENDING,
            )

        assert voucher_service.find_by_id(voucher.id).state == VOUCHER_STATE_SETTLED

    def test_update_by_other_store_rejected(self, central, norte, make_voucher):
        voucher = make_voucher(central, norte)

        with pytest.raises(AuthorizationError):
            voucher_service.update_voucher(
                voucher.id,
                voucher_date=date(2025, 4, 12),
                destination_store_id=central.id,
                responsible_person="Intruso",
                origin_store_id=norte.id,
            )


class TestDeleteVoucher:

    def test_delete_removes_items(self, central, norte, make_voucher):
        voucher = make_voucher(central, norte, items=("Resma", "Tinta"))

        voucher_service.delete_voucher(voucher.id, origin_store_id=central.id)

        assert voucher_service.find_by_id(voucher.id) is None
        assert db.session.query(VoucherItem).count() == 0

    def test_delete_missing_voucher(self, db_session):
        with pytest.raises(NotFoundError):
            voucher_service.delete_voucher(999999)
