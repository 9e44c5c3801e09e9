# backend/vales/routes/vouchers.py
"""
Loan voucher API routes.

The origin (lending) store of every write is the authenticated store;
clients never send it.
"""
from flask import Blueprint, Response, request, g, current_app

from ..decorators import require_auth
from ..errors import ValesError, ValidationError
from ..services import export_service, voucher_service
from ..services.voucher_service import VoucherSearchFilters
from .responses import ok, fail, from_error


vouchers_bp = Blueprint("vouchers", __name__, url_prefix="/api/vales")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("El cuerpo de la solicitud debe ser un objeto JSON")
    return data


def _item_descriptions(raw) -> list:
    """Items arrive as plain strings or as {"descripcion": ...} objects."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("items debe ser una lista")

    descriptions = []
    for item in raw:
        if isinstance(item, dict):
            item = item.get("descripcion")
        if item is not None and not isinstance(item, str):
            raise ValidationError("Cada item de mercadería debe ser un texto")
        descriptions.append(item)
    return descriptions


@vouchers_bp.get("")
@require_auth
def list_vouchers():
    try:
        vouchers = voucher_service.get_all()
        return ok(vales=[voucher.to_dict() for voucher in vouchers])
    except ValesError as exc:
        return from_error(exc)
    except Exception:
        current_app.logger.exception("Failed to list vouchers")
        return fail("Error al obtener vales", 500)


@vouchers_bp.get("/buscar")
@require_auth
def search_vouchers():
    """
    Search vouchers.

    Query string (all optional, combined with AND):
        fechaDesde, fechaHasta: YYYY-MM-DD, inclusive
        localOrigen, localDestino: store ids
        localId: store id on either side
        estado: pendiente | completado | todos
        mercaderia: substring of an item description (case-insensitive)
    """
    try:
        filters = VoucherSearchFilters.from_args(request.args)
        vouchers = voucher_service.search(filters)
        return ok(vales=[voucher.to_dict() for voucher in vouchers])
    except ValesError as exc:
        return from_error(exc)
    except Exception:
        current_app.logger.exception("Failed to search vouchers")
        return fail("Error al buscar vales", 500)


@vouchers_bp.get("/exportar")
@require_auth
def export_vouchers():
    """CSV download of the vouchers matching the same filters as /buscar."""
    try:
        filters = VoucherSearchFilters.from_args(request.args)
        vouchers = voucher_service.search(filters)
        csv_text = export_service.vouchers_to_csv(vouchers)
        return Response(
            csv_text,
            mimetype="text/csv",
            headers={"Content-Disposition": "attachment; filename=vales.csv"},
        )
    except ValesError as exc:
        return from_error(exc)
    except Exception:
        current_app.logger.exception("Failed to export vouchers")
        return fail("Error al exportar vales", 500)


@vouchers_bp.get("/<int:voucher_id>")
@require_auth
def get_voucher(voucher_id: int):
    try:
        voucher = voucher_service.find_by_id(voucher_id)
        if not voucher:
            return fail("Vale no encontrado", 404)
        return ok(vale=voucher.to_dict())
    except ValesError as exc:
        return from_error(exc)
    except Exception:
        current_app.logger.exception("Failed to load voucher %s", voucher_id)
        return fail("Error al obtener el vale", 500)


@vouchers_bp.post("")
@require_auth
def create_voucher():
    """
    Create a voucher lent by the authenticated store.

    Request body:
    {
        "fecha": "YYYY-MM-DD",
        "local_destino_id": int,
        "persona_responsable": str,
        "items": [str | {"descripcion": str}, ...]
    }

    Returns:
        201: Voucher created
        400: Missing fields, no items, unknown or same store
    """
    try:
        data = _json_body()
        voucher = voucher_service.create_voucher(
            voucher_date=data.get("fecha"),
            origin_store_id=g.store_id,
            destination_store_id=data.get("local_destino_id"),
            responsible_person=data.get("persona_responsable"),
            items=_item_descriptions(data.get("items")),
        )
        return ok(201, message="Vale creado correctamente", vale=voucher.to_dict())
    except ValesError as exc:
        return from_error(exc)
    except Exception:
        current_app.logger.exception("Failed to create voucher")
        return fail("Error al crear vale", 500)


@vouchers_bp.put("/<int:voucher_id>")
@require_auth
def update_voucher(voucher_id: int):
    """
    Replace a voucher lent by the authenticated store.

    Request body: same as create, plus optional "estado". When "items" is
    present the whole item list is replaced.
    """
    try:
        data = _json_body()
        items = _item_descriptions(data["items"]) if "items" in data else None
        voucher = voucher_service.update_voucher(
            voucher_id,
            voucher_date=data.get("fecha"),
            destination_store_id=data.get("local_destino_id"),
            responsible_person=data.get("persona_responsable"),
            state=data.get("estado"),
            items=items,
            origin_store_id=g.store_id,
        )
        return ok(message="Vale actualizado correctamente", vale=voucher.to_dict())
    except ValesError as exc:
        return from_error(exc)
    except Exception:
        current_app.logger.exception("Failed to update voucher %s", voucher_id)
        return fail("Error al actualizar vale", 500)


@vouchers_bp.put("/<int:voucher_id>/pagar")
@require_auth
def settle_voucher(voucher_id: int):
    """
    Mark a voucher as settled. Only its origin store may do it.

    Returns:
        200: Voucher settled (also when it already was)
        404: Voucher missing or lent by another store
    """
    try:
        voucher = voucher_service.mark_settled(voucher_id, g.store_id)
        return ok(message="Vale marcado como completado", vale=voucher.to_dict())
    except ValesError as exc:
        return from_error(exc)
    except Exception:
        current_app.logger.exception("Failed to settle voucher %s", voucher_id)
        return fail("Error al actualizar vale", 500)


@vouchers_bp.delete("/<int:voucher_id>")
@require_auth
def delete_voucher(voucher_id: int):
    try:
        voucher_service.delete_voucher(voucher_id, origin_store_id=g.store_id)
        return ok(message="Vale eliminado correctamente")
    except ValesError as exc:
        return from_error(exc)
    except Exception:
        current_app.logger.exception("Failed to delete voucher %s", voucher_id)
        return fail("Error al eliminar vale", 500)
