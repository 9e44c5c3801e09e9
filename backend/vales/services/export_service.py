# Overview: CSV rendering of vouchers for spreadsheet export.

from __future__ import annotations

import csv
import io
from typing import Iterable

from ..models import Voucher
from vales.time_utils import to_iso_date


CSV_HEADER = ["ID", "Fecha", "Local Origen", "Local Destino", "Persona Responsable", "Estado", "Items"]
ITEM_SEPARATOR = " | "


def voucher_row(voucher: Voucher) -> list:
    origin = voucher.origin_store
    destination = voucher.destination_store
    return [
        voucher.id,
        to_iso_date(voucher.date),
        origin.name if origin else "",
        destination.name if destination else "",
        voucher.responsible_person,
        voucher.state,
        ITEM_SEPARATOR.join(item.description for item in voucher.items),
    ]


def vouchers_to_csv(vouchers: Iterable[Voucher]) -> str:
    """
    Render vouchers as CSV, one row per voucher, in the given order.

    The header row is plain; in data rows every non-numeric field is quoted,
    so the " | "-joined Items column is always quoted.
    """
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerow(CSV_HEADER)

    rows = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    for voucher in vouchers:
        rows.writerow(voucher_row(voucher))

    return buffer.getvalue()


def parse_vouchers_csv(text: str) -> list[dict]:
    """
    Read back a CSV produced by vouchers_to_csv.

    Returns one dict per row with the items split into a list.
    Raises ValueError when the header does not match.
    """
    reader = csv.reader(io.StringIO(text))
    header = next(reader, None)
    if header != CSV_HEADER:
        raise ValueError(f"Unexpected CSV header: {header!r}")

    parsed = []
    for row in reader:
        if not row:
            continue
        voucher_id, fecha, origin, destination, person, state, items = row
        parsed.append({
            "id": int(voucher_id),
            "fecha": fecha,
            "origen_nombre": origin,
            "destino_nombre": destination,
            "persona_responsable": person,
            "estado": state,
            "items": items.split(ITEM_SEPARATOR) if items else [],
        })
    return parsed
