import asyncio
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from geoinsights.config import REQUEST_DELAY_SECONDS
from geoinsights.models import ColumnMapping

LATITUDE_GEO = "LATITUDE_GEO"
LONGITUDE_GEO = "LONGITUDE_GEO"
ERRO_VERIFICACAO = "ERRO_VERIFICACAO"

ADDRESS_NOT_FOUND = "address not found"
NO_ADDRESS_COLUMNS = "no address columns mapped"


def build_address_query(row: Dict[str, str], mapping: ColumnMapping) -> str:
    """Join the mapped name, address, city and state values of a row, skipping empty ones."""
    parts = []
    for column in (mapping.name, mapping.address, mapping.city, mapping.state):
        if not column:
            continue
        value = str(row.get(column) or "").strip()
        if value:
            parts.append(value)
    return ", ".join(parts)


async def geocode_rows(
    rows: List[Dict[str, str]],
    mapping: ColumnMapping,
    geocoder,
    request_delay: float = REQUEST_DELAY_SECONDS,
    cancel_event: Optional[asyncio.Event] = None,
    progress: Optional[Callable[[int, int], None]] = None,
) -> List[Dict[str, Any]]:
    """
    Geocode each row's address, strictly one request at a time.

    Every output row is a copy of the input row plus either LATITUDE_GEO and
    LONGITUDE_GEO, or ERRO_VERIFICACAO describing why the row has no coordinates.
    A failing request never aborts the batch.

    Args:
        rows (List[Dict[str, str]]): Input rows.
        mapping (ColumnMapping): Name/Address/City/State columns used to build the query.
        geocoder: Object exposing `async geocode(address) -> Optional[(lat, lon)]`.
        request_delay (float): Seconds to wait between successive geocoder calls.
        cancel_event (Optional[asyncio.Event]): Stops the batch before the next row when set.
        progress: Optional callback receiving (processed, total).

    Returns:
        List[Dict[str, Any]]: Geocoded rows, up to the last completed row if interrupted.
    """
    geocoded: List[Dict[str, Any]] = []
    total = len(rows)
    calls_made = 0

    for index, row in enumerate(rows, start=1):
        if cancel_event is not None and cancel_event.is_set():
            logger.info(f"Geocoding interrupted after {index - 1}/{total} rows")
            break

        out: Dict[str, Any] = dict(row)
        query = build_address_query(row, mapping)

        if not query:
            out[ERRO_VERIFICACAO] = NO_ADDRESS_COLUMNS
        else:
            if calls_made and request_delay > 0:
                await asyncio.sleep(request_delay)
            calls_made += 1
            try:
                coords = await geocoder.geocode(query)
            except Exception as e:
                logger.debug(f"⚠️ Geocoding failed for row {index} ('{query}'): {e}")
                out[ERRO_VERIFICACAO] = str(e) or e.__class__.__name__
            else:
                if coords is None:
                    out[ERRO_VERIFICACAO] = ADDRESS_NOT_FOUND
                else:
                    out[LATITUDE_GEO], out[LONGITUDE_GEO] = coords

        geocoded.append(out)
        if progress is not None:
            progress(index, total)

    failures = sum(1 for r in geocoded if ERRO_VERIFICACAO in r)
    logger.info(f"Geocoded {len(geocoded) - failures}/{len(geocoded)} rows")
    return geocoded
