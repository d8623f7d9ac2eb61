from typing import Dict, List, Optional, Set

from rapidfuzz import fuzz

from geoinsights.config import COLUMN_FUZZY_THRESHOLD
from geoinsights.models import ColumnMapping

COLUMN_ALIASES: Dict[str, List[str]] = {
    "lat": ["latitude", "lat"],
    "lon": ["longitude", "lon", "lng"],
    "state": ["estado", "uf", "state"],
    "city": ["cidade", "município", "municipio", "city"],
    "name": ["nome", "name", "local"],
    "address": ["endereço", "endereco", "logradouro", "address"],
}


def _normalize_header(header: str) -> str:
    # Required-field markers like "Latitude*" are common in templates
    return header.strip().lower().rstrip("*").strip()


def _best_header(
    aliases: List[str],
    headers: List[str],
    taken: Set[str],
    threshold: float,
) -> Optional[str]:
    free = [h for h in headers if h not in taken]

    for header in free:
        if _normalize_header(header) in aliases:
            return header

    best, best_score = None, 0.0
    for header in free:
        normalized = _normalize_header(header)
        score = max(fuzz.ratio(normalized, alias) for alias in aliases)
        if score > best_score:
            best, best_score = header, score
    return best if best_score >= threshold else None


def suggest_mapping(headers: List[str], threshold: float = COLUMN_FUZZY_THRESHOLD) -> ColumnMapping:
    """
    Guess which columns hold coordinates, place and address fields.

    Exact alias hits win; otherwise the closest header by fuzzy ratio is taken
    when it scores at least `threshold`. A header is assigned to at most one field.

    Args:
        headers (List[str]): Column names in file order.
        threshold (float): Minimum rapidfuzz ratio (0-100) for a fuzzy pick.

    Returns:
        ColumnMapping: Suggested mapping; fields with no candidate stay None.
    """
    mapping = ColumnMapping()
    taken: Set[str] = set()
    for field_name, aliases in COLUMN_ALIASES.items():
        header = _best_header(aliases, headers, taken, threshold)
        if header is not None:
            setattr(mapping, field_name, header)
            taken.add(header)
    return mapping


def merge_mapping(explicit: ColumnMapping, suggested: ColumnMapping) -> ColumnMapping:
    """Fill the fields left unset in `explicit` with the suggested columns."""
    return ColumnMapping(**{
        name: getattr(explicit, name) or getattr(suggested, name)
        for name in COLUMN_ALIASES
    })
