from typing import Dict, List, Optional, Tuple

from loguru import logger

from geoinsights.coordinates import parse_coordinate_pair
from geoinsights.models import ColumnMapping, ConfigurationError, Point


def build_points(
    rows: List[Dict[str, str]],
    mapping: ColumnMapping,
    require_coordinates: bool = True,
) -> List[Point]:
    """
    Wrap every input row into a Point with parsed coordinates.

    Args:
        rows (List[Dict[str, str]]): Rows as column name -> raw cell value.
        mapping (ColumnMapping): Column mapping; only lat/lon are used here.
        require_coordinates (bool): Raise when lat/lon are unmapped instead of
            building points without coordinates.

    Returns:
        List[Point]: One point per row, numbered from 1 in input order.

    Raises:
        ConfigurationError: If coordinates are required and lat/lon are not mapped.
    """
    lat_key: Optional[str] = mapping.lat or None
    lon_key: Optional[str] = mapping.lon or None

    if lat_key is None or lon_key is None:
        if require_coordinates:
            raise ConfigurationError("Latitude and Longitude columns must be mapped.")
        logger.debug("Latitude/Longitude unmapped, building points without coordinates")
        return [
            Point(row=index + 1, latitude=None, longitude=None, attributes=dict(row))
            for index, row in enumerate(rows)
        ]

    points = []
    for index, row in enumerate(rows):
        lat, lon = parse_coordinate_pair(row.get(lat_key), row.get(lon_key))
        points.append(Point(row=index + 1, latitude=lat, longitude=lon, attributes=dict(row)))
    return points


def split_by_coordinates(points: List[Point]) -> Tuple[List[Point], List[Point]]:
    """Partition points into (with coordinates, without coordinates), keeping order."""
    valid = [p for p in points if p.has_coordinates]
    invalid = [p for p in points if not p.has_coordinates]
    return valid, invalid
