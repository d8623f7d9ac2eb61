import math
from typing import Any, Optional, Tuple


def parse_coordinate(value: Any) -> Optional[float]:
    """
    Parse a raw cell value into a coordinate in degrees.

    Both decimal-point and decimal-comma forms are accepted ("-23.5" and "-23,5").
    No range check is applied; any finite number is returned as-is.

    Args:
        value: Raw cell value, usually a string. None and "" are allowed.

    Returns:
        Optional[float]: The parsed value, or None when it is not a finite number.
    """
    if value is None:
        return None
    text = str(value).strip().replace(",", ".")
    # float() accepts digit separators that no spreadsheet locale produces
    if not text or "_" in text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_coordinate_pair(raw_lat: Any, raw_lon: Any) -> Tuple[Optional[float], Optional[float]]:
    """
    Parse a latitude/longitude pair atomically.

    Returns:
        Tuple[Optional[float], Optional[float]]: (lat, lon) when both parse,
        otherwise (None, None).
    """
    lat = parse_coordinate(raw_lat)
    lon = parse_coordinate(raw_lon)
    if lat is None or lon is None:
        return None, None
    return lat, lon
