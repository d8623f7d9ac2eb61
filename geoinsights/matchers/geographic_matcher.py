from typing import Optional

from geoinsights.models import GeoCheckResult


def values_match(declared: Optional[str], detected: Optional[str]) -> bool:
    """
    Case-insensitive, whitespace-trimmed equality of a declared and a detected place name.

    A missing or empty declared value never matches: the check validates a user
    assertion, and there is nothing to validate.
    """
    declared = (declared or "").strip()
    if not declared:
        return False
    return declared.lower() == (detected or "").strip().lower()


async def check_geographic_consistency(
    lat: float,
    lon: float,
    declared_state: Optional[str],
    declared_city: Optional[str],
    reverse_geocoder,
    check_state: bool = True,
    check_city: bool = True,
) -> GeoCheckResult:
    """
    Compare a point's declared state/city against the place found at its coordinates.

    Args:
        lat (float): Latitude in degrees.
        lon (float): Longitude in degrees.
        declared_state (Optional[str]): State taken from the row.
        declared_city (Optional[str]): City taken from the row.
        reverse_geocoder: Object exposing `async reverse_geocode(lat, lon)`.
        check_state (bool): Compare the state; when False `state_match` is None.
        check_city (bool): Compare the city; when False `city_match` is None.

    Returns:
        GeoCheckResult: Detected place and per-field match flags.
    """
    place = await reverse_geocoder.reverse_geocode(lat, lon)

    return GeoCheckResult(
        detected_state=place.state,
        detected_city=place.city,
        state_match=values_match(declared_state, place.state) if check_state else None,
        city_match=values_match(declared_city, place.city) if check_city else None,
    )
