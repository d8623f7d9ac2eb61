import pytest
from unittest.mock import AsyncMock, MagicMock

from geoinsights.matchers.geographic_matcher import check_geographic_consistency, values_match
from geoinsights.models import ReverseGeocodeResult


def make_geocoder(city, state):
    geocoder = MagicMock()
    geocoder.reverse_geocode = AsyncMock(return_value=ReverseGeocodeResult(city=city, state=state))
    return geocoder


@pytest.mark.parametrize("declared, detected, expected", [
    ("SP", "SP", True),
    ("  sp ", "SP", True),
    ("São Paulo", "são paulo", True),
    ("RJ", "SP", False),
    ("", "SP", False),
    (None, "SP", False),
    ("", None, False),
    (None, None, False),
    ("SP", None, False),
])
def test_values_match(declared, detected, expected):
    assert values_match(declared, detected) is expected


@pytest.mark.asyncio
async def test_empty_declared_state_is_a_mismatch():
    geocoder = make_geocoder("Campinas", "SP")
    result = await check_geographic_consistency(-22.9, -47.06, "", "Campinas", geocoder)

    assert result.state_match is False
    assert result.city_match is True
    assert result.detected_state == "SP"
    assert result.detected_city == "Campinas"
    geocoder.reverse_geocode.assert_awaited_once_with(-22.9, -47.06)


@pytest.mark.asyncio
async def test_disabled_fields_are_not_compared():
    geocoder = make_geocoder("Campinas", "SP")
    result = await check_geographic_consistency(
        -22.9, -47.06, None, "Campinas", geocoder, check_state=False,
    )

    assert result.state_match is None
    assert result.city_match is True


@pytest.mark.asyncio
async def test_collaborator_errors_propagate():
    geocoder = MagicMock()
    geocoder.reverse_geocode = AsyncMock(side_effect=TimeoutError())

    with pytest.raises(TimeoutError):
        await check_geographic_consistency(0.0, 0.0, "SP", "Campinas", geocoder)
