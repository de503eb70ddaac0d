import httpx
import pytest
from googlemaps.exceptions import ApiError, Timeout

from ghorer_khabar.core.config import get_settings
from ghorer_khabar.services.geo import GoogleGeoService, MockGeoService, NominatimGeoService


def nominatim(handler) -> NominatimGeoService:
    return NominatimGeoService(
        base_url="https://nominatim.test",
        user_agent="GhorerKhabarTests/1.0",
        timeout=2,
        transport=httpx.MockTransport(handler),
    )


async def test_nominatim_geocode():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["agent"] = request.headers["User-Agent"]
        seen["q"] = request.url.params["q"]
        seen["format"] = request.url.params["format"]
        return httpx.Response(200, json=[
            {"lat": "23.7925", "lon": "90.4078", "display_name": "Gulshan 2, Dhaka"},
        ])

    result = await nominatim(handler).geocode("Gulshan 2")

    assert result.success
    assert (result.latitude, result.longitude) == (23.7925, 90.4078)
    assert result.formatted_address == "Gulshan 2, Dhaka"
    assert seen == {"agent": "GhorerKhabarTests/1.0", "q": "Gulshan 2", "format": "json"}


async def test_nominatim_no_match():
    result = await nominatim(lambda request: httpx.Response(200, json=[])).geocode("Nowhere")

    assert not result.success
    assert result.error_code == "address_not_found"


async def test_nominatim_server_error():
    result = await nominatim(lambda request: httpx.Response(502)).geocode("Mirpur")

    assert not result.success
    assert result.error_code == "api_error"


async def test_nominatim_reverse_geocode():
    service = nominatim(lambda request: httpx.Response(200, json={"display_name": "Dhanmondi, Dhaka"}))

    result = await service.reverse_geocode(23.7461, 90.3742)

    assert result.success
    assert result.formatted_address == "Dhanmondi, Dhaka"


async def test_blank_address_is_rejected_without_a_request():
    def handler(request):
        raise AssertionError("no request expected")

    result = await nominatim(handler).geocode("   ")

    assert result.error_code == "invalid_address"


async def test_mock_geocode_is_stable_and_near_dhaka():
    service = MockGeoService(failure_rate=0.0, min_latency=0, max_latency=0)

    first = await service.geocode("Road 27, Dhanmondi")
    second = await service.geocode("  road 27, dhanmondi ")

    assert first.success
    assert (first.latitude, first.longitude) == (second.latitude, second.longitude)
    assert abs(first.latitude - 23.8103) <= 0.04
    assert abs(first.longitude - 90.4125) <= 0.04


async def test_mock_geocode_simulated_failure():
    service = MockGeoService(failure_rate=1.0, min_latency=0, max_latency=0)

    result = await service.geocode("Uttara")

    assert not result.success
    assert result.error_code == "service_unavailable"


class FakeGoogleClient:
    def __init__(self, matches=None, error=None):
        self.matches = matches or []
        self.error = error
        self.calls = []

    def geocode(self, address, region=None):
        self.calls.append((address, region))
        if self.error:
            raise self.error
        return self.matches


@pytest.fixture
def google(monkeypatch):
    monkeypatch.setattr(get_settings(), "google_maps_api_key", "AIzaTestKeyForGhorerKhabar")
    return GoogleGeoService()


async def test_google_geocode_is_biased_to_bangladesh(google):
    google._client = FakeGoogleClient(matches=[{
        "formatted_address": "Road 11, Banani, Dhaka 1213, Bangladesh",
        "geometry": {"location": {"lat": 23.7937, "lng": 90.4066}},
    }])

    result = await google.geocode("Banani Road 11")

    assert result.success
    assert (result.latitude, result.longitude) == (23.7937, 90.4066)
    assert google._client.calls == [("Banani Road 11", "bd")]


@pytest.mark.parametrize("error, code", [
    (ApiError("OVER_QUERY_LIMIT"), "api_error"),
    (Timeout(), "timeout"),
])
async def test_google_errors_become_results(google, error, code):
    google._client = FakeGoogleClient(error=error)

    result = await google.geocode("Banani Road 11")

    assert not result.success
    assert result.error_code == code


def test_google_requires_a_key(monkeypatch):
    monkeypatch.setattr(get_settings(), "google_maps_api_key", None)

    with pytest.raises(ValueError):
        GoogleGeoService()
