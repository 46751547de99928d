import asyncio
import json

import httpx
import pytest

from conftest import google_place
from datethinker.errors import InvalidRequest, NotFound, ProviderQuotaExceeded, ProviderUnavailable
from datethinker.models import Category
from datethinker.providers.google_places import PlacesClient, to_venue


def client_for(handler) -> PlacesClient:
    return PlacesClient("secret-key-123", timeout=5, transport=httpx.MockTransport(handler))


def test_to_venue_maps_provider_fields():
    place = google_place(
        "ChIJabc", "Bar Hemingway", address="15 Place Vendome, Paris",
        rating=4.7, price="PRICE_LEVEL_EXPENSIVE",
        photos=[{"name": "places/ChIJabc/photos/p1"}, {"name": "places/ChIJabc/photos/p2"}],
        currentOpeningHours={"openNow": True},
        websiteUri="https://example.com",
        nationalPhoneNumber="01 43 16 30 30",
    )
    v = to_venue(place, Category.DRINK)
    assert v.id == "ChIJabc"
    assert v.name == "Bar Hemingway"
    assert v.category is Category.DRINK
    assert v.address == "15 Place Vendome, Paris"
    assert v.rating == 4.7
    assert v.price == 3
    assert v.photoReference == "places/ChIJabc/photos/p1"
    assert v.openNow is True
    assert v.website == "https://example.com"
    assert v.phone == "01 43 16 30 30"


def test_to_venue_defaults_for_missing_rating_and_price():
    place = {"id": "p1", "displayName": {"text": "Jardin"}, "formattedAddress": "Paris"}
    v = to_venue(place, Category.OUTDOOR)
    assert v.rating == 0.0
    assert v.price == 0
    assert v.photoReference is None
    assert v.openNow is None


@pytest.mark.parametrize("place", [
    {"displayName": {"text": "No id"}, "formattedAddress": "Paris"},
    {"id": "", "displayName": {"text": "Empty id"}, "formattedAddress": "Paris"},
    {"id": "p1", "formattedAddress": "Paris"},
    {"id": "p1", "displayName": {"text": "No address"}},
    {},
    None,
])
def test_to_venue_skips_incomplete_places(place):
    assert to_venue(place, Category.RESTAURANT) is None


def test_venue_is_immutable():
    v = to_venue(google_place("p1", "Cafe"), Category.RESTAURANT)
    with pytest.raises(Exception):
        v.name = "Other"


def test_search_text_sends_key_field_mask_and_price_levels():
    seen = {}

    def handler(request):
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        seen["url"] = str(request.url)
        return httpx.Response(200, json={"places": [google_place("p1", "Cafe")]})

    places = asyncio.run(client_for(handler).search_text("restaurants in Paris", "restaurant", price_range=2))
    assert len(places) == 1
    assert seen["headers"]["x-goog-api-key"] == "secret-key-123"
    assert "places.id" in seen["headers"]["x-goog-fieldmask"]
    assert "secret-key-123" not in seen["url"]
    assert seen["body"]["textQuery"] == "restaurants in Paris"
    assert seen["body"]["includedType"] == "restaurant"
    assert seen["body"]["priceLevels"] == ["PRICE_LEVEL_INEXPENSIVE", "PRICE_LEVEL_MODERATE"]


def test_search_text_without_price_bound_sends_no_levels():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={})

    assert asyncio.run(client_for(handler).search_text("parks in Rome", "park")) == []
    assert "priceLevels" not in seen["body"]


@pytest.mark.parametrize("status,body,error", [
    (429, {"error": {"status": "RESOURCE_EXHAUSTED"}}, ProviderQuotaExceeded),
    (403, {"error": {"status": "RESOURCE_EXHAUSTED"}}, ProviderQuotaExceeded),
    (400, {"error": {"status": "INVALID_ARGUMENT", "message": "bad type"}}, InvalidRequest),
    (404, {"error": {"status": "NOT_FOUND"}}, NotFound),
    (503, {"error": {"status": "UNAVAILABLE"}}, ProviderUnavailable),
    (500, None, ProviderUnavailable),
])
def test_error_statuses_map_to_error_kinds(status, body, error):
    def handler(request):
        if body is None:
            return httpx.Response(status, text="oops")
        return httpx.Response(status, json=body)

    with pytest.raises(error) as exc_info:
        asyncio.run(client_for(handler).search_text("bars in Oslo", "bar"))
    assert "secret-key-123" not in str(exc_info.value)


def test_transport_failure_is_provider_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ProviderUnavailable):
        asyncio.run(client_for(handler).search_text("bars in Oslo", "bar"))


def test_timeout_is_provider_unavailable():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(ProviderUnavailable) as exc_info:
        asyncio.run(client_for(handler).get_place("p1"))
    assert "timed out" in str(exc_info.value)


def test_missing_api_key_is_provider_unavailable():
    client = PlacesClient("", transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})))
    with pytest.raises(ProviderUnavailable):
        asyncio.run(client.search_text("bars in Oslo", "bar"))


def test_get_place_hits_details_endpoint():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["mask"] = request.headers["x-goog-fieldmask"]
        return httpx.Response(200, json=google_place("ChIJxyz", "Louvre"))

    place = asyncio.run(client_for(handler).get_place("ChIJxyz"))
    assert place["id"] == "ChIJxyz"
    assert seen["path"] == "/v1/places/ChIJxyz"
    assert not seen["mask"].startswith("places.")


def test_autocomplete_maps_suggestions():
    def handler(request):
        body = json.loads(request.content)
        assert body["includedPrimaryTypes"] == ["locality"]
        return httpx.Response(200, json={"suggestions": [
            {"placePrediction": {
                "placeId": "ChIJparis",
                "text": {"text": "Paris, France"},
                "structuredFormat": {"mainText": {"text": "Paris"}, "secondaryText": {"text": "France"}},
            }},
            {"queryPrediction": {"text": {"text": "paris hotels"}}},
        ]})

    out = asyncio.run(client_for(handler).autocomplete("Par"))
    assert len(out) == 1
    assert out[0].placeId == "ChIJparis"
    assert out[0].mainText == "Paris"
    assert out[0].secondaryText == "France"


@pytest.mark.parametrize("extra", [
    {"photos": ["oops"]},
    {"photos": "oops"},
    {"currentOpeningHours": "open"},
    {"priceLevel": ["PRICE_LEVEL_MODERATE"]},
    {"rating": "n/a"},
])
def test_to_venue_tolerates_malformed_optional_fields(extra):
    v = to_venue(google_place("p1", "Cafe", **extra), Category.RESTAURANT)
    assert v is not None
    assert v.id == "p1"


@pytest.mark.parametrize("place", [
    {"id": 42, "displayName": {"text": "Cafe"}, "formattedAddress": "Paris"},
    {"id": "p1", "displayName": {"text": "Cafe"}, "formattedAddress": ["Paris"]},
    {"id": "p1", "displayName": {"text": "Cafe"}, "formattedAddress": "Paris", "websiteUri": {"bad": 1}},
    "not a place",
])
def test_to_venue_drops_malformed_places(place):
    assert to_venue(place, Category.RESTAURANT) is None


def test_search_text_tolerates_non_list_places():
    def handler(request):
        return httpx.Response(200, json={"places": {"id": "p1"}})

    assert asyncio.run(client_for(handler).search_text("bars in Oslo", "bar")) == []


def test_to_venue_accepts_plain_string_display_name():
    v = to_venue({"id": "p1", "displayName": "Cafe", "formattedAddress": "Paris", "photos": [None]}, Category.RESTAURANT)
    assert v.name == "Cafe"
    assert v.photoReference is None
