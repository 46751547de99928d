import asyncio
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from datethinker import main
from datethinker.providers.google_places import PlacesClient
from datethinker.store import DatePlanStore

USER = {"X-User-Id": "user-1", "X-User-Email": "sam@example.com"}
OTHER_USER = {"X-User-Id": "user-2", "X-User-Email": "alex@example.com"}


def google_place(place_id, name, address="1 Rue de Rivoli, 75001 Paris, France",
                 rating=4.5, price="PRICE_LEVEL_MODERATE", **extra):
    place = {
        "id": place_id,
        "displayName": {"text": name, "languageCode": "en"},
        "formattedAddress": address,
        "rating": rating,
        "priceLevel": price,
    }
    place.update(extra)
    return place


class FakePlaces:
    """Stands in for places.googleapis.com. searchText answers by includedType."""

    def __init__(self):
        self.by_type = {}
        self.status_by_type = {}
        self.details = {}
        self.suggestions = []
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/places:searchText"):
            body = json.loads(request.content)
            included = body.get("includedType")
            status = self.status_by_type.get(included)
            if status:
                return httpx.Response(status, json={"error": {"code": status, "message": "upstream trouble", "status": "UNAVAILABLE"}})
            return httpx.Response(200, json={"places": self.by_type.get(included, [])})
        if path.endswith("/places:autocomplete"):
            return httpx.Response(200, json={"suggestions": self.suggestions})
        if "/places/" in path:
            place_id = path.rsplit("/", 1)[-1]
            if place_id in self.details:
                return httpx.Response(200, json=self.details[place_id])
            return httpx.Response(404, json={"error": {"code": 404, "message": "Not found", "status": "NOT_FOUND"}})
        return httpx.Response(404)

    def client(self) -> PlacesClient:
        return PlacesClient("test-key", timeout=5, transport=httpx.MockTransport(self.handler))

    def bodies(self):
        return [json.loads(r.content) for r in self.requests if r.method == "POST"]


@pytest.fixture
def places() -> FakePlaces:
    return FakePlaces()


@pytest.fixture
def store(tmp_path) -> DatePlanStore:
    s = DatePlanStore(f"sqlite+aiosqlite:///{tmp_path / 'plans.db'}")
    yield s
    asyncio.run(s.dispose())


@pytest.fixture
def client(places, store) -> TestClient:
    main.app.dependency_overrides[main.get_places_client] = lambda: places.client()
    main.app.dependency_overrides[main.get_store] = lambda: store
    main.suggestions_cache.clear()
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


def venue_payload(venue_id="ChIJcomptoir", name="Le Comptoir", category="restaurant", **extra):
    payload = {
        "id": venue_id,
        "name": name,
        "category": category,
        "address": "9 Carrefour de l'Odeon, 75006 Paris, France",
        "rating": 4.4,
        "price": 2,
    }
    payload.update(extra)
    return payload
