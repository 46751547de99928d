# providers/google_places.py
# Google Places API v1: text search, place lookup, city autocomplete.
# The key travels in X-Goog-Api-Key, never in a URL or an error message.

import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

from .. import config
from ..errors import InvalidRequest, NotFound, ProviderQuotaExceeded, ProviderUnavailable
from ..models import Category, CitySuggestion, Venue

log = logging.getLogger("datethinker.places")

HEADERS = {
    "User-Agent": "DateThinker/1.0",
    "Accept": "application/json",
}

PLACE_FIELDS = [
    "id",
    "displayName",
    "formattedAddress",
    "rating",
    "priceLevel",
    "photos",
    "currentOpeningHours",
    "regularOpeningHours",
    "websiteUri",
    "nationalPhoneNumber",
]
SEARCH_FIELD_MASK = ",".join(f"places.{f}" for f in PLACE_FIELDS)
DETAILS_FIELD_MASK = ",".join(PLACE_FIELDS)

PRICE_LEVELS = {
    "PRICE_LEVEL_FREE": 0,
    "PRICE_LEVEL_INEXPENSIVE": 1,
    "PRICE_LEVEL_MODERATE": 2,
    "PRICE_LEVEL_EXPENSIVE": 3,
    "PRICE_LEVEL_VERY_EXPENSIVE": 4,
}
_LEVEL_NAMES = {tier: name for name, tier in PRICE_LEVELS.items()}

# search phrase + includedType per category
CATEGORY_QUERIES = {
    Category.RESTAURANT: ("restaurants", "restaurant"),
    Category.ACTIVITY: ("attractions", "tourist_attraction"),
    Category.DRINK: ("bars", "bar"),
    Category.OUTDOOR: ("parks", "park"),
}


def category_text_query(category: Category, city: str) -> str:
    phrase, _ = CATEGORY_QUERIES[category]
    return f"{phrase} in {city}"


def _price_levels(price_range: Optional[int]) -> List[str]:
    # searchText accepts INEXPENSIVE..VERY_EXPENSIVE only; bound is inclusive
    if not price_range:
        return []
    return [_LEVEL_NAMES[tier] for tier in range(1, min(price_range, 4) + 1)]


def _price_tier(raw) -> int:
    if isinstance(raw, int):
        return max(0, min(raw, 4))
    return PRICE_LEVELS.get(raw, 0) if isinstance(raw, str) else 0


def _text(value) -> str:
    if isinstance(value, dict):
        value = value.get("text")
    return value.strip() if isinstance(value, str) else ""


def to_venue(place: dict, category: Category) -> Optional[Venue]:
    """Map one provider place to a Venue. None when id, name or address is missing or malformed."""
    if not isinstance(place, dict):
        return None
    place_id = _text(place.get("id"))
    name = _text(place.get("displayName"))
    address = _text(place.get("formattedAddress"))
    if not place_id or not name or not address:
        return None

    photos = place.get("photos")
    first_photo = photos[0] if isinstance(photos, list) and photos else None
    hours = place.get("currentOpeningHours") or place.get("regularOpeningHours") or {}
    if not isinstance(hours, dict):
        hours = {}
    try:
        rating = float(place.get("rating") or 0.0)
    except (TypeError, ValueError):
        rating = 0.0

    try:
        return Venue(
            id=place_id,
            name=name,
            category=category,
            address=address,
            rating=rating,
            price=_price_tier(place.get("priceLevel")),
            photoReference=first_photo.get("name") if isinstance(first_photo, dict) else None,
            openNow=hours.get("openNow"),
            website=place.get("websiteUri"),
            phone=place.get("nationalPhoneNumber"),
        )
    except ValidationError:
        return None


def _error_detail(r: httpx.Response) -> tuple[str, str]:
    try:
        err = (r.json() or {}).get("error") or {}
    except ValueError:
        return "", ""
    return (err.get("status") or ""), (err.get("message") or "")


class PlacesClient:
    """
    Thin async client. One AsyncClient per call, like the other providers;
    `transport` lets tests plug in httpx.MockTransport.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = config.PLACES_BASE_URL,
        timeout: float = config.PROVIDER_TIMEOUT_S,
        page_size: int = config.PLACES_PAGE_SIZE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.page_size = page_size
        self._transport = transport

    async def _request(self, method: str, path: str, field_mask: Optional[str] = None, **kwargs) -> dict:
        if not self.api_key:
            raise ProviderUnavailable("Places provider is not configured")

        headers = {**HEADERS, "X-Goog-Api-Key": self.api_key}
        if field_mask:
            headers["X-Goog-FieldMask"] = field_mask

        try:
            async with httpx.AsyncClient(timeout=self.timeout, headers=headers, transport=self._transport) as client:
                r = await client.request(method, f"{self.base_url}{path}", **kwargs)
        except httpx.TimeoutException:
            raise ProviderUnavailable(f"Places provider timed out after {self.timeout}s")
        except httpx.HTTPError as e:
            raise ProviderUnavailable(f"Places provider unreachable: {type(e).__name__}")

        if r.status_code == 200:
            try:
                return r.json() or {}
            except ValueError:
                raise ProviderUnavailable("Places provider returned malformed JSON")

        status, message = _error_detail(r)
        log.warning("places %s %s -> HTTP %s %s", method, path, r.status_code, status)
        if r.status_code == 429 or status == "RESOURCE_EXHAUSTED":
            raise ProviderQuotaExceeded("Places provider quota exceeded")
        if r.status_code == 404:
            raise NotFound("Place not found")
        if r.status_code == 400:
            raise InvalidRequest(f"Places provider rejected the request: {message or 'bad request'}")
        raise ProviderUnavailable(f"Places provider returned HTTP {r.status_code}")

    async def search_text(
        self,
        text_query: str,
        included_type: Optional[str] = None,
        price_range: Optional[int] = None,
    ) -> List[dict]:
        body = {
            "textQuery": text_query,
            "languageCode": "en",
            "pageSize": self.page_size,
        }
        if included_type:
            body["includedType"] = included_type
        levels = _price_levels(price_range)
        if levels:
            body["priceLevels"] = levels

        js = await self._request("POST", "/places:searchText", SEARCH_FIELD_MASK, json=body)
        places = js.get("places") if isinstance(js, dict) else None
        if not isinstance(places, list):
            places = []
        log.info("places searchText %r -> %d results", text_query, len(places))
        return places

    async def get_place(self, place_id: str) -> dict:
        return await self._request("GET", f"/places/{place_id}", DETAILS_FIELD_MASK)

    async def autocomplete(self, text: str) -> List[CitySuggestion]:
        body = {
            "input": text,
            "includedPrimaryTypes": ["locality"],
            "languageCode": "en",
        }
        js = await self._request("POST", "/places:autocomplete", json=body)
        out: List[CitySuggestion] = []
        for s in js.get("suggestions") or []:
            pred = (s or {}).get("placePrediction") or {}
            place_id = pred.get("placeId")
            description = (pred.get("text") or {}).get("text")
            if not place_id or not description:
                continue
            fmt = pred.get("structuredFormat") or {}
            out.append(CitySuggestion(
                placeId=place_id,
                description=description,
                mainText=(fmt.get("mainText") or {}).get("text") or description,
                secondaryText=(fmt.get("secondaryText") or {}).get("text") or "",
            ))
        return out
