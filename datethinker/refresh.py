# refresh.py
# Re-fetch one venue: direct lookup by place id, or best match for category + city.

import logging
import re
from typing import Optional

from .errors import InvalidRequest, NotFound
from .models import Venue, parse_category
from .providers.google_places import PlacesClient, to_venue
from .search import check_price_range, search_category
from .utils import sanitize

log = logging.getLogger("datethinker.refresh")

PLACE_ID_RE = re.compile(r"[A-Za-z0-9_-]{1,256}")


async def refresh_venue(
    venue_type: Optional[str],
    city: Optional[str],
    client: PlacesClient,
    place_id: Optional[str] = None,
    price_range: Optional[int] = None,
) -> Venue:
    """
    With `place_id` the provider is asked for that place directly. Without it
    the provider's top-ranked match for category + city (+ price bound) wins;
    the tie-break is whatever the provider ranks first.
    """
    raw_type = sanitize(venue_type)
    city = sanitize(city)
    if not raw_type or not city:
        raise InvalidRequest("Missing required parameters: type and city")

    category = parse_category(raw_type)
    if category is None:
        raise InvalidRequest(f"Unknown venue type: {raw_type}")
    price_range = check_price_range(price_range)

    if place_id:
        if not PLACE_ID_RE.fullmatch(place_id):
            raise InvalidRequest("Malformed placeId")
        place = await client.get_place(place_id)
        venue = to_venue(place, category)
        if venue is None:
            raise NotFound(f"Place {place_id} has no usable details")
        log.info("refresh %s by id %s", category.value, place_id)
        return venue

    venues = await search_category(client, category, city, price_range)
    if not venues:
        raise NotFound(f"No {category.value} found in {city}")
    log.info("refresh %s in %s -> %s", category.value, city, venues[0].id)
    return venues[0]
