# search.py
# Venue search: one provider lookup per requested category, run concurrently,
# merged by category. Partial failures are allowed.

import asyncio
import logging
from typing import Dict, List, Optional

from . import config
from .errors import DateThinkerError, InvalidRequest, ProviderUnavailable
from .models import FILTER_FIELDS, Category, SearchQuery, SearchRequest, Venue
from .providers.google_places import CATEGORY_QUERIES, PlacesClient, category_text_query, to_venue
from .utils import sanitize

log = logging.getLogger("datethinker.search")


def check_price_range(price_range: Optional[int]) -> Optional[int]:
    """0/None -> no bound. Anything outside 0-4 is rejected."""
    if price_range is None:
        return None
    if price_range < 0 or price_range > 4:
        raise InvalidRequest("priceRange must be between 0 and 4")
    return price_range or None


def build_query(req: SearchRequest) -> SearchQuery:
    city = sanitize(req.city)
    if not city:
        raise InvalidRequest("City is required")

    flags = {c: getattr(req, field) for c, field in FILTER_FIELDS.items()}
    if all(v is None for v in flags.values()):
        categories = tuple(Category)
    else:
        categories = tuple(c for c, v in flags.items() if v)
        if not categories:
            raise InvalidRequest("Select at least one category")

    return SearchQuery(
        city=city,
        categories=categories,
        price_range=check_price_range(req.priceRange),
        exclude_ids=frozenset(i for i in req.excludeIds if i),
    )


async def search_category(client: PlacesClient, category: Category, city: str, price_range: Optional[int] = None) -> List[Venue]:
    _, included_type = CATEGORY_QUERIES[category]
    places = await client.search_text(category_text_query(category, city), included_type, price_range)
    venues = []
    for p in places:
        v = to_venue(p, category)
        if v is not None:
            venues.append(v)
    dropped = len(places) - len(venues)
    if dropped:
        log.debug("%s: dropped %d incomplete places", category.value, dropped)
    return venues


# timeout wrapper for one category
# returns (venues, error) and never raises
async def run_with_timeout(coro, seconds: float, label: str):
    try:
        return await asyncio.wait_for(coro, timeout=seconds), None
    except asyncio.TimeoutError:
        msg = f"{label} timed out after {seconds}s"
        log.warning(msg)
        return [], ProviderUnavailable(f"Places provider timed out after {seconds}s")
    except DateThinkerError as e:
        log.warning("%s error: %s", label, e)
        return [], e
    except Exception:
        log.exception("%s failed unexpectedly", label)
        return [], ProviderUnavailable(f"Places provider returned unusable data for {label}")


async def search_venues(query: SearchQuery, client: PlacesClient, timeout: float = config.PROVIDER_TIMEOUT_S) -> Dict[Category, List[Venue]]:
    """
    Query the provider once per category in `query.categories` and merge the
    results by category. A category that fails yields [] as long as another
    succeeded; if all fail the first error (in category order) is raised.
    """
    tasks = [
        run_with_timeout(
            search_category(client, c, query.city, query.price_range),
            timeout, c.value)
        for c in query.categories
    ]
    outcomes = await asyncio.gather(*tasks)

    results: Dict[Category, List[Venue]] = {}
    errors = []
    for category, (venues, err) in zip(query.categories, outcomes):
        if err is not None:
            errors.append(err)
        results[category] = [v for v in venues if v.id not in query.exclude_ids]

    if errors and len(errors) == len(query.categories):
        raise errors[0]

    log.info("search %s: %s", query.city,
             ", ".join(f"{c.value}={len(v)}" for c, v in results.items()))
    return results
