# models.py
# typed request/response models and the shared Venue definition

from datetime import date as Date, datetime, time
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Category(str, Enum):
    RESTAURANT = "restaurant"
    ACTIVITY = "activity"
    DRINK = "drink"
    OUTDOOR = "outdoor"


# request flag name per category (POST /search body)
FILTER_FIELDS = {
    Category.RESTAURANT: "restaurants",
    Category.ACTIVITY: "activities",
    Category.DRINK: "drinks",
    Category.OUTDOOR: "outdoors",
}


def parse_category(value: Optional[str]) -> Optional[Category]:
    """Accept "restaurant" or "restaurants" (any case); None if unknown."""
    if not value:
        return None
    v = value.strip().lower()
    for category, flag in FILTER_FIELDS.items():
        if v in (category.value, flag):
            return category
    return None


class Venue(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str
    category: Category
    address: str
    rating: float = 0.0
    # provider price tier 0-4 (0 = free or unknown)
    price: int = 0
    photoReference: Optional[str] = None
    openNow: Optional[bool] = None
    website: Optional[str] = None
    phone: Optional[str] = None


class SearchQuery(BaseModel):
    """Sanitized search input, built per request."""

    model_config = ConfigDict(frozen=True)

    city: str = Field(..., min_length=1)
    categories: Tuple[Category, ...]
    price_range: Optional[int] = None
    exclude_ids: frozenset = frozenset()


class SearchRequest(BaseModel):
    city: Optional[str] = None
    restaurants: Optional[bool] = None
    activities: Optional[bool] = None
    drinks: Optional[bool] = None
    outdoors: Optional[bool] = None
    priceRange: Optional[int] = None
    excludeIds: List[str] = []


class RefreshRequest(BaseModel):
    type: Optional[str] = None
    city: Optional[str] = None
    placeId: Optional[str] = None
    priceRange: Optional[int] = None


class CitySuggestion(BaseModel):
    placeId: str
    description: str
    mainText: str
    secondaryText: str = ""


class DatePlanCreate(BaseModel):
    title: str
    venues: List[Venue] = Field(..., min_length=1)
    date: Optional[Date] = None
    startTime: Optional[time] = None
    endTime: Optional[time] = None
    notes: Optional[str] = None


class DatePlan(BaseModel):
    id: str
    title: str
    venues: List[Venue]
    createdAt: datetime
    shareId: str
    userId: Optional[str] = None
    date: Optional[Date] = None
    startTime: Optional[time] = None
    endTime: Optional[time] = None
    notes: Optional[str] = None
