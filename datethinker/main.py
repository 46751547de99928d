# main.py
# FastAPI app: venue search/refresh, date plans, calendar export.
# Every error leaves as JSON { "error": ... } with a status chosen by error kind.

import logging
from contextlib import asynccontextmanager
from typing import List, Optional
from urllib.parse import quote

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import config
from .errors import DateThinkerError
from .ical import generate_ical_event, google_calendar_link
from .models import CitySuggestion, DatePlan, DatePlanCreate, RefreshRequest, SearchRequest, Venue
from .providers.google_places import PlacesClient
from .refresh import refresh_venue
from .search import build_query, search_venues
from .sessions import Session, require_user, resolve_session
from .store import DatePlanStore
from .utils import TTLCache, sanitize

# logging
logging.basicConfig(level=config.LOG_LEVEL)
log = logging.getLogger("datethinker")

_store: Optional[DatePlanStore] = None


def get_store() -> DatePlanStore:
    global _store
    if _store is None:
        _store = DatePlanStore(config.DATABASE_URL)
    return _store


def get_places_client() -> PlacesClient:
    return PlacesClient(config.GOOGLE_API_KEY)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await get_store().init()
    yield
    if _store is not None:
        await _store.dispose()


app = FastAPI(title="DateThinker API", version="1.0.0", lifespan=lifespan)

origins = [config.FRONTEND_LOCAL]
if config.FRONTEND_PROD:
    origins.append(config.FRONTEND_PROD)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# per process cache for city suggestions
suggestions_cache = TTLCache(ttl_seconds=config.AUTOCOMPLETE_CACHE_TTL_S)


# global JSON error handling
# - DateThinkerError -> { "error": <message> } with its status_code
# - HTTPException -> { "error": <detail> }
# - request validation -> 400
# - any other exception -> { "error": "Server error" }
@app.exception_handler(DateThinkerError)
async def app_error_handler(request: Request, exc: DateThinkerError):
    log.warning("%s %s -> %s %s: %s", request.method, request.url.path, exc.status_code, exc.kind, exc)
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    log.warning("%s %s -> HTTP %s: %s", request.method, request.url.path, exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = ", ".join(".".join(str(p) for p in err.get("loc", ())[1:]) or "body" for err in exc.errors())
    log.warning("%s %s -> 400 invalid input: %s", request.method, request.url.path, fields)
    return JSONResponse(status_code=400, content={"error": f"Invalid request: {fields}"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    # log stack once. do not leak details to client
    log.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Server error"})


@app.post("/search")
async def search(req: SearchRequest, client: PlacesClient = Depends(get_places_client)):
    """Venues per requested category: { "restaurant": [...], "drink": [...] }."""
    query = build_query(req)
    log.info("search city=%s categories=%s price=%s",
             query.city, ",".join(c.value for c in query.categories), query.price_range)
    results = await search_venues(query, client)
    return {c.value: [v.model_dump(mode="json") for v in venues] for c, venues in results.items()}


@app.post("/refresh", response_model=Venue)
async def refresh(req: RefreshRequest, client: PlacesClient = Depends(get_places_client)):
    log.info("refresh type=%s city=%s placeId=%s", sanitize(req.type), sanitize(req.city), req.placeId or "-")
    return await refresh_venue(req.type, req.city, client, place_id=req.placeId, price_range=req.priceRange)


@app.get("/city-autocomplete", response_model=List[CitySuggestion])
async def city_autocomplete(input: str = "", client: PlacesClient = Depends(get_places_client)):
    text = sanitize(input)
    if not text:
        return []
    key = text.lower()
    hit = suggestions_cache.get(key)
    if hit is not None:
        return hit
    suggestions = await client.autocomplete(text)
    suggestions_cache.set(key, suggestions)
    return suggestions


@app.get("/date-plans", response_model=List[DatePlan])
async def list_date_plans(session: Session = Depends(resolve_session), store: DatePlanStore = Depends(get_store)):
    user = require_user(session)
    return await store.list_date_plans(user.user_id)


@app.post("/date-plans", response_model=DatePlan, status_code=201)
async def create_date_plan(
    payload: DatePlanCreate,
    session: Session = Depends(resolve_session),
    store: DatePlanStore = Depends(get_store),
):
    user = require_user(session)
    return await store.create_date_plan(payload, user_id=user.user_id)


@app.get("/date-plans/{plan_id}", response_model=DatePlan)
async def get_date_plan(plan_id: str, store: DatePlanStore = Depends(get_store)):
    return await store.get_date_plan(plan_id)


@app.delete("/date-plans/{plan_id}")
async def delete_date_plan(
    plan_id: str,
    request: Request,
    session: Session = Depends(resolve_session),
    store: DatePlanStore = Depends(get_store),
):
    # result envelope instead of the bare error body
    try:
        user = require_user(session)
        await store.delete_date_plan(plan_id, user_id=user.user_id)
    except DateThinkerError as e:
        log.warning("%s %s -> %s %s: %s", request.method, request.url.path, e.status_code, e.kind, e)
        return JSONResponse(status_code=e.status_code, content={"success": False, "error": str(e)})
    return {"success": True}


@app.get("/shared/{share_id}", response_model=DatePlan)
async def shared_date_plan(share_id: str, store: DatePlanStore = Depends(get_store)):
    return await store.get_by_share_id(share_id)


@app.get("/calendar/{plan_id}")
async def calendar_file(plan_id: str, store: DatePlanStore = Depends(get_store)):
    plan = await store.get_date_plan(plan_id)
    filename = quote(plan.title, safe="") or "date-plan"
    return Response(
        content=generate_ical_event(plan),
        media_type="text/calendar",
        headers={"Content-Disposition": f'attachment; filename="{filename}.ics"'},
    )


@app.get("/calendar/{plan_id}/google")
async def google_calendar(plan_id: str, store: DatePlanStore = Depends(get_store)):
    plan = await store.get_date_plan(plan_id)
    return {"url": google_calendar_link(plan)}


@app.get("/health")
def health():
    return {"ok": True}
