# config.py
# env-driven settings. .env is loaded once on import

import os
from dotenv import load_dotenv

load_dotenv()

# places provider (Google Places API v1)
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY", "")
PLACES_BASE_URL = os.getenv("PLACES_BASE_URL", "https://places.googleapis.com/v1")
PLACES_PAGE_SIZE = int(os.getenv("PLACES_PAGE_SIZE", "20"))

# provider timeout (seconds)
PROVIDER_TIMEOUT_S = int(os.getenv("PROVIDER_TIMEOUT_S", "12"))

# backing store
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./datethinker.db")

# city suggestions rarely change, cache per process (0 disables)
AUTOCOMPLETE_CACHE_TTL_S = int(os.getenv("AUTOCOMPLETE_CACHE_TTL_S", "600"))

# CORS origins
FRONTEND_LOCAL = "http://localhost:3000"
FRONTEND_PROD = os.getenv("FRONTEND_PROD", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# calendar export
ICAL_PRODID = "-//DateThinker//EN"
ICAL_UID_DOMAIN = os.getenv("ICAL_UID_DOMAIN", "datethinker.com")
