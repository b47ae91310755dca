"""
Lexer's World API: application entry point.

Bootstraps FastAPI, wires up middleware and rate limiting, and registers
the route groups.

Extension points:
  - Add new route groups with app.include_router() below
  - Add new middleware in the middleware block
  - Change startup behaviour in the lifespan context manager

Run locally:
    uvicorn lexer_world.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from lexer_world import __version__
from lexer_world.core.config import settings
from lexer_world.core.rate_limit import limiter
from lexer_world.routes.events import router as events_router
from lexer_world.routes.fx import router as fx_router
from lexer_world.routes.health import router as health_router
from lexer_world.services.geo_fuzzer import get_geolocation_privacy_settings

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    privacy = get_geolocation_privacy_settings()
    logger.info(
        "Starting Lexer's World API (env: %s, events: %s, fuzz: %s-%s km @ %s dp)",
        settings.environment,
        "supabase" if settings.datastore_configured else "mock",
        privacy.min_distance_km,
        privacy.max_distance_km,
        privacy.coordinate_decimals,
    )
    if settings.is_production and not settings.fuzz_secret.strip():
        logger.error("FUZZ_SECRET is not set in production; outsider pins use the development key.")
    yield
    logger.info("Shutting down Lexer's World API")


# ─── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="Lexer's World API",
    description=(
        "Event pins for the Lexer's World globe. Outsiders get fuzzed "
        "coordinates and blackboxed venues; approved insiders get precise data."
    ),
    version=__version__,
    lifespan=lifespan,
    # Disable docs in production to reduce attack surface
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)


# ─── Rate limiting ─────────────────────────────────────────────────────────────
# Routes opt-in with @limiter.limit(...) + a `request: Request` parameter.
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ─── Middleware ─────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["Authorization", "x-lexer-viewer", "x-insider-preview-token"],
    expose_headers=[
        "x-lexer-viewer-mode",
        "x-lexer-location-precision",
        "x-lexer-fuzz-min-km",
        "x-lexer-fuzz-max-km",
        "x-lexer-fuzz-coordinate-decimals",
        "x-lexer-fx-source",
    ],
)


# ─── Routes ────────────────────────────────────────────────────────────────────
app.include_router(health_router, prefix="/health", tags=["health"])
app.include_router(events_router)
app.include_router(fx_router)


@app.get("/", tags=["root"])
async def root():
    """API root: basic metadata."""
    return {
        "name": "Lexer's World API",
        "version": __version__,
        "status": "running",
        "environment": settings.environment,
    }
