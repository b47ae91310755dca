"""
Health check endpoint.

Used by:
  - Load balancers / orchestrators
  - Monitoring tools
  - Front-end to check API connectivity

Reports which upstreams are configured so callers can tell "serving mock
events" apart from "serving live events". It makes no network calls.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from lexer_world import __version__
from lexer_world.core.config import Settings, get_settings

router = APIRouter()


class HealthResponse(BaseModel):
    status: str        # Always "ok" if the API process is alive
    version: str
    environment: str
    datastore: str     # "configured" | "mock"
    identity: str      # "configured" | "disabled"


@router.get("", response_model=HealthResponse, summary="API health check")
async def health_check(cfg: Settings = Depends(get_settings)) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=__version__,
        environment=cfg.environment,
        datastore="configured" if cfg.datastore_configured else "mock",
        identity="configured" if cfg.identity_url and cfg.identity_key else "disabled",
    )
