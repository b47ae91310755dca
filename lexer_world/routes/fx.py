"""
fx.py — Live currency rates.

Routes:
  GET /api/fx — currency → USD multipliers

  200  FxRatesResponse               x-lexer-fx-source: live
  503  {"error": "<what went wrong>"} x-lexer-fx-source: error

Both are sent with caching disabled. There is no fallback: the UI shows
"conversion unavailable" on 503 rather than converting with a wrong rate.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from lexer_world.core.config import settings
from lexer_world.core.rate_limit import limiter
from lexer_world.models.fx import FxErrorResponse, FxRatesResponse
from lexer_world.services.fx import FxRateService, FxUnavailableError, get_fx_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["fx"])

NO_STORE = "no-store, max-age=0"
UNAVAILABLE_MESSAGE = "Live FX rates are unavailable."


@router.get(
    "/fx",
    response_model=FxRatesResponse,
    responses={503: {"model": FxErrorResponse, "description": "Live rates unavailable"}},
)
@limiter.limit(settings.fx_rate_limit)
async def get_fx(
    request: Request,
    response: Response,
    fx_service: FxRateService = Depends(get_fx_service),
):
    try:
        payload = await fx_service.get_fx_rates()
    except FxUnavailableError as exc:
        logger.warning("Serving FX 503: %s", exc)
        body = FxErrorResponse(error=str(exc) or UNAVAILABLE_MESSAGE)
        return JSONResponse(
            status_code=503,
            content=body.model_dump(),
            headers={"cache-control": NO_STORE, "x-lexer-fx-source": "error"},
        )

    response.headers["cache-control"] = NO_STORE
    response.headers["x-lexer-fx-source"] = payload.source
    return payload
