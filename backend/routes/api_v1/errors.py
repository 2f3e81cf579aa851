"""Translate domain errors into HTTP responses."""

import logging
import math

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from core.errors import (
    EntityNotFound,
    InvariantViolation,
    MalformedUpstreamData,
    ProviderUnavailable,
    QuotaExhausted,
    RosterValidationError,
)
from core.timeutil import utc_now

logger = logging.getLogger(__name__)


async def _provider_unavailable(request: Request, exc: ProviderUnavailable) -> JSONResponse:
    headers = {}
    if isinstance(exc, QuotaExhausted) and exc.reset_at is not None:
        seconds = max(0, math.ceil((exc.reset_at - utc_now()).total_seconds()))
        headers["Retry-After"] = str(seconds)
    logger.warning("Provider unavailable on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)}, headers=headers)


async def _malformed(request: Request, exc: MalformedUpstreamData) -> JSONResponse:
    logger.warning("Malformed provider data on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": str(exc)})


async def _not_found(request: Request, exc: EntityNotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _invariant(request: Request, exc: InvariantViolation) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


async def _roster(request: Request, exc: RosterValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": "invalid roster", "reasons": exc.reasons})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ProviderUnavailable, _provider_unavailable)
    app.add_exception_handler(MalformedUpstreamData, _malformed)
    app.add_exception_handler(EntityNotFound, _not_found)
    app.add_exception_handler(InvariantViolation, _invariant)
    app.add_exception_handler(RosterValidationError, _roster)
