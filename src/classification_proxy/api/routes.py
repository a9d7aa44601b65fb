"""
HTTP routes for the classification proxy.

Routes are thin: they pull headers and bodies off the request, call the
orchestrator and shape the envelope. Failures propagate as ProxyError and
are rendered by api/error_handlers.py.
"""

from typing import Any, Optional

import structlog
from fastapi import APIRouter, Body, Depends, Header, Query, Request, status
from fastapi.responses import JSONResponse

from classification_proxy.api.dependencies import get_orchestrator, get_settings
from classification_proxy.api.models import (
    AuthResponse,
    ErrorResponse,
    HealthResponse,
    QuotaResponse,
    StatsResponse,
)
from classification_proxy.config import Settings
from classification_proxy.models.enums import Tier
from classification_proxy.orchestrator.orchestrator import RequestOrchestrator

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/auth",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Issue an anonymous identity",
    description="""
    Issues a bearer token for a new anonymous identity.

    No body is required. A coarse fingerprint of the request headers caps
    how many identities one device can hold at a time.
    """,
    responses={
        201: {"description": "Identity issued"},
        429: {"model": ErrorResponse, "description": "Too many identities for this device"},
    },
)
async def issue_identity(
    request: Request,
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
) -> AuthResponse:
    issued = orchestrator.issue_identity(request.headers)
    return AuthResponse(
        user_id=issued.identity_id,
        token=issued.token,
        expires_at=issued.expires_at,
    )


@router.post(
    "/classify",
    status_code=status.HTTP_200_OK,
    summary="Classify a batch of content items",
    description="""
    Classify up to 50 items as ALLOW or BLOCK under a free-text preference.

    Cached labels are returned without a provider call. Provider failures
    never fail the request: affected items come back ALLOW with
    ``failedOpen: true``. When the remaining quota cannot cover the whole
    batch, only the leading items that fit are served.
    """,
    responses={
        200: {"description": "Items classified (possibly partially)"},
        400: {"model": ErrorResponse, "description": "Invalid request"},
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
        429: {"model": ErrorResponse, "description": "Quota or burst limit exceeded"},
    },
)
async def classify(
    payload: Any = Body(default=None),
    authorization: Optional[str] = Header(default=None),
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    response = await orchestrator.classify(authorization, payload)
    return JSONResponse(status_code=status.HTTP_200_OK, content=response.to_wire())


@router.get(
    "/quota",
    response_model=QuotaResponse,
    summary="Quota status for the caller",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid tier"},
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
    },
)
async def get_quota(
    tier: Optional[Tier] = Query(default=None),
    authorization: Optional[str] = Header(default=None),
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
) -> QuotaResponse:
    report = orchestrator.quota(authorization, tier)
    return QuotaResponse(quota=report.quota, tier=report.limits)


@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Component statistics",
)
async def get_stats(
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
) -> StatsResponse:
    return StatsResponse(**orchestrator.stats())


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="""
    Reports service status and whether the completion provider is reachable.

    An unreachable provider reports ``degraded`` with HTTP 200: the service
    keeps answering by failing open.
    """,
)
async def health_check(
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_settings),
) -> HealthResponse:
    health = await orchestrator.health()
    logger.info("Health check", **health)
    return HealthResponse(version=settings.APP_VERSION, **health)
