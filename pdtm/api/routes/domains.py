"""
Domain endpoints: ranked risk list, per-domain detail and user overrides.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError as PydanticValidationError

from pdtm.api.dependencies import get_service
from pdtm.api.models import DomainDetailResponse, DomainListResponse, OverrideRequest
from pdtm.config import API_LIST_LIMIT_DEFAULT, API_LIST_LIMIT_MAX
from pdtm.exceptions import StorageError
from pdtm.observability.logging import get_logger
from pdtm.risk.state_mapper import ManagementState
from pdtm.service import ActivityMonitorService
from pdtm.utils.error_sanitizer import get_safe_error_detail, sanitize_error_message
from pdtm.utils.validators import ValidationError, validate_domain

router = APIRouter(prefix="/api/domains", tags=["domains"])
logger = get_logger(__name__)


def _checked_domain(domain: str) -> str:
    try:
        validated = validate_domain(domain)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    if validated is None:
        raise HTTPException(status_code=400, detail="Domain is required")
    return validated


@router.get("", response_model=DomainListResponse)
async def list_domains(
    service: ActivityMonitorService = Depends(get_service),
    state: str | None = Query(
        None, description="Comma-separated states: none,needs_review,suggested,pinned"
    ),
    limit: int = Query(API_LIST_LIMIT_DEFAULT, ge=1, le=API_LIST_LIMIT_MAX),
) -> DomainListResponse:
    """Risk records joined with overrides, highest score first."""
    states: list[ManagementState] | None = None
    if state:
        try:
            states = [ManagementState(s.strip()) for s in state.split(",")]
        except ValueError:
            raise HTTPException(status_code=400, detail="Unknown management state") from None

    try:
        domains = await service.list_domains(limit=limit, states=states)
    except StorageError as e:
        raise HTTPException(
            status_code=503, detail=get_safe_error_detail(e, 503, "Failed to list domains")
        ) from None
    return DomainListResponse(domains=domains, total=len(domains))


@router.get("/{domain}", response_model=DomainDetailResponse)
async def get_domain(
    domain: str,
    service: ActivityMonitorService = Depends(get_service),
) -> DomainDetailResponse:
    domain = _checked_domain(domain)
    try:
        detail = await service.get_domain(domain)
    except StorageError as e:
        raise HTTPException(
            status_code=503, detail=get_safe_error_detail(e, 503, "Failed to load domain")
        ) from None
    if detail is None:
        raise HTTPException(status_code=404, detail="Domain not found")
    return DomainDetailResponse(
        domain=detail.domain,
        state=detail.state,
        activity=detail.activity,
        risk=detail.risk,
        override=detail.override,
    )


@router.put("/{domain}/override")
async def update_override(
    domain: str,
    request: OverrideRequest,
    service: ActivityMonitorService = Depends(get_service),
) -> dict[str, object]:
    """Partial override update. Pinning immediately marks the domain PINNED."""
    domain = _checked_domain(domain)
    changes = request.changes()
    if not changes:
        raise HTTPException(status_code=400, detail="No override fields provided")

    try:
        override = await service.set_user_override(domain, **changes)
    except (ValueError, PydanticValidationError) as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except StorageError as e:
        raise HTTPException(
            status_code=503, detail=get_safe_error_detail(e, 503, "Failed to update override")
        ) from None

    logger.info("Override updated for %s: %s", domain, sorted(changes))
    return {"domain": domain, "override": override.to_storage()}
