"""
Event endpoints: navigation reports, content signals, tab closes, dry-run
classification and the cleanup trigger.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from pdtm.api.dependencies import get_service
from pdtm.api.models import (
    ActivitySignalRequest,
    AssessmentResponse,
    CleanupRequest,
    CleanupResponse,
    ClassifyRequest,
    EventResponse,
    NavigationRequest,
    TabClosedRequest,
)
from pdtm.exceptions import StorageError
from pdtm.observability.logging import get_logger
from pdtm.service import ActivityMonitorService, ActivitySignalMessage, Assessment, NavigationEvent
from pdtm.utils.error_sanitizer import get_safe_error_detail

router = APIRouter(prefix="/api", tags=["events"])
logger = get_logger(__name__)


def _to_response(assessment: Assessment | None) -> EventResponse:
    if assessment is None:
        return EventResponse(accepted=False)
    return EventResponse(
        accepted=True, assessment=AssessmentResponse.model_validate(assessment.to_dict())
    )


@router.post("/events/navigation", response_model=EventResponse)
async def report_navigation(
    request: NavigationRequest,
    service: ActivityMonitorService = Depends(get_service),
) -> EventResponse:
    """
    Record a completed navigation.

    `accepted` is false when the event was filtered (sub-frame, non-web URL,
    burst duplicate, collection disabled).
    """
    try:
        assessment = await service.handle_navigation(NavigationEvent(**request.model_dump()))
    except StorageError as e:
        raise HTTPException(
            status_code=503, detail=get_safe_error_detail(e, 503, "Failed to record navigation")
        ) from None
    return _to_response(assessment)


@router.post("/events/signal", response_model=EventResponse)
async def report_activity_signal(
    request: ActivitySignalRequest,
    service: ActivityMonitorService = Depends(get_service),
) -> EventResponse:
    """Deliver content-probe signals for a page. Unknown codes are dropped, not rejected."""
    try:
        assessment = await service.handle_activity_signal(
            ActivitySignalMessage(**request.model_dump())
        )
    except StorageError as e:
        raise HTTPException(
            status_code=503, detail=get_safe_error_detail(e, 503, "Failed to process signals")
        ) from None
    return _to_response(assessment)


@router.post("/events/tab-closed", response_model=EventResponse)
async def report_tab_closed(
    request: TabClosedRequest,
    service: ActivityMonitorService = Depends(get_service),
) -> EventResponse:
    """Drop the session lineage of a closed tab."""
    service.handle_tab_closed(request.tab_id)
    return EventResponse(accepted=True)


@router.post("/classify", response_model=AssessmentResponse)
async def classify_url(
    request: ClassifyRequest,
    service: ActivityMonitorService = Depends(get_service),
) -> AssessmentResponse:
    """Dry run: classify, score and decide without writing anything."""
    try:
        assessment = await service.evaluate(request.url, request.signals, request.tab_id)
    except StorageError as e:
        raise HTTPException(
            status_code=503, detail=get_safe_error_detail(e, 503, "Failed to classify")
        ) from None
    if assessment is None:
        raise HTTPException(status_code=400, detail="URL must be an http(s) URL with a host")
    return AssessmentResponse.model_validate(assessment.to_dict())


@router.post("/cleanup", response_model=CleanupResponse)
async def run_cleanup(
    request: CleanupRequest,
    service: ActivityMonitorService = Depends(get_service),
) -> CleanupResponse:
    """
    Cleanup trigger: {force} -> {success, stats} or {success: false, error}.

    A non-forced request that is not yet due succeeds with stats = null.
    """
    try:
        stats = await service.run_cleanup(force=request.force)
    except StorageError as e:
        return CleanupResponse(
            success=False, error=get_safe_error_detail(e, 503, "Cleanup failed")
        )
    return CleanupResponse(success=True, stats=stats.to_dict() if stats else None)
