"""Pydantic request/response models for the PDTM API.

Request bodies carry URLs only so the service can derive domains and
URL-shape signals; responses never echo them back.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from pdtm.config import API_MAX_SIGNALS_PER_MESSAGE
from pdtm.utils.validators import validate_category

MAX_URL_LENGTH = 8192
MAX_SIGNAL_LENGTH = 64


class NavigationRequest(BaseModel):
    url: str = Field(..., min_length=1, max_length=MAX_URL_LENGTH)
    tab_id: int | None = Field(default=None, ge=0)
    frame_id: int = Field(default=0, ge=0)
    opener_tab_id: int | None = Field(default=None, ge=0)
    timestamp: int | None = Field(default=None, ge=0, description="Epoch milliseconds")


class ActivitySignalRequest(BaseModel):
    """Signal delivery message. Unknown codes are accepted here and dropped by the classifier."""

    url: str = Field(..., min_length=1, max_length=MAX_URL_LENGTH)
    signals: list[str] = Field(default_factory=list, max_length=API_MAX_SIGNALS_PER_MESSAGE)
    timestamp: int | None = Field(default=None, ge=0)
    tab_id: int | None = Field(default=None, ge=0)
    sender_url: str | None = Field(default=None, max_length=MAX_URL_LENGTH)

    @field_validator("signals")
    @classmethod
    def _bounded_codes(cls, value: list[str]) -> list[str]:
        if any(len(code) > MAX_SIGNAL_LENGTH for code in value):
            raise ValueError(f"Signal codes must be at most {MAX_SIGNAL_LENGTH} characters")
        return value


class ClassifyRequest(BaseModel):
    url: str = Field(..., min_length=1, max_length=MAX_URL_LENGTH)
    signals: list[str] = Field(default_factory=list, max_length=API_MAX_SIGNALS_PER_MESSAGE)
    tab_id: int | None = Field(default=None, ge=0)


class TabClosedRequest(BaseModel):
    tab_id: int = Field(..., ge=0)


class CleanupRequest(BaseModel):
    force: bool = False


class OverrideRequest(BaseModel):
    """Partial override update: only the fields present are changed."""

    pinned: bool | None = None
    whitelisted: bool | None = None
    ignored: bool | None = None
    category: str | None = None
    notes: str | None = Field(default=None, max_length=1000)

    @field_validator("category")
    @classmethod
    def _valid_category(cls, value: str | None) -> str | None:
        return validate_category(value)

    def changes(self) -> dict[str, Any]:
        # Explicit nulls clear category/notes; flags are left alone
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None or key in ("category", "notes")
        }


class AssessmentResponse(BaseModel):
    domain: str
    level: str
    confidence: float
    reasons: list[str]
    score: int
    management_state: str
    rp_domain: str | None = None
    idp_domain: str | None = None
    relationship_signals: list[str] = Field(default_factory=list)
    visit_count: int = 0
    pinned: bool = False


class EventResponse(BaseModel):
    """Outcome of a navigation or signal event. `assessment` is None when the event was dropped."""

    accepted: bool
    assessment: AssessmentResponse | None = None


class CleanupResponse(BaseModel):
    success: bool
    stats: dict[str, int] | None = None
    error: str | None = None


class DomainListResponse(BaseModel):
    domains: list[dict[str, Any]]
    total: int


class DomainDetailResponse(BaseModel):
    domain: str
    state: dict[str, Any] | None = None
    activity: dict[str, Any] | None = None
    risk: dict[str, Any] | None = None
    override: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    detail: str
