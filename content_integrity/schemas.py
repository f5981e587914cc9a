# content_integrity/schemas.py
"""
Pydantic schemas for API input/output.

Covers:
  - Documents (save payload, output)
  - Regression status (metrics, warnings, status, list summary)
  - Per-document settings, mark-intentional, reset, batch run results

Notes:
  - Uses `from_attributes=True` so ORM rows and core dataclasses convert directly.
  - RegressionStatusOut is also the JSON shape cached in regression_evaluations.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from content_integrity.core.models import RegressionStatus, Severity, WarningType


# ----------------------------
# Documents
# ----------------------------

class DocumentSave(BaseModel):
    content: str
    title: Optional[str] = None
    url: Optional[str] = None
    doc_type: Optional[str] = Field(default=None, max_length=32)
    status: Optional[str] = Field(default=None, pattern="^(draft|pending|private|publish)$")
    published_at: Optional[datetime] = None


class DocumentCreate(DocumentSave):
    id: str = Field(..., min_length=1, max_length=64)


class DocumentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    url: Optional[str] = None
    doc_type: str
    status: str
    published_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


# ----------------------------
# Regression status
# ----------------------------

class MetricsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    document_id: str
    timestamp: datetime
    word_count: int
    internal_link_count: int
    external_link_count: int = 0
    heading_outline: List[int] = Field(default_factory=list)
    content_hash: str
    analysis_failed: bool = False


class WarningOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: WarningType
    severity: Severity
    message: str
    before: Optional[float] = None
    after: Optional[float] = None
    baseline_timestamp: Optional[datetime] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class RegressionStatusOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    has_baseline: bool
    warnings: List[WarningOut] = Field(default_factory=list)
    current: Optional[MetricsOut] = None
    baseline: Optional[MetricsOut] = None
    acknowledged: List[str] = Field(default_factory=list)
    evaluated_at: Optional[datetime] = None


class StatusSummaryOut(BaseModel):
    document_id: str
    has_baseline: bool
    warnings: int
    evaluated_at: Optional[datetime] = None


def serialize_status(status: RegressionStatus) -> Dict[str, Any]:
    return RegressionStatusOut.model_validate(status).model_dump(mode="json")


class DocumentSaveOut(BaseModel):
    document: DocumentOut
    regression: Optional[RegressionStatusOut] = None


# ----------------------------
# Actions
# ----------------------------

class DocumentSettingsIn(BaseModel):
    detection_disabled: Optional[bool] = None
    is_short_form: Optional[bool] = None


class DocumentSettingsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    detection_disabled: bool
    is_short_form: bool


class SettingsUpdateOut(BaseModel):
    success: bool
    settings: DocumentSettingsOut


class MarkIntentionalOut(BaseModel):
    success: bool
    suppressed: List[str] = Field(default_factory=list)


class ResetBaselineOut(BaseModel):
    success: bool
    removed: int


class RunDetectionOut(BaseModel):
    count: int
    processed: int
    failed: int
    cancelled: bool = False
