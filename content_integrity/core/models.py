"""Core domain models.

These dataclasses are shared by the analyzer, snapshot store, detectors and
evaluator so that none of them depend on ORM rows or API schemas.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how the database columns store time."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class WarningType(str, Enum):
    link_drop = "link_drop"
    word_count_drop = "word_count_drop"
    heading_missing_h1 = "heading_missing_h1"
    heading_multiple_h1 = "heading_multiple_h1"
    heading_skipped_level = "heading_skipped_level"
    # internal notices
    analysis_degraded = "analysis_degraded"
    storage_unavailable = "storage_unavailable"


INTERNAL_NOTICES = frozenset({WarningType.analysis_degraded, WarningType.storage_unavailable})


class Severity(str, Enum):
    warning = "warning"
    notice = "notice"


@dataclass(frozen=True)
class Metrics:
    """Structural snapshot of one document at one save event."""

    document_id: str
    timestamp: datetime
    word_count: int
    internal_link_count: int
    heading_outline: Tuple[int, ...]
    content_hash: str
    external_link_count: int = 0
    analysis_failed: bool = False

    @property
    def h1_count(self) -> int:
        return sum(1 for level in self.heading_outline if level == 1)


@dataclass(frozen=True)
class DocumentSettings:
    """Per-document overrides of the global detection config."""

    detection_disabled: bool = False
    is_short_form: bool = False


@dataclass(frozen=True)
class RegressionWarning:
    type: WarningType
    severity: Severity
    message: str
    before: Optional[float] = None
    after: Optional[float] = None
    baseline_timestamp: Optional[datetime] = None
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RegressionStatus:
    """Evaluator output for one document. A view, never persisted as state."""

    has_baseline: bool
    warnings: List[RegressionWarning]
    current: Optional[Metrics]
    baseline: Optional[Metrics]

    @property
    def regressions(self) -> List[RegressionWarning]:
        """Warnings produced by detectors, without internal notices."""
        return [w for w in self.warnings if w.type not in INTERNAL_NOTICES]

    @property
    def storage_failed(self) -> bool:
        return any(w.type == WarningType.storage_unavailable for w in self.warnings)


@dataclass(frozen=True)
class Acknowledgement:
    """Warnings a reviewer accepted for one exact content version."""

    document_id: str
    content_hash: str
    warning_types: Tuple[str, ...]
    acknowledged_at: datetime


@dataclass(frozen=True)
class BatchResult:
    count: int
    processed: int
    failed: int
    cancelled: bool = False
