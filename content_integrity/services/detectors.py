#!/usr/bin/env python3
"""
detectors.py — Independent structural regression checks and the pipeline that runs them.

Place at: content_integrity/services/detectors.py

What this does:
  - detect_link_drop: internal links fell by >= N% OR by >= N links vs. baseline.
  - detect_word_count_drop: word count fell by >= N% vs. baseline (or vs. the
    rolling average), gated by document age and the short-form flag.
  - detect_missing_h1 / detect_multiple_h1 / detect_skipped_level: heading
    outline checks on the current snapshot alone.
  - run_pipeline: runs every detector, concatenates their warnings, and turns
    a crashing detector into "no warning from this detector".

Contract:
  Each detector is (current, baseline | None, DetectionContext) -> list[RegressionWarning].
  Detectors are pure and order-insensitive; thresholds arrive pre-clamped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple

from content_integrity.core.config import DetectionConfig
from content_integrity.core.models import (
    DocumentSettings,
    Metrics,
    RegressionWarning,
    Severity,
    WarningType,
    as_naive_utc,
    utcnow,
)
from content_integrity.services.baseline import rolling_average

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class DetectionContext:
    config: DetectionConfig
    settings: DocumentSettings = field(default_factory=DocumentSettings)
    history: Tuple[Metrics, ...] = ()  # retained window, excluding current
    published_at: Optional[datetime] = None
    now: Optional[datetime] = None

    @property
    def age_days(self) -> Optional[float]:
        published = as_naive_utc(self.published_at)
        if published is None:
            return None
        now = as_naive_utc(self.now) or utcnow()
        return (now - published).total_seconds() / SECONDS_PER_DAY


Detector = Callable[[Metrics, Optional[Metrics], DetectionContext], List[RegressionWarning]]


# -----------------------
# Baseline detectors
# -----------------------
def detect_link_drop(
    current: Metrics, baseline: Optional[Metrics], ctx: DetectionContext
) -> List[RegressionWarning]:
    cfg = ctx.config
    if not cfg.link_drop_enabled or baseline is None or current.analysis_failed:
        return []

    before = baseline.internal_link_count
    after = current.internal_link_count
    # no percentage from zero; an increase from zero is not a regression
    if before == 0:
        return []

    drop = before - after
    if drop <= 0:
        return []
    drop_percent = drop * 100 / before

    if drop_percent >= cfg.link_drop_percent or drop >= cfg.link_drop_absolute:
        return [
            RegressionWarning(
                type=WarningType.link_drop,
                severity=Severity.warning,
                message=(
                    f"This update reduced internal links from {before} to {after} "
                    "compared to the baseline version."
                ),
                before=before,
                after=after,
                baseline_timestamp=baseline.timestamp,
                details={"drop": drop, "drop_percent": round(drop_percent, 1)},
            )
        ]
    return []


def detect_word_count_drop(
    current: Metrics, baseline: Optional[Metrics], ctx: DetectionContext
) -> List[RegressionWarning]:
    cfg = ctx.config
    if not cfg.word_count_enabled or baseline is None or current.analysis_failed:
        return []
    if ctx.settings.is_short_form:
        return []

    # age counts from the document's publish time, not from the baseline
    age = ctx.age_days
    if age is not None and age < cfg.word_count_min_age_days:
        return []

    before: float = baseline.word_count
    compared_to = "baseline version"
    if cfg.word_count_compare_average:
        avg = rolling_average(ctx.history).get("word_count")
        if avg is not None:
            before = avg
            compared_to = "average of its recent versions"
    if before <= 0:
        return []

    after = current.word_count
    drop_percent = (before - after) * 100 / before
    if drop_percent >= cfg.word_count_drop_percent:
        return [
            RegressionWarning(
                type=WarningType.word_count_drop,
                severity=Severity.warning,
                message=f"This document is {round(drop_percent)}% shorter than the {compared_to}.",
                before=round(before, 1),
                after=after,
                baseline_timestamp=baseline.timestamp,
                details={"drop_percent": round(drop_percent)},
            )
        ]
    return []


# -----------------------
# Heading detectors (current only)
# -----------------------
def detect_missing_h1(
    current: Metrics, baseline: Optional[Metrics], ctx: DetectionContext
) -> List[RegressionWarning]:
    cfg = ctx.config
    if not (cfg.heading_enabled and cfg.detect_missing_h1):
        return []
    outline = current.heading_outline
    # a document with no headings at all is out of scope for this check
    if not outline or 1 in outline:
        return []
    return [
        RegressionWarning(
            type=WarningType.heading_missing_h1,
            severity=Severity.notice,
            message="No H1 heading detected in this document.",
        )
    ]


def detect_multiple_h1(
    current: Metrics, baseline: Optional[Metrics], ctx: DetectionContext
) -> List[RegressionWarning]:
    cfg = ctx.config
    if not (cfg.heading_enabled and cfg.detect_multiple_h1):
        return []
    count = current.h1_count
    if count <= 1:
        return []
    return [
        RegressionWarning(
            type=WarningType.heading_multiple_h1,
            severity=Severity.warning,
            message=f"Multiple H1 headings detected ({count} found).",
            details={"count": count},
        )
    ]


def find_skipped_level(outline: Sequence[int]) -> Optional[Tuple[int, int]]:
    """First (from, to) pair where a heading goes more than one level deeper."""
    prev = 0
    for level in outline:
        if prev and level > prev + 1:
            return prev, level
        prev = level
    return None


def detect_skipped_level(
    current: Metrics, baseline: Optional[Metrics], ctx: DetectionContext
) -> List[RegressionWarning]:
    cfg = ctx.config
    if not (cfg.heading_enabled and cfg.detect_skipped_levels):
        return []
    skipped = find_skipped_level(current.heading_outline)
    if skipped is None:
        return []
    prev, level = skipped
    return [
        RegressionWarning(
            type=WarningType.heading_skipped_level,
            severity=Severity.notice,
            message=f"Heading level skipped: H{prev} followed by H{level}.",
            details={"from": prev, "to": level},
        )
    ]


DEFAULT_DETECTORS: Tuple[Detector, ...] = (
    detect_link_drop,
    detect_word_count_drop,
    detect_missing_h1,
    detect_multiple_h1,
    detect_skipped_level,
)


# -----------------------
# Pipeline
# -----------------------
def run_pipeline(
    current: Metrics,
    baseline: Optional[Metrics],
    ctx: DetectionContext,
    detectors: Sequence[Detector] = DEFAULT_DETECTORS,
) -> List[RegressionWarning]:
    warnings: List[RegressionWarning] = []
    for detector in detectors:
        try:
            warnings.extend(detector(current, baseline, ctx) or [])
        except Exception:
            logger.exception(
                "Detector failed; treated as no warning",
                extra={
                    "extra": {
                        "document_id": current.document_id,
                        "detector": getattr(detector, "__name__", repr(detector)),
                    }
                },
            )
    return warnings
