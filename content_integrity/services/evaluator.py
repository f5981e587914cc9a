#!/usr/bin/env python3
"""
evaluator.py — Orchestrate analysis, snapshot storage, baseline selection and detectors.

Place at: content_integrity/services/evaluator.py
Run from: the save hook (PUT /documents/{id}), the regression routes, the
batch endpoint, or the scheduler job.

What this does:
  - evaluate(): Analyze -> read history + append (atomic per document) ->
    select baseline -> run detectors -> RegressionStatus. Caches the result.
  - preview(): same, read-only (no snapshot appended, nothing cached).
  - cached_status(): latest cached evaluation with accepted warnings removed.
  - mark_intentional() / reset_baseline(): reviewer actions.
  - run_detection_now(): evaluate many documents on a bounded worker pool,
    isolating per-document failures, interruptible between documents.

Failure policy:
  - Analysis failures become an `analysis_degraded` notice.
  - Storage failures become a `storage_unavailable` notice with
    has_baseline=False; they never propagate out of evaluate().
  - Batch runs count storage failures and exceptions as per-document failures.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from content_integrity.core.config import DetectionConfig
from content_integrity.core.errors import DocumentNotFound, StorageUnavailable
from content_integrity.core.models import (
    INTERNAL_NOTICES,
    BatchResult,
    DocumentSettings,
    Metrics,
    RegressionStatus,
    RegressionWarning,
    Severity,
    WarningType,
    utcnow,
)
from content_integrity.db import crud
from content_integrity.db.crud import DocumentInput
from content_integrity.schemas import serialize_status
from content_integrity.services.analyzer import analyze
from content_integrity.services.baseline import select_baseline
from content_integrity.services.detectors import (
    DEFAULT_DETECTORS,
    DetectionContext,
    Detector,
    run_pipeline,
)
from content_integrity.services.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)

DocumentLoader = Callable[[str], Optional[DocumentInput]]


def _window(history: Sequence[Metrics], current: Metrics) -> List[Metrics]:
    """History without trailing entries that are the current content version."""
    window = list(history)
    while window and window[-1].content_hash == current.content_hash:
        window.pop()
    return window


def _notice(kind: WarningType, message: str) -> RegressionWarning:
    return RegressionWarning(type=kind, severity=Severity.notice, message=message)


def filter_acknowledged(
    warnings: List[Dict[str, Any]], accepted: Sequence[str]
) -> List[Dict[str, Any]]:
    """Drop serialized warnings whose type was accepted by a reviewer."""
    return [w for w in warnings if w.get("type") not in accepted]


class RegressionEvaluator:
    def __init__(
        self,
        store: SnapshotStore,
        session_factory: sessionmaker,
        *,
        clock: Callable[[], datetime] = utcnow,
        detectors: Sequence[Detector] = DEFAULT_DETECTORS,
    ):
        self.store = store
        self._session_factory = session_factory
        self._clock = clock
        self.detectors = tuple(detectors)

    # -----------------------
    # Core: evaluate
    # -----------------------
    def evaluate(
        self,
        document_id: str,
        raw_markup: Optional[str],
        config: DetectionConfig,
        doc_settings: Optional[DocumentSettings] = None,
        *,
        published_at: Optional[datetime] = None,
        persist: bool = True,
    ) -> RegressionStatus:
        """
        Evaluate one document version against its own history.
        With persist=False the history is only read (preview).
        """
        doc_settings = doc_settings or DocumentSettings()
        if doc_settings.detection_disabled:
            return RegressionStatus(has_baseline=False, warnings=[], current=None, baseline=None)

        now = self._clock()
        current = analyze(document_id, raw_markup, config.analyzer, timestamp=now)
        notices: List[RegressionWarning] = []
        if current.analysis_failed:
            notices.append(_notice(
                WarningType.analysis_degraded,
                "Content could not be fully analyzed; structural checks were skipped.",
            ))

        history: Optional[List[Metrics]]
        try:
            if persist and not current.analysis_failed:
                history, current = self.store.capture(
                    document_id, current, capacity=config.snapshot_rolling_count
                )
            else:
                history = _window(self.store.history(document_id), current)
        except StorageUnavailable as e:
            logger.warning(
                "Snapshot storage unavailable; evaluating without baseline",
                extra={"extra": {"document_id": document_id, "reason": e.reason}},
            )
            notices.append(_notice(
                WarningType.storage_unavailable,
                "Snapshot history is temporarily unavailable; comparison was skipped.",
            ))
            history = None

        baseline = select_baseline(history, current) if history else None
        ctx = DetectionContext(
            config=config,
            settings=doc_settings,
            history=tuple(history or ()),
            published_at=published_at,
            now=now,
        )
        warnings = run_pipeline(current, baseline, ctx, self.detectors)
        warnings = self._without_acknowledged(document_id, current, warnings, persist=persist)

        status = RegressionStatus(
            has_baseline=baseline is not None,
            warnings=notices + warnings,
            current=current,
            baseline=baseline,
        )
        if persist and history is not None:
            self._cache(document_id, status)
        logger.info(
            "Document evaluated",
            extra={"extra": {
                "document_id": document_id,
                "has_baseline": status.has_baseline,
                "warnings": len(status.warnings),
                "persist": persist,
            }},
        )
        return status

    def preview(
        self,
        document_id: str,
        raw_markup: Optional[str],
        config: DetectionConfig,
        doc_settings: Optional[DocumentSettings] = None,
        *,
        published_at: Optional[datetime] = None,
    ) -> RegressionStatus:
        return self.evaluate(
            document_id, raw_markup, config, doc_settings,
            published_at=published_at, persist=False,
        )

    # -----------------------
    # Acknowledgements / cache
    # -----------------------
    def _without_acknowledged(
        self,
        document_id: str,
        current: Metrics,
        warnings: List[RegressionWarning],
        *,
        persist: bool,
    ) -> List[RegressionWarning]:
        try:
            with self._session_factory() as db:
                ack = crud.get_acknowledgement(db, document_id)
                if ack is None:
                    return warnings
                if ack.content_hash != current.content_hash:
                    # content changed: accepted warnings may surface again
                    if persist:
                        crud.clear_acknowledgement(db, document_id)
                    return warnings
        except SQLAlchemyError as e:
            logger.warning(
                "Could not read acknowledgements: %s", e,
                extra={"extra": {"document_id": document_id}},
            )
            return warnings
        return [w for w in warnings if w.type.value not in ack.warning_types]

    def _cache(self, document_id: str, status: RegressionStatus) -> None:
        try:
            with self._session_factory() as db:
                crud.save_evaluation(
                    db,
                    document_id,
                    content_hash=status.current.content_hash if status.current else None,
                    status=serialize_status(status),
                )
        except SQLAlchemyError as e:
            logger.warning(
                "Could not cache evaluation: %s", e,
                extra={"extra": {"document_id": document_id}},
            )

    def cached_status(self, document_id: str) -> Optional[Dict[str, Any]]:
        """Most recent evaluation as JSON, with accepted warnings removed."""
        with self._session_factory() as db:
            row = crud.get_evaluation(db, document_id)
            if row is None:
                return None
            status = dict(row.status)
            status["evaluated_at"] = row.evaluated_at.isoformat() if row.evaluated_at else None
            ack = crud.get_acknowledgement(db, document_id)
        if ack is not None and ack.content_hash == row.content_hash:
            status["warnings"] = filter_acknowledged(status.get("warnings", []), ack.warning_types)
            status["acknowledged"] = list(ack.warning_types)
        return status

    def mark_intentional(
        self, document_id: str, *, content_hash: str, warning_types: Iterable[str]
    ) -> List[str]:
        """Accept the given warnings for this exact content version; history is kept."""
        internal = {t.value for t in INTERNAL_NOTICES}
        accepted = sorted({t for t in warning_types if t not in internal})
        with self._session_factory() as db:
            crud.save_acknowledgement(db, document_id, content_hash=content_hash, warning_types=accepted)
        logger.info(
            "Warnings marked intentional",
            extra={"extra": {"document_id": document_id, "types": accepted}},
        )
        return accepted

    def reset_baseline(self, document_id: str) -> int:
        removed = self.store.reset(document_id)
        with self._session_factory() as db:
            crud.clear_evaluation(db, document_id)
            crud.clear_acknowledgement(db, document_id)
        return removed

    # -----------------------
    # Batch
    # -----------------------
    def run_detection_now(
        self,
        document_ids: Iterable[str],
        load: DocumentLoader,
        config: DetectionConfig,
        *,
        max_workers: int = 4,
        cancel: Optional[threading.Event] = None,
    ) -> BatchResult:
        """
        Evaluate every id once on a bounded pool; return how many produced
        at least one regression warning.
        """
        ids = list(dict.fromkeys(document_ids))
        cancel = cancel or threading.Event()

        def _one(document_id: str) -> Optional[bool]:
            if cancel.is_set():
                return None
            doc = load(document_id)
            if doc is None:
                raise DocumentNotFound(document_id)
            status = self.evaluate(
                document_id, doc.raw_markup, config, doc.settings,
                published_at=doc.published_at,
            )
            if status.storage_failed:
                raise StorageUnavailable(document_id, "history read/write failed")
            return bool(status.regressions)

        count = processed = failed = 0
        with ThreadPoolExecutor(max_workers=max(1, max_workers)) as ex:
            futures = {ex.submit(_one, doc_id): doc_id for doc_id in ids}
            for fut in as_completed(futures):
                doc_id = futures[fut]
                try:
                    flagged = fut.result()
                except Exception:
                    failed += 1
                    logger.exception(
                        "Detection failed for document",
                        extra={"extra": {"document_id": doc_id}},
                    )
                    continue
                if flagged is None:
                    continue
                processed += 1
                if flagged:
                    count += 1

        result = BatchResult(count=count, processed=processed, failed=failed, cancelled=cancel.is_set())
        logger.info(
            "Detection run finished",
            extra={"extra": {
                "documents": len(ids),
                "count": count,
                "processed": processed,
                "failed": failed,
                "cancelled": result.cancelled,
            }},
        )
        return result
