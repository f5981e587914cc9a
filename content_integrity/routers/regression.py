#!/usr/bin/env python3
"""
regression.py — FastAPI routes the editing UI uses to read and act on regression status.

Place at: content_integrity/routers/regression.py
Mount via: FastAPI(include_router(regression.router)).

What this does:
  - GET  /regression
      Warning counts for every eligible document (cached evaluations only).
  - GET  /regression/{document_id}
      Latest cached RegressionStatus; if none is cached, a read-only
      evaluation of the stored content (no snapshot is appended).
  - POST /regression/{document_id}/mark-intentional
      Accept the current warnings until the content changes again.
  - POST /regression/{document_id}/reset-baseline
      Clear the snapshot history; the next save starts a fresh baseline.
  - POST /regression/{document_id}/settings
      Persist per-document overrides {detection_disabled?, is_short_form?}.

Common examples:
  curl "http://127.0.0.1:8000/regression/42"
  curl -X POST "http://127.0.0.1:8000/regression/42/mark-intentional"
  curl -X POST "http://127.0.0.1:8000/regression/42/settings" \
       -H "Content-Type: application/json" -d '{"is_short_form": true}'
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from content_integrity.core.config import DetectionConfig
from content_integrity.core.errors import DocumentNotFound, StorageUnavailable
from content_integrity.db import crud
from content_integrity.db.session import get_db
from content_integrity.dependencies import get_detection_config, get_evaluator
from content_integrity.schemas import (
    DocumentSettingsIn,
    DocumentSettingsOut,
    MarkIntentionalOut,
    RegressionStatusOut,
    ResetBaselineOut,
    SettingsUpdateOut,
    StatusSummaryOut,
    serialize_status,
)
from content_integrity.services.evaluator import RegressionEvaluator

router = APIRouter(prefix="/regression", tags=["regression"])


def _current_status(
    document_id: str,
    db: Session,
    evaluator: RegressionEvaluator,
    config: DetectionConfig,
) -> Dict[str, Any]:
    settings = crud.get_document_settings(db, document_id)
    if settings.detection_disabled:
        return RegressionStatusOut(has_baseline=False).model_dump(mode="json")

    cached = evaluator.cached_status(document_id)
    if cached is not None:
        return cached

    doc = crud.get_document(db, document_id)
    if doc is None:
        raise DocumentNotFound(document_id)
    status = evaluator.preview(
        document_id, doc.content, config, settings, published_at=doc.published_at
    )
    return serialize_status(status)


@router.get("", response_model=list[StatusSummaryOut])
def list_status(
    db: Session = Depends(get_db),
    evaluator: RegressionEvaluator = Depends(get_evaluator),
    config: DetectionConfig = Depends(get_detection_config),
):
    """Per-document warning counts for list views."""
    out = []
    for document_id in crud.eligible_document_ids(db, config):
        cached = evaluator.cached_status(document_id)
        if cached is None:
            continue
        out.append(
            StatusSummaryOut(
                document_id=document_id,
                has_baseline=cached.get("has_baseline", False),
                warnings=len(cached.get("warnings") or []),
                evaluated_at=cached.get("evaluated_at"),
            )
        )
    return out


@router.get("/{document_id}", response_model=RegressionStatusOut)
def get_status(
    document_id: str,
    db: Session = Depends(get_db),
    evaluator: RegressionEvaluator = Depends(get_evaluator),
    config: DetectionConfig = Depends(get_detection_config),
):
    """Current regression status without appending a snapshot."""
    return _current_status(document_id, db, evaluator, config)


@router.post("/{document_id}/mark-intentional", response_model=MarkIntentionalOut)
def mark_intentional(
    document_id: str,
    db: Session = Depends(get_db),
    evaluator: RegressionEvaluator = Depends(get_evaluator),
    config: DetectionConfig = Depends(get_detection_config),
):
    """Accept the current warnings; they stay hidden until the next content change."""
    status = _current_status(document_id, db, evaluator, config)
    current = status.get("current")
    if not current:
        return MarkIntentionalOut(success=True, suppressed=[])
    types = [w["type"] for w in status.get("warnings") or []]
    types += status.get("acknowledged") or []
    accepted = evaluator.mark_intentional(
        document_id, content_hash=current["content_hash"], warning_types=types
    )
    return MarkIntentionalOut(success=True, suppressed=accepted)


@router.post("/{document_id}/reset-baseline", response_model=ResetBaselineOut)
def reset_baseline(
    document_id: str,
    evaluator: RegressionEvaluator = Depends(get_evaluator),
):
    """Clear all snapshots for the document."""
    try:
        removed = evaluator.reset_baseline(document_id)
    except StorageUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return ResetBaselineOut(success=True, removed=removed)


@router.post("/{document_id}/settings", response_model=SettingsUpdateOut)
def update_settings(
    document_id: str,
    payload: DocumentSettingsIn,
    db: Session = Depends(get_db),
):
    """Merge per-document overrides; omitted fields keep their stored value."""
    settings = crud.update_document_settings(
        db,
        document_id,
        detection_disabled=payload.detection_disabled,
        is_short_form=payload.is_short_form,
    )
    # cached warnings were computed under the previous settings
    crud.clear_evaluation(db, document_id)
    return SettingsUpdateOut(
        success=True,
        settings=DocumentSettingsOut.model_validate(settings),
    )
