#!/usr/bin/env python3
"""
admin.py — Admin-only routes.

Place at: content_integrity/routers/admin.py
Mount via: FastAPI(include_router(admin.router)).

What this does:
  - POST /run-detection
      Evaluate every eligible document now (bounded worker pool) and return
      how many produced at least one regression warning.

Security:
  - Requires X-API-Key when API_KEY is configured; production refuses the
    route when no key is configured.

Common examples:
  curl -X POST "http://127.0.0.1:8000/run-detection" -H "X-API-Key: $API_KEY"
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from content_integrity.core.config import DetectionConfig
from content_integrity.core.settings import Settings
from content_integrity.db import crud
from content_integrity.db.session import get_db
from content_integrity.dependencies import (
    get_app_settings,
    get_detection_config,
    get_evaluator,
    require_admin,
)
from content_integrity.schemas import RunDetectionOut
from content_integrity.services.evaluator import RegressionEvaluator

router = APIRouter(tags=["admin"], dependencies=[Depends(require_admin)])


@router.post("/run-detection", response_model=RunDetectionOut)
def run_detection(
    request: Request,
    db: Session = Depends(get_db),
    evaluator: RegressionEvaluator = Depends(get_evaluator),
    config: DetectionConfig = Depends(get_detection_config),
    settings: Settings = Depends(get_app_settings),
):
    """Run detection over all eligible documents."""
    ids = crud.eligible_document_ids(db, config)
    result = evaluator.run_detection_now(
        ids,
        crud.document_loader(request.app.state.session_factory),
        config,
        max_workers=settings.batch_max_workers,
        cancel=request.app.state.shutdown_event,
    )
    return RunDetectionOut(
        count=result.count,
        processed=result.processed,
        failed=result.failed,
        cancelled=result.cancelled,
    )
