#!/usr/bin/env python3
"""
documents.py — Host-side document routes, including the save hook.

Place at: content_integrity/routers/documents.py
Mount via: FastAPI(include_router(documents.router)).

What this does:
  - GET  /documents               list documents (filters: doc_type, status)
  - GET  /documents/{id}          fetch one document
  - POST /documents               create or update a document by id
  - PUT  /documents/{id}          save content for a document

  Saving persists the content first, then (for eligible documents: module
  enabled, type enabled, status "publish") evaluates it synchronously and
  returns the RegressionStatus next to the document.

Common examples:
  curl -X PUT "http://127.0.0.1:8000/documents/42" \
       -H "Content-Type: application/json" \
       -d '{"content": "<h1>Title</h1><p>Body with a <a href=\"/about\">link</a></p>"}'
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from content_integrity.core.config import DetectionConfig
from content_integrity.core.errors import DocumentNotFound
from content_integrity.db import crud
from content_integrity.db.session import get_db
from content_integrity.dependencies import get_detection_config, get_evaluator
from content_integrity.schemas import (
    DocumentCreate,
    DocumentOut,
    DocumentSave,
    DocumentSaveOut,
    RegressionStatusOut,
)
from content_integrity.services.evaluator import RegressionEvaluator

router = APIRouter(prefix="/documents", tags=["documents"])


def _save(
    document_id: str,
    payload: DocumentSave,
    db: Session,
    evaluator: RegressionEvaluator,
    config: DetectionConfig,
) -> DocumentSaveOut:
    doc = crud.upsert_document(
        db,
        document_id,
        content=payload.content,
        title=payload.title,
        url=payload.url,
        doc_type=payload.doc_type,
        status=payload.status,
        published_at=payload.published_at,
    )
    regression = None
    if crud.is_eligible(doc, config):
        status = evaluator.evaluate(
            doc.id,
            doc.content,
            config,
            crud.get_document_settings(db, doc.id),
            published_at=doc.published_at,
        )
        regression = RegressionStatusOut.model_validate(status)
    return DocumentSaveOut(document=DocumentOut.model_validate(doc), regression=regression)


@router.get("", response_model=list[DocumentOut])
def list_documents(
    doc_type: str | None = None,
    status: str | None = None,
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    """List documents with optional filters and pagination."""
    return crud.list_documents(db, doc_type=doc_type, status=status,
                               limit=min(limit, 200), offset=offset)


@router.get("/{document_id}", response_model=DocumentOut)
def get_document(document_id: str, db: Session = Depends(get_db)):
    doc = crud.get_document(db, document_id)
    if doc is None:
        raise DocumentNotFound(document_id)
    return doc


@router.post("", response_model=DocumentSaveOut)
def create_document(
    payload: DocumentCreate,
    db: Session = Depends(get_db),
    evaluator: RegressionEvaluator = Depends(get_evaluator),
    config: DetectionConfig = Depends(get_detection_config),
):
    """Create or update a document (idempotent by id)."""
    return _save(payload.id, payload, db, evaluator, config)


@router.put("/{document_id}", response_model=DocumentSaveOut)
def save_document(
    document_id: str,
    payload: DocumentSave,
    db: Session = Depends(get_db),
    evaluator: RegressionEvaluator = Depends(get_evaluator),
    config: DetectionConfig = Depends(get_detection_config),
):
    """Save content; eligible documents are evaluated for regressions."""
    return _save(document_id, payload, db, evaluator, config)
