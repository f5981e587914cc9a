#!/usr/bin/env python3
"""
crud.py — Database helpers for documents, per-document settings, and regression state.

Place at: content_integrity/db/crud.py
Run from the repo root (folder that contains content_integrity/).

What this does:
  - Provides thin, typed helpers around the SQLAlchemy ORM for:
      • Documents: get, list, upsert, eligible ids for batch runs
      • DocumentRegressionSettings: the per-document settings repository
      • RegressionAcknowledgement: accepted warnings per content hash
      • RegressionEvaluation: cached latest status per document
  - Commits inside write helpers so callers see predictable side effects.

Prereqs:
  - A Session injected by the caller (FastAPI dependency or sessionmaker).

Common examples:

  # Persist per-document overrides (partial update)
  crud.update_document_settings(db, "42", is_short_form=True)

  # Documents a batch run should cover
  ids = crud.eligible_document_ids(db, config)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from content_integrity.core.config import DetectionConfig
from content_integrity.core.models import (
    Acknowledgement,
    DocumentSettings,
    as_naive_utc,
    utcnow,
)
from .models import (
    Document,
    DocumentRegressionSettings,
    RegressionAcknowledgement,
    RegressionEvaluation,
)

PUBLISHED = "publish"


# --- Documents ---
def get_document(db: Session, document_id: str) -> Optional[Document]:
    return db.get(Document, document_id)


def list_documents(
    db: Session,
    *,
    doc_type: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Document]:
    stmt = select(Document).order_by(Document.updated_at.desc(), Document.id.asc())
    if doc_type:
        stmt = stmt.where(Document.doc_type == doc_type)
    if status:
        stmt = stmt.where(Document.status == status)
    stmt = stmt.limit(limit).offset(offset)
    return list(db.execute(stmt).scalars().all())


def upsert_document(
    db: Session,
    document_id: str,
    *,
    content: Optional[str] = None,
    title: Optional[str] = None,
    url: Optional[str] = None,
    doc_type: Optional[str] = None,
    status: Optional[str] = None,
    published_at: Optional[datetime] = None,
) -> Document:
    doc = db.get(Document, document_id)
    if doc is None:
        doc = Document(id=document_id, title=title or "(untitled)", doc_type=doc_type or "post",
                       status=status or PUBLISHED)
    if content is not None:
        doc.content = content
    if title:
        doc.title = title
    if url is not None:
        doc.url = url
    if doc_type:
        doc.doc_type = doc_type
    if status:
        doc.status = status
    if published_at is not None:
        doc.published_at = as_naive_utc(published_at)
    if doc.status == PUBLISHED and doc.published_at is None:
        doc.published_at = utcnow()
    doc.updated_at = utcnow()
    db.add(doc); db.commit(); db.refresh(doc)
    return doc


def is_eligible(doc: Document, config: DetectionConfig) -> bool:
    return config.enabled and config.accepts_type(doc.doc_type) and doc.status == PUBLISHED


def eligible_document_ids(db: Session, config: DetectionConfig) -> List[str]:
    if not config.enabled or not config.document_types:
        return []
    stmt = (
        select(Document.id)
        .where(Document.doc_type.in_(config.document_types))
        .where(Document.status == PUBLISHED)
        .order_by(Document.id.asc())
    )
    return list(db.execute(stmt).scalars().all())


# --- Per-document settings repository ---
def get_document_settings(db: Session, document_id: str) -> DocumentSettings:
    row = db.get(DocumentRegressionSettings, document_id)
    if row is None:
        return DocumentSettings()
    return DocumentSettings(
        detection_disabled=bool(row.detection_disabled),
        is_short_form=bool(row.is_short_form),
    )


def update_document_settings(
    db: Session,
    document_id: str,
    *,
    detection_disabled: Optional[bool] = None,
    is_short_form: Optional[bool] = None,
) -> DocumentSettings:
    """Merge the given flags into the stored settings; None leaves a flag unchanged."""
    row = db.get(DocumentRegressionSettings, document_id)
    if row is None:
        row = DocumentRegressionSettings(document_id=document_id, detection_disabled=False,
                                         is_short_form=False)
    if detection_disabled is not None:
        row.detection_disabled = bool(detection_disabled)
    if is_short_form is not None:
        row.is_short_form = bool(is_short_form)
    row.updated_at = utcnow()
    db.add(row); db.commit()
    return get_document_settings(db, document_id)


# --- Acknowledgements ---
def get_acknowledgement(db: Session, document_id: str) -> Optional[Acknowledgement]:
    row = db.get(RegressionAcknowledgement, document_id)
    if row is None:
        return None
    return Acknowledgement(
        document_id=row.document_id,
        content_hash=row.content_hash,
        warning_types=tuple(row.warning_types or ()),
        acknowledged_at=row.acknowledged_at,
    )


def save_acknowledgement(
    db: Session, document_id: str, *, content_hash: str, warning_types: Sequence[str]
) -> Acknowledgement:
    row = db.get(RegressionAcknowledgement, document_id)
    if row is None:
        row = RegressionAcknowledgement(document_id=document_id)
    row.content_hash = content_hash
    row.warning_types = sorted(set(warning_types))
    row.acknowledged_at = utcnow()
    db.add(row); db.commit()
    return get_acknowledgement(db, document_id)


def clear_acknowledgement(db: Session, document_id: str) -> None:
    db.execute(delete(RegressionAcknowledgement).where(RegressionAcknowledgement.document_id == document_id))
    db.commit()


# --- Evaluation cache ---
def get_evaluation(db: Session, document_id: str) -> Optional[RegressionEvaluation]:
    return db.get(RegressionEvaluation, document_id)


def save_evaluation(
    db: Session, document_id: str, *, content_hash: Optional[str], status: Dict[str, Any]
) -> RegressionEvaluation:
    row = db.get(RegressionEvaluation, document_id)
    if row is None:
        row = RegressionEvaluation(document_id=document_id)
    row.content_hash = content_hash
    row.status = status
    row.evaluated_at = utcnow()
    db.add(row); db.commit()
    return row


def clear_evaluation(db: Session, document_id: str) -> None:
    db.execute(delete(RegressionEvaluation).where(RegressionEvaluation.document_id == document_id))
    db.commit()


def list_evaluations(db: Session, document_ids: Sequence[str]) -> List[RegressionEvaluation]:
    if not document_ids:
        return []
    stmt = select(RegressionEvaluation).where(RegressionEvaluation.document_id.in_(list(document_ids)))
    return list(db.execute(stmt).scalars().all())


# --- Loader for batch runs ---
@dataclass(frozen=True)
class DocumentInput:
    document_id: str
    raw_markup: str
    settings: DocumentSettings
    published_at: Optional[datetime]


def document_loader(session_factory: sessionmaker) -> Callable[[str], Optional[DocumentInput]]:
    """Return a thread-safe loader that opens its own session per document."""

    def load(document_id: str) -> Optional[DocumentInput]:
        with session_factory() as db:
            doc = get_document(db, document_id)
            if doc is None:
                return None
            return DocumentInput(
                document_id=doc.id,
                raw_markup=doc.content or "",
                settings=get_document_settings(db, doc.id),
                published_at=doc.published_at,
            )

    return load
