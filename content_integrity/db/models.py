#!/usr/bin/env python3
"""
models.py — SQLAlchemy ORM models for documents, snapshots, and regression state.

Place at: content_integrity/db/models.py
Run from the repo root (folder that contains content_integrity/).

What this does:
  - Defines the relational schema using SQLAlchemy declarative mappings:
      • Document: host content unit (page, post, ...) saved through the API
      • ContentSnapshot: one structural Metrics row per save event (rolling window)
      • DocumentRegressionSettings: per-document overrides (opt-out, short-form)
      • RegressionAcknowledgement: warnings accepted for one content hash
      • RegressionEvaluation: cached latest RegressionStatus per document
  - Adds indexes for the history lookups (document_id, taken_at).

Common examples:
  # Create tables (dev):
  from sqlalchemy import create_engine
  from content_integrity.db.models import Base
  engine = create_engine("sqlite:///content_integrity.db")
  Base.metadata.create_all(engine)
"""

from __future__ import annotations

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Text,
    JSON,
    Boolean,
    Index,
)
from sqlalchemy.orm import declarative_base

from content_integrity.core.models import utcnow

Base = declarative_base()


class Document(Base):
    __tablename__ = "documents"

    id = Column(String(64), primary_key=True)
    title = Column(String(1024), nullable=False, default="(untitled)")
    url = Column(String(2048), nullable=True)
    doc_type = Column(String(32), nullable=False, default="post")  # "post" | "page" | ...
    status = Column(String(16), nullable=False, default="publish")  # "draft" | "publish"
    content = Column(Text, nullable=True)
    published_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_documents_type_status", "doc_type", "status"),
    )


class ContentSnapshot(Base):
    __tablename__ = "content_snapshots"

    id = Column(Integer, primary_key=True)
    document_id = Column(String(64), nullable=False)
    taken_at = Column(DateTime, nullable=False)
    word_count = Column(Integer, nullable=False, default=0)
    internal_link_count = Column(Integer, nullable=False, default=0)
    external_link_count = Column(Integer, nullable=False, default=0)
    heading_outline = Column(JSON, nullable=False, default=list)  # e.g. [1, 2, 2, 3]
    content_hash = Column(String(64), nullable=False)
    analysis_failed = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_content_snapshots_doc_taken", "document_id", "taken_at"),
    )


class DocumentRegressionSettings(Base):
    __tablename__ = "document_regression_settings"

    document_id = Column(String(64), primary_key=True)
    detection_disabled = Column(Boolean, nullable=False, default=False)
    is_short_form = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class RegressionAcknowledgement(Base):
    __tablename__ = "regression_acknowledgements"

    document_id = Column(String(64), primary_key=True)
    content_hash = Column(String(64), nullable=False)
    warning_types = Column(JSON, nullable=False, default=list)
    acknowledged_at = Column(DateTime, default=utcnow, nullable=False)


class RegressionEvaluation(Base):
    __tablename__ = "regression_evaluations"

    document_id = Column(String(64), primary_key=True)
    content_hash = Column(String(64), nullable=True)
    status = Column(JSON, nullable=False)  # serialized RegressionStatusOut
    evaluated_at = Column(DateTime, default=utcnow, nullable=False)
