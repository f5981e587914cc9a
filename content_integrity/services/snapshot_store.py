#!/usr/bin/env python3
"""
snapshot_store.py — Rolling, bounded history of Metrics per document.

Place at: content_integrity/services/snapshot_store.py
Run from: your app context (constructed once per process with a sessionmaker).

What this does:
  - Appends Metrics rows to content_snapshots and evicts the oldest rows
    (FIFO) once a document holds more than `capacity` snapshots.
  - Skips appends whose content_hash equals the most recent snapshot's hash.
  - Keeps timestamps strictly increasing per document.
  - Serializes every mutation per document_id with an in-process lock;
    other documents are never blocked.
  - Maps lock timeouts and SQLAlchemy errors to StorageUnavailable.

Key methods:
  - append(document_id, metrics) -> bool          # False when deduplicated
  - capture(document_id, metrics) -> (prior, current)
  - history(document_id) -> list[Metrics]
  - reset(document_id) -> int                     # rows removed

Examples (pseudo-usage):
  store = SnapshotStore(SessionLocal, capacity=5, timeout=5.0)
  prior, current = store.capture("42", metrics)
  baseline = select_baseline(prior, current)
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import timedelta
from typing import Dict, Iterator, List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from content_integrity.core.errors import StorageUnavailable
from content_integrity.core.models import Metrics
from content_integrity.db.models import ContentSnapshot

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 5


def _to_metrics(row: ContentSnapshot) -> Metrics:
    return Metrics(
        document_id=row.document_id,
        timestamp=row.taken_at,
        word_count=row.word_count,
        internal_link_count=row.internal_link_count,
        heading_outline=tuple(int(level) for level in (row.heading_outline or [])),
        content_hash=row.content_hash,
        external_link_count=row.external_link_count,
        analysis_failed=bool(row.analysis_failed),
    )


def _to_row(metrics: Metrics) -> ContentSnapshot:
    return ContentSnapshot(
        document_id=metrics.document_id,
        taken_at=metrics.timestamp,
        word_count=metrics.word_count,
        internal_link_count=metrics.internal_link_count,
        external_link_count=metrics.external_link_count,
        heading_outline=list(metrics.heading_outline),
        content_hash=metrics.content_hash,
        analysis_failed=metrics.analysis_failed,
    )


class SnapshotStore:
    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        capacity: int = DEFAULT_CAPACITY,
        timeout: float = 5.0,
    ):
        self._session_factory = session_factory
        self.capacity = max(1, int(capacity))
        self.timeout = timeout
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # -----------------------
    # Plumbing
    # -----------------------
    def _lock_for(self, document_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(document_id)
            if lock is None:
                lock = self._locks[document_id] = threading.Lock()
            return lock

    @contextmanager
    def locked(self, document_id: str) -> Iterator[None]:
        """Per-document mutual exclusion, bounded by the storage timeout."""
        lock = self._lock_for(document_id)
        if not lock.acquire(timeout=self.timeout):
            raise StorageUnavailable(document_id, f"lock not acquired within {self.timeout}s")
        try:
            yield
        finally:
            lock.release()

    @contextmanager
    def _session(self, document_id: str) -> Iterator[Session]:
        db: Session = self._session_factory()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageUnavailable(document_id, f"{type(e).__name__}: {e}") from e
        finally:
            db.close()

    def _rows(self, db: Session, document_id: str) -> List[ContentSnapshot]:
        stmt = (
            select(ContentSnapshot)
            .where(ContentSnapshot.document_id == document_id)
            .order_by(ContentSnapshot.taken_at.asc(), ContentSnapshot.id.asc())
        )
        return list(db.execute(stmt).scalars().all())

    def _insert(
        self, db: Session, rows: List[ContentSnapshot], metrics: Metrics, capacity: int
    ) -> Metrics:
        if rows and metrics.timestamp <= rows[-1].taken_at:
            metrics = replace(metrics, timestamp=rows[-1].taken_at + timedelta(microseconds=1))
        db.add(_to_row(metrics))

        overflow = len(rows) + 1 - capacity
        if overflow > 0:
            evicted = [r.id for r in rows[:overflow]]
            db.execute(delete(ContentSnapshot).where(ContentSnapshot.id.in_(evicted)))
            logger.debug(
                "Evicted snapshots",
                extra={"extra": {"document_id": metrics.document_id, "evicted": len(evicted)}},
            )
        return metrics

    def _check_owner(self, document_id: str, metrics: Metrics) -> None:
        if metrics.document_id != document_id:
            raise ValueError(
                f"Metrics belong to {metrics.document_id!r}, not {document_id!r}"
            )

    # -----------------------
    # Public API
    # -----------------------
    def history(self, document_id: str) -> List[Metrics]:
        """Oldest-first snapshots for one document (possibly empty)."""
        with self._session(document_id) as db:
            return [_to_metrics(r) for r in self._rows(db, document_id)]

    def latest(self, document_id: str) -> Optional[Metrics]:
        rows = self.history(document_id)
        return rows[-1] if rows else None

    def count(self, document_id: str) -> int:
        with self._session(document_id) as db:
            stmt = select(func.count(ContentSnapshot.id)).where(
                ContentSnapshot.document_id == document_id
            )
            return int(db.execute(stmt).scalar() or 0)

    def append(self, document_id: str, metrics: Metrics, *, capacity: Optional[int] = None) -> bool:
        """
        Insert at the end of history, evicting the oldest beyond capacity.
        Returns False (no-op) when the hash equals the latest snapshot's hash.
        """
        self._check_owner(document_id, metrics)
        capacity = max(1, capacity or self.capacity)
        with self.locked(document_id), self._session(document_id) as db:
            rows = self._rows(db, document_id)
            if rows and rows[-1].content_hash == metrics.content_hash:
                return False
            self._insert(db, rows, metrics, capacity)
            return True

    def capture(
        self, document_id: str, metrics: Metrics, *, capacity: Optional[int] = None
    ) -> Tuple[List[Metrics], Metrics]:
        """
        Atomically read the history and append `metrics`.

        Returns (prior, current): `prior` is the history as it stood before this
        content version was stored; `current` is the stored snapshot. When the
        content hash matches the latest snapshot nothing is written, and that
        snapshot is treated as `current` (so it is excluded from `prior`).
        """
        self._check_owner(document_id, metrics)
        capacity = max(1, capacity or self.capacity)
        with self.locked(document_id), self._session(document_id) as db:
            rows = self._rows(db, document_id)
            if rows and rows[-1].content_hash == metrics.content_hash:
                return [_to_metrics(r) for r in rows[:-1]], _to_metrics(rows[-1])
            prior = [_to_metrics(r) for r in rows]
            stored = self._insert(db, rows, metrics, capacity)
            return prior, stored

    def reset(self, document_id: str) -> int:
        """Clear all history for one document."""
        with self.locked(document_id), self._session(document_id) as db:
            result = db.execute(
                delete(ContentSnapshot).where(ContentSnapshot.document_id == document_id)
            )
            removed = result.rowcount or 0
        logger.info(
            "Snapshot history reset",
            extra={"extra": {"document_id": document_id, "removed": removed}},
        )
        return removed
