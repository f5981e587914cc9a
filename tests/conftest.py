"""
conftest.py — Shared fixtures for the Content Integrity test suite.

What this does:
  - `settings`: Settings pointing at a throwaway SQLite file under tmp_path.
  - `client`: FastAPI TestClient over create_app(settings), lifespan included.
  - `session_factory` / `store` / `evaluator`: engine-level objects with a
    controllable clock, for tests that don't need HTTP.
  - `make_metrics`: quick Metrics builder for detector tests.

Common examples:
  pytest -q
  pytest -q tests/test_detectors.py
"""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from content_integrity.core.config import DetectionConfig
from content_integrity.core.models import Metrics
from content_integrity.core.settings import AppEnv, Settings
from content_integrity.db.session import make_engine, make_session_factory
from content_integrity.main import create_app
from content_integrity.services.evaluator import RegressionEvaluator
from content_integrity.services.snapshot_store import SnapshotStore
from support import API_KEY

T0 = datetime(2024, 1, 1, 12, 0, 0)


class FakeClock:
    """Returns a fixed time that tests move forward explicitly."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        env=AppEnv.test,
        database_url=f"sqlite:///{tmp_path / 'content_integrity.db'}",
        api_key=API_KEY,
        site_url="https://example.com",
        detection_cron_hours=0,
        batch_max_workers=2,
    )


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture
def config():
    return DetectionConfig(site_url="https://example.com")


@pytest.fixture
def session_factory(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'engine.db'}", timeout=1.0)
    factory = make_session_factory(engine)
    yield factory
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return SnapshotStore(session_factory, capacity=5, timeout=0.2)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def evaluator(store, session_factory, clock):
    return RegressionEvaluator(store, session_factory, clock=clock)


@pytest.fixture
def make_metrics():
    def _make(
        document_id="doc-1",
        *,
        words=100,
        links=10,
        outline=(1, 2),
        content_hash="hash",
        timestamp=T0,
        failed=False,
    ) -> Metrics:
        return Metrics(
            document_id=document_id,
            timestamp=timestamp,
            word_count=words,
            internal_link_count=links,
            heading_outline=tuple(outline),
            content_hash=content_hash,
            analysis_failed=failed,
        )

    return _make
