#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
main.py — FastAPI application factory for the Content Integrity service.

Run:
  uvicorn content_integrity.main:create_app --factory --reload

What this does:
  - Builds Settings, the DB engine/session factory, the SnapshotStore and the
    RegressionEvaluator, and hangs them on app.state.
  - Mounts the documents, regression and admin routers.
  - Installs JSON logging and the optional detection scheduler at start-up;
    signals running batch jobs to stop at shutdown.
"""

from __future__ import annotations

import threading
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from content_integrity.core.errors import DocumentNotFound
from content_integrity.core.logging import setup_json_logging
from content_integrity.core.settings import Settings, get_settings
from content_integrity.db.session import get_db, make_engine, make_session_factory
from content_integrity.routers import admin, documents, regression
from content_integrity.services.evaluator import RegressionEvaluator
from content_integrity.services.snapshot_store import SnapshotStore
from content_integrity.tasks.schedule import start_scheduler, stop_scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_json_logging(app.state.settings.log_level.value)
    start_scheduler(app.state)
    yield
    # let in-flight batch runs stop between documents
    app.state.shutdown_event.set()
    stop_scheduler()
    app.state.engine.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Detect structural content regressions (links, length, headings) across document saves.",
        lifespan=lifespan,
    )

    engine = make_engine(settings.database_url, timeout=settings.storage_timeout_seconds)
    session_factory = make_session_factory(engine, auto_create=settings.db_auto_create)
    config = settings.detection_config()
    store = SnapshotStore(
        session_factory,
        capacity=config.snapshot_rolling_count,
        timeout=settings.storage_timeout_seconds,
    )

    app.state.settings = settings
    app.state.detection_config = config
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.evaluator = RegressionEvaluator(store, session_factory)
    app.state.shutdown_event = threading.Event()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins or ["*"],  # be strict in prod
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DocumentNotFound)
    async def document_not_found(request: Request, exc: DocumentNotFound):
        return JSONResponse(status_code=404, content={"detail": exc.message})

    app.include_router(documents.router)
    app.include_router(regression.router)
    app.include_router(admin.router)

    @app.get("/", include_in_schema=False)
    def root():
        return RedirectResponse(url="/docs", status_code=302)

    @app.get("/healthz", tags=["meta"])
    def healthz():
        return {"ok": True, "app": settings.app_name, "version": settings.app_version}

    @app.get("/ready", tags=["meta"])
    def ready(db: Session = Depends(get_db)):
        db.execute(text("SELECT 1"))
        return {"ready": True}

    return app
