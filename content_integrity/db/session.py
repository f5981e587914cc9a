from __future__ import annotations

import logging

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .models import Base

logger = logging.getLogger(__name__)


def make_engine(database_url: str, *, timeout: float = 5.0) -> Engine:
    # sqlite "timeout" is the busy wait before "database is locked"
    connect_args = (
        {"check_same_thread": False, "timeout": timeout}
        if database_url.startswith("sqlite")
        else {}
    )
    return create_engine(database_url, connect_args=connect_args)


def make_session_factory(engine: Engine, *, auto_create: bool = True) -> sessionmaker:
    if auto_create:
        try:
            Base.metadata.create_all(bind=engine)
        except Exception as e:
            # Don't crash in prod if something goes wrong
            logger.error("Skipped auto-create tables: %s", e)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


# FastAPI dependency
def get_db(request: Request):
    db: Session = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
