# content_integrity/dependencies.py
"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, Request

from content_integrity.core.config import DetectionConfig
from content_integrity.core.settings import Settings
from content_integrity.services.evaluator import RegressionEvaluator


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_detection_config(request: Request) -> DetectionConfig:
    return request.app.state.detection_config


def get_evaluator(request: Request) -> RegressionEvaluator:
    return request.app.state.evaluator


def require_admin(request: Request, x_api_key: Optional[str] = Header(default=None)) -> None:
    """X-API-Key guard. Without a configured key only non-production envs are open."""
    settings: Settings = request.app.state.settings
    expected = settings.api_key
    if not expected:
        if settings.is_prod:
            raise HTTPException(status_code=403, detail="Admin API key is not configured")
        return
    if x_api_key != expected:
        raise HTTPException(status_code=401, detail="Invalid or missing X-API-Key")
