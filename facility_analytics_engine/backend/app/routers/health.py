# backend/app/routers/health.py
from __future__ import annotations

from fastapi import APIRouter

from ..config import settings

router = APIRouter(tags=["meta"])


@router.get("/health", response_model=dict)
def health():
    return {"status": "ok", "engine_version": settings.engine_version}
