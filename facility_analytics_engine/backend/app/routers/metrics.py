# backend/app/routers/metrics.py
from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from ..config import settings
from ..services.runtime_metrics import METRICS

router = APIRouter(prefix="/metrics", tags=["ops"])

_PREFIX = "facility_analytics_"


def _metric_name(key: str) -> str:
    return _PREFIX + key.replace(".", "_").replace("-", "_") + "_total"


@router.get("", response_class=PlainTextResponse)
def metrics():
    """Process-local counters in Prometheus exposition format."""
    lines = [f'{_PREFIX}engine_info{{engine_version="{settings.engine_version}"}} 1']
    for key, value in METRICS.snapshot().items():
        name = _metric_name(key)
        lines.append(f"# TYPE {name} counter")
        lines.append(f"{name} {value}")
    return "\n".join(lines) + "\n"
