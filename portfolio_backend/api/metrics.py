from __future__ import annotations

import structlog
from fastapi import APIRouter
from fastapi.responses import PlainTextResponse, Response

from portfolio_backend.observability.metrics import get_metrics

router = APIRouter(tags=["metrics"])


@router.get("/metrics")
async def metrics() -> Response:
    try:
        content_type, body = get_metrics().render()
    except Exception as exc:  # noqa: BLE001 - a failed scrape must not take the process down
        structlog.get_logger("metrics").exception("metrics_render_failed")
        return PlainTextResponse(str(exc) or "metrics unavailable", status_code=500)
    return Response(content=body, media_type=content_type)
