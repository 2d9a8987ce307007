from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from portfolio_backend.config import get_settings
from portfolio_backend.errors import StorageError
from portfolio_backend.models.schemas import LogsResponse, StorageResponse
from portfolio_backend.services.app_log import AppLogWriter, get_app_log
from portfolio_backend.services.storage_info import get_storage_info

router = APIRouter(prefix="/api", tags=["storage"])


@router.get("/storage", response_model=StorageResponse)
async def storage() -> StorageResponse:
    settings = get_settings()
    try:
        directories = await get_storage_info({"data": settings.data_path, "logs": settings.log_path})
    except StorageError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return StorageResponse(data=directories)


@router.get("/logs", response_model=LogsResponse)
async def logs(
    lines: int = Query(default=100, ge=1, le=1000),
    app_log: AppLogWriter = Depends(get_app_log),
) -> LogsResponse:
    try:
        path, entries = await app_log.tail(lines)
    except StorageError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return LogsResponse(data=entries, count=len(entries), file=path.name if path else None)
