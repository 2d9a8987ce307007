from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from portfolio_backend.errors import InvalidKeyError, NotFoundError, StorageError
from portfolio_backend.models.schemas import DataResponse, DataSavedResponse, DataSaveRequest
from portfolio_backend.services.app_log import AppLogWriter, get_app_log
from portfolio_backend.services.kv_store import KeyValueStore, get_kv_store

router = APIRouter(prefix="/api/data", tags=["data"])


@router.post("/save", response_model=DataSavedResponse)
async def save_data(
    payload: DataSaveRequest,
    kv: KeyValueStore = Depends(get_kv_store),
    app_log: AppLogWriter = Depends(get_app_log),
) -> DataSavedResponse:
    try:
        path = await kv.put(payload.key, payload.value)
    except InvalidKeyError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except StorageError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    await app_log.append("info", "Data saved", {"key": payload.key})
    return DataSavedResponse(message=f"Data saved to {path}")


@router.get("/{key}", response_model=DataResponse)
async def get_data(key: str, kv: KeyValueStore = Depends(get_kv_store)) -> DataResponse:
    try:
        value = await kv.get(key)
    except InvalidKeyError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except StorageError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return DataResponse(data=value)
