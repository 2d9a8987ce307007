from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from portfolio_backend.errors import ConflictError, NotFoundError, StorageError
from portfolio_backend.models.schemas import ProjectCreate, ProjectResponse, ProjectsResponse
from portfolio_backend.services.portfolio_store import PortfolioStore, get_store

router = APIRouter(prefix="/api", tags=["projects"])


@router.get("/projects", response_model=ProjectsResponse)
async def list_projects(store: PortfolioStore = Depends(get_store)) -> ProjectsResponse:
    projects = store.list_projects()
    return ProjectsResponse(data=projects, count=len(projects))


@router.get("/projects/{id}", response_model=ProjectResponse)
async def get_project(id: int, store: PortfolioStore = Depends(get_store)) -> ProjectResponse:
    try:
        project = store.get_project(id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return ProjectResponse(data=project)


@router.post("/projects", response_model=ProjectResponse, status_code=201)
async def create_project(payload: ProjectCreate, store: PortfolioStore = Depends(get_store)) -> ProjectResponse:
    try:
        project = await store.add_project(payload)
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except StorageError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return ProjectResponse(data=project)
