from __future__ import annotations

from fastapi import APIRouter, Depends

from portfolio_backend.config import get_settings
from portfolio_backend.models.schemas import RuntimeInfo, SkillsResponse, Stats, StatsResponse
from portfolio_backend.runtime import max_rss_kb, platform_name, python_version, uptime_seconds
from portfolio_backend.services.portfolio_store import PortfolioStore, get_store

router = APIRouter(prefix="/api", tags=["skills"])


@router.get("/skills", response_model=SkillsResponse)
async def list_skills(store: PortfolioStore = Depends(get_store)) -> SkillsResponse:
    skills = store.list_skills()
    return SkillsResponse(data=skills, count=len(skills))


@router.get("/stats", response_model=StatsResponse)
async def stats(store: PortfolioStore = Depends(get_store)) -> StatsResponse:
    settings = get_settings()
    projects = store.list_projects()
    skills = store.list_skills()
    return StatsResponse(
        data=Stats(
            total_projects=len(projects),
            featured_projects=sum(1 for p in projects if p.featured),
            total_skills=len(skills),
            categories=list(dict.fromkeys(s.category for s in skills)),
            uptime=uptime_seconds(),
            max_rss_kb=max_rss_kb(),
            runtime=RuntimeInfo(
                environment=settings.environment,
                python_version=python_version(),
                platform=platform_name(),
                hostname=settings.instance_id,
            ),
        )
    )
