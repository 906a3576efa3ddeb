"""Public project catalogue."""

from fastapi import APIRouter, Depends

from sunyield.models import ProjectStatus
from sunyield.sandbox.api.deps import get_platform
from sunyield.sandbox.state import PlatformState

router = APIRouter(prefix="/api/projects", tags=["projects"])


@router.get("/active")
async def active_projects(platform: PlatformState = Depends(get_platform)) -> list[dict]:  # noqa: B008
    return [
        p.to_api() for p in platform.projects.values() if p.status == ProjectStatus.ACTIVE
    ]


@router.get("/{project_id}")
async def get_project(
    project_id: int,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    return platform.get_project(project_id).to_api()
