"""Liveness endpoint."""

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request) -> dict:
    config = request.app.state.config
    return {"status": "healthy", "service": config.app_name, "version": config.app_version}
