from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from crashround import __version__
from crashround.core.config.settings import settings

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """
    Side-effect free liveness check.
    """

    status: str
    environment: str
    version: str


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
def health() -> HealthResponse:
    return HealthResponse(
        status="ok",
        environment=settings.env,
        version=__version__,
    )
