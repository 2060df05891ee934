"""
Health check endpoints
"""

from datetime import datetime, timezone

from fastapi import APIRouter

from submission_gateway.config import settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """Simple API health check."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": settings.APP_NAME,
        "repository": f"{settings.REPO_OWNER}/{settings.REPO_NAME}",
        "baseBranch": settings.BASE_BRANCH,
        "botTokenConfigured": bool(settings.GITHUB_TOKEN),
    }
