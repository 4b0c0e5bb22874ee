from fastapi import APIRouter
from ..config import settings

router = APIRouter(tags=["health"])

@router.get("/health")
def health():
    # Liveness only; GitHub is not contacted without a caller credential.
    return {
        "status": "ok",
        "service": "gh-cms-server",
        "github_api": str(settings.github_api_base_url),
        "github_api_version": settings.github_api_version,
    }
