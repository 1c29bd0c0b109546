"""Health check endpoints for Kubernetes probes."""

from fastapi import APIRouter, HTTPException, status

from chelib.template import template_cache

router = APIRouter()

_startup_complete = False


def set_startup_complete(done: bool = True):
    """Mark startup as complete (called once the lifespan hook has run)."""
    global _startup_complete
    _startup_complete = done


@router.get("/health/live")
async def liveness_probe():
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_probe():
    """Ready once a tournament template is loaded; uploads work either way."""
    checks = {"template": template_cache.loaded}

    if not all(checks.values()):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"status": "not_ready", "checks": checks},
        )
    return {"status": "ready", "checks": checks}


@router.get("/health/startup")
async def startup_probe():
    if not _startup_complete:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"status": "starting"},
        )
    return {"status": "started"}
