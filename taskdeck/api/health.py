"""Health check endpoints for Kubernetes probes."""

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Health check endpoint for Kubernetes liveness probe.
    Returns 200 OK if the service is running.
    """
    return {"status": "healthy", "service": "taskdeck"}


@router.get("/ready")
async def readiness_check(request: Request):
    """
    Readiness check endpoint for Kubernetes readiness probe.
    Returns 503 until startup has built the workspace.
    """
    workspace = getattr(request.app.state, "workspace", None)
    if workspace is None:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "starting", "service": "taskdeck"},
        )
    return {"status": "ready", "service": "taskdeck", "backend": workspace.settings.backend}
