"""Health check endpoint."""

from fastapi import APIRouter

from mediashelf.responses import success_response

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Liveness check. Does not touch the database."""
    return success_response({"status": "ok"})
