"""Health check endpoint."""

from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Liveness only. Does not call Supabase."""
    return {"data": {"status": "ok"}}
