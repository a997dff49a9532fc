"""API v1 router with basic endpoints."""
from fastapi import APIRouter

from app.schemas.base_schemas import BaseResponse

router = APIRouter(prefix="/api/v1", tags=["v1"])


@router.get("/ping", response_model=BaseResponse[str])
async def ping() -> BaseResponse[str]:
    """Liveness probe returning ``pong``."""
    return BaseResponse(data="pong", message="Service is running")
