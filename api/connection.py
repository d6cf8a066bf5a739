from fastapi import APIRouter

from config import get_settings

router = APIRouter()


@router.get("/health", tags=["connection"])
async def health():
    settings = get_settings()
    return {"ok": True, "service": settings.PROJECT_NAME, "mock": settings.MOCK_MODE}
