from fastapi import APIRouter

from app.core.config import settings

router = APIRouter()


@router.get("/health")
async def health():
    return {"status": "ok", "message": f"{settings.APP_NAME} running", "env": settings.ENVIRONMENT}
