from fastapi import APIRouter

from .relay import router as relay_router

router = APIRouter(prefix="/v1")
router.include_router(relay_router)
