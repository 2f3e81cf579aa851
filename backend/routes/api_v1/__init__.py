"""API v1: cricket data, live scoring and contest endpoints."""

from fastapi import APIRouter

from .contests import router as contests_router
from .cricket import router as cricket_router
from .scoring import router as scoring_router

router = APIRouter(prefix="/api/v1", tags=["api_v1"])
router.include_router(cricket_router)
router.include_router(scoring_router)
router.include_router(contests_router)

api_v1_router = router
