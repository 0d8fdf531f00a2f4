from fastapi import APIRouter

from brandmonitor.api.v1.measure import router as measure_router
from brandmonitor.api.v1.scores import router as scores_router
from brandmonitor.api.v1.topics import router as topics_router

api_v1_router = APIRouter(prefix="/api/v1")
api_v1_router.include_router(measure_router)
api_v1_router.include_router(topics_router)
api_v1_router.include_router(scores_router)
