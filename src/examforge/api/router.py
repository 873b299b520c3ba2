from __future__ import annotations

from fastapi import APIRouter

from examforge.api.health import router as health_router
from examforge.api.quiz import router as quiz_router

api_router = APIRouter()
api_router.include_router(quiz_router, tags=["quiz"])
api_router.include_router(health_router, tags=["health"])
