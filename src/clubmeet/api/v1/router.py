"""V1 API router -- aggregates all v1 endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from src.clubmeet.api.v1 import cron, health, meetings, subscriptions

router = APIRouter()

router.include_router(health.router)

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(subscriptions.router)
api_router.include_router(meetings.router)
api_router.include_router(cron.router)

router.include_router(api_router)
