from fastapi import APIRouter

from app.api.v1 import activities, cache, integrations_github, internal

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(integrations_github.router)
api_router.include_router(activities.router)
api_router.include_router(cache.router)
api_router.include_router(internal.router)
