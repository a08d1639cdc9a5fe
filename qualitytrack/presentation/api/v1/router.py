from fastapi import APIRouter

from qualitytrack.presentation.api.v1.routes import permissions

api_router = APIRouter()
api_router.include_router(permissions.router, tags=["permissions"])
