from fastapi import APIRouter
from app.api.v1.endpoints import drives, placements

api_router = APIRouter(prefix="/api/v1")

# Include all endpoint routers
api_router.include_router(drives.router)
api_router.include_router(placements.router)
