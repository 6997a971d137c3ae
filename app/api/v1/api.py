"""
API v1 router
"""
from fastapi import APIRouter

from app.api.v1.endpoints import (
    admin,
    dashboard,
    properties,
    surveys,
    tasks,
    templates,
    users,
)

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(templates.router, prefix="/templates", tags=["Templates"])
api_router.include_router(surveys.router, prefix="/surveys", tags=["Surveys"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
api_router.include_router(properties.router, prefix="/properties", tags=["Properties"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])


@api_router.get("/")
async def api_root():
    """API v1 root endpoint"""
    return {
        "message": "Hospitality QA Portal API v1",
        "status": "active",
        "version": "1.0.0",
        "endpoints": {
            "templates": "/templates",
            "surveys": "/surveys",
            "tasks": "/tasks (ADMIN/PROPERTY_MANAGER)",
            "dashboard": "/dashboard",
            "properties": "/properties",
            "users": "/users",
            "admin": "/admin (ADMIN only)",
            "docs": "/docs",
            "health": "/health"
        }
    }
