# attendify/api/v1/router.py
from fastapi import APIRouter
from attendify.api.v1 import (
    admin,
    attendance,
    auth,
    events,
    users,
)

api_router = APIRouter()

api_router.include_router(auth.router,       prefix="/auth",       tags=["auth"])
api_router.include_router(users.router,      prefix="/users",      tags=["users"])
api_router.include_router(events.router,     prefix="/events",     tags=["events"])
api_router.include_router(attendance.router, prefix="/attendance", tags=["attendance"])
api_router.include_router(admin.router,      prefix="/admin",      tags=["admin"])
