"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from app.api.routes import users, exhibitions, bookings, admin

api_router = APIRouter(prefix="/api")
api_router.include_router(users.router)
api_router.include_router(exhibitions.router)
api_router.include_router(bookings.router)
api_router.include_router(admin.router)
