"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from tourbook.api.routes import patrons, trips, bookings

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(patrons.router)
api_router.include_router(trips.router)
api_router.include_router(bookings.router)
