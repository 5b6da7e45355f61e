from fastapi import APIRouter

from .endpoints import analytics, auth, bookings

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
