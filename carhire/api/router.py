from fastapi import APIRouter

from carhire.api.routes import admin_bookings, availability, bookings, locations, scheduler, vehicles

api_router = APIRouter(prefix="/api")

# 🔓 Public routes
api_router.include_router(availability.router)
api_router.include_router(bookings.router)
api_router.include_router(locations.router)
api_router.include_router(vehicles.router)

# 🔒 Admin-only routes
api_router.include_router(admin_bookings.router)
api_router.include_router(locations.admin_router)
api_router.include_router(vehicles.admin_router)

# ⏰ Cron
api_router.include_router(scheduler.router)
