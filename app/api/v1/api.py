from fastapi import APIRouter
from app.api.v1.endpoints import (
    activities, admin_users, bookings, configurations, contact, products, ratings, uploads
)

api_router = APIRouter()

api_router.include_router(admin_users.router, prefix="/admin", tags=["admin"])
api_router.include_router(activities.admin_router, prefix="/admin/activities", tags=["activities"])
api_router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
api_router.include_router(products.router, prefix="/products", tags=["products"])
api_router.include_router(ratings.router, prefix="/ratings", tags=["ratings"])
api_router.include_router(contact.router, prefix="/contact", tags=["contact"])
api_router.include_router(activities.public_router, prefix="/activities", tags=["activities"])
api_router.include_router(configurations.router, prefix="/config", tags=["configuration"])
api_router.include_router(uploads.router, tags=["uploads"])
