from fastapi import APIRouter
from app.api.v1.endpoints import auth, workshops, courses, bkash, payments, coupons, careers, dashboard, health
from app.api.v1.endpoints.admin import admin_router

api_router = APIRouter()

api_router.include_router(health.router)


# Simple health check endpoint for load balancers
@api_router.get("/health", tags=["Health"])
async def health_check():
    return {"status": "healthy", "service": "skilltori-backend"}


api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(workshops.router)
api_router.include_router(courses.router)
api_router.include_router(bkash.router)
api_router.include_router(payments.router)
api_router.include_router(coupons.router)
api_router.include_router(careers.router)
api_router.include_router(dashboard.router)
api_router.include_router(admin_router)
