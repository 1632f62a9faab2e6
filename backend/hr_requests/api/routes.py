from fastapi import APIRouter

from hr_requests.api.routers import health_router, notifications_router, requests_router

# API Router
router = APIRouter()
router.include_router(requests_router)
router.include_router(notifications_router)
router.include_router(health_router)
