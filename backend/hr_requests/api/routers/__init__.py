from .requests import router as requests_router
from .notifications import router as notifications_router
from .health import router as health_router

__all__ = [
	"requests_router",
	"notifications_router",
	"health_router",
]
