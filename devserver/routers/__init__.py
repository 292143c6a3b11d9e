# FastAPI Routers
from devserver.routers.develop_html import DevelopHTMLMiddleware, DevelopHTMLRoute
from devserver.routers.health import router as health_router

__all__ = [
    "DevelopHTMLMiddleware",
    "DevelopHTMLRoute",
    "health_router",
]
