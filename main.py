import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from starlette.middleware.base import BaseHTTPMiddleware

import models  # noqa: F401  registers every table on Base.metadata
from core.celery import celery_app
from core.config import settings
from core.db import Base, engine
from core.errors import error_handler_middleware
from routes.admin import router as admin_router
from routes.auth import router as auth_router
from routes.brands import router as brands_router
from routes.cart import router as cart_router
from routes.categories import router as categories_router
from routes.orders import router as orders_router
from routes.payments import router as payments_router
from routes.products import router as products_router
from routes.reviews import router as reviews_router
from routes.search import router as search_router
from routes.wishlist import router as wishlist_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
        }
    }
    openapi_schema["security"] = [{"BearerAuth": []}]
    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(BaseHTTPMiddleware, dispatch=error_handler_middleware)

# Ensure tables exist (for dev/test; in prod use Alembic)
Base.metadata.create_all(bind=engine)

app.include_router(auth_router)
app.include_router(categories_router)
app.include_router(brands_router)
app.include_router(products_router)
app.include_router(search_router)
app.include_router(cart_router)
app.include_router(orders_router)
app.include_router(admin_router)
app.include_router(reviews_router)
app.include_router(wishlist_router)
app.include_router(payments_router)

logger.info("%s started (debug=%s, testing=%s)", settings.APP_NAME, settings.DEBUG, settings.TESTING)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": settings.APP_NAME}


@app.get("/celery-health")
async def celery_health_check():
    """Check Celery worker status"""
    try:
        stats = celery_app.control.inspect(timeout=1.0).stats()
    except Exception as e:
        logger.warning("Celery inspect failed: %s", e)
        return {"status": "unhealthy", "error": str(e)}
    if stats:
        return {"status": "healthy", "workers": len(stats)}
    return {"status": "no_workers", "message": "No Celery workers running"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=settings.DEBUG,
    )
