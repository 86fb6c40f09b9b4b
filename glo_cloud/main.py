# glo_cloud/main.py
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.httpsredirect import HTTPSRedirectMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from .config import settings
from .database import init_redis, close_redis, engine, get_redis, AsyncSessionLocal
from .logging_config import setup_logging, get_logger
from .models.database import Base
from .monitoring.metrics import metrics_collector
from .services.bootstrap import (
    ensure_super_admin, ensure_default_company_settings, ensure_default_system_settings,
)

# Routers (these already have their own prefixes inside each module)
from .routers import (
    auth, profile, users, upload, files, shares, public, activity, admin, company,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle"""
    setup_logging()
    logger.info("Starting %s %s", settings.APP_NAME, settings.VERSION)

    os.makedirs(settings.STORAGE_ROOT, exist_ok=True)
    os.makedirs(settings.BRANDING_DIR, exist_ok=True)

    if settings.AUTO_CREATE_TABLES:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured")

    async with AsyncSessionLocal() as db:
        await ensure_super_admin(db)
        await ensure_default_company_settings(db)
        await ensure_default_system_settings(db)

    if settings.CACHE_BACKEND == "redis":
        try:
            await init_redis()
            logger.info("Redis connection established")
        except Exception as e:
            logger.warning("Redis connection failed: %s", e)

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection successful")
    except Exception as e:
        logger.error("Database connection failed: %s", e)

    logger.info("Application startup complete")
    yield

    logger.info("Shutting down %s", settings.APP_NAME)
    await close_redis()
    await engine.dispose()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    description="Multi-tenant file storage and sharing with employee/week organization",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Instrument Prometheus metrics (also exposes /metrics)
metrics_collector.instrument_app(app)

if settings.ENABLE_HTTPS:
    app.add_middleware(HTTPSRedirectMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "Content-Range", "Accept-Ranges"],
)

app.include_router(auth.router)
app.include_router(profile.router)
app.include_router(users.router)
app.include_router(upload.router)
app.include_router(files.router)
app.include_router(shares.router)
app.include_router(public.router)
app.include_router(activity.router)
app.include_router(admin.router)
app.include_router(company.router)


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with service information"""
    return {
        "service": settings.APP_NAME,
        "version": settings.VERSION,
        "status": "running",
        "documentation": "/docs",
        "health": "/api/health",
    }


@app.get("/api/health", tags=["Health"])
async def health_check():
    """Database, Redis and storage status"""
    health_status = {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.VERSION,
        "environment": os.getenv("ENVIRONMENT", "development"),
        "checks": {},
    }

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        health_status["checks"]["database"] = "healthy"
    except Exception as e:
        health_status["checks"]["database"] = f"unhealthy: {str(e)}"
        health_status["status"] = "degraded"

    redis = await get_redis()
    if redis is None:
        health_status["checks"]["redis"] = "not configured"
    else:
        try:
            await redis.ping()
            health_status["checks"]["redis"] = "healthy"
        except Exception as e:
            health_status["checks"]["redis"] = f"unhealthy: {str(e)}"
            health_status["status"] = "degraded"

    health_status["checks"]["storage"] = (
        "healthy" if os.access(settings.STORAGE_ROOT, os.W_OK) else "unwritable"
    )
    if health_status["checks"]["storage"] != "healthy":
        health_status["status"] = "degraded"

    health_status["features"] = {
        "https_enabled": settings.ENABLE_HTTPS,
        "cache_backend": settings.CACHE_BACKEND,
    }
    return health_status


@app.get("/api/ready", tags=["Health"])
async def ready_check():
    """Readiness probe endpoint"""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {"ready": True}
    except Exception as e:
        return JSONResponse(status_code=503, content={"ready": False, "error": str(e)})


@app.get("/api/live", tags=["Health"])
async def live_check():
    """Liveness probe endpoint"""
    return {"live": True}


@app.get("/api/version", tags=["Info"])
async def version_info():
    return {
        "service": settings.APP_NAME,
        "version": settings.VERSION,
        "build_date": os.getenv("BUILD_DATE", "unknown"),
        "commit": os.getenv("GIT_COMMIT", "unknown"),
    }


@app.exception_handler(404)
async def not_found(request: Request, exc):
    """Unknown routes and missing records share one body shape"""
    detail = getattr(exc, "detail", None) or "Not Found"
    return JSONResponse(
        status_code=404,
        content={
            "detail": detail,
            "error": "Not Found",
            "path": request.url.path,
            "status": 404,
        },
    )


@app.exception_handler(500)
async def internal_error(request: Request, exc):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred",
            "status": 500,
        },
    )


# Run for local development
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "glo_cloud.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=not settings.is_production,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=True,
    )
