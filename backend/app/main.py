"""
TreningsApp API
===============
FastAPI application entry point. Mount routers here.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from postgrest.exceptions import APIError

from app.config import get_settings
from app.routers import posts, profiles, settings as settings_router, stats, workouts

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="TreningsApp API",
    description="Workout log, statistics and social features",
    version="0.1.0",
    docs_url="/api/docs" if settings.environment != "production" else None,
    redoc_url="/api/redoc" if settings.environment != "production" else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(workouts.router)
app.include_router(stats.router)
app.include_router(profiles.router)
app.include_router(posts.router)
app.include_router(settings_router.router)


@app.exception_handler(APIError)
async def database_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """PostgREST errors no endpoint handled itself become a 500 in our envelope."""
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=500,
        content={"detail": {"message": "Database request failed", "code": "db_error"}},
    )


@app.get("/api/v1/health")
async def health_check() -> dict:
    return {"status": "ok", "service": "treningsapp-api"}
