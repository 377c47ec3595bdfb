import asyncio
import contextlib
import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from app.config import settings
from app.core.errors import register_exception_handlers
from app.core.logging import configure_logging
from app.routers.audit_logs import router as audit_logs_router
from app.routers.health import router as health_router
from app.routers.observations import router as observations_router
from app.routers.reports import router as reports_router
from app.routers.rubric import router as rubric_router
from app.services.rate_limiter import build_rate_limiters

logger = logging.getLogger(__name__)

RATE_LIMIT_SWEEP_SECONDS = 60


# SWAGGER UI: tag display order
_OPENAPI_TAGS = [
    {"name": "Root"},
    {"name": "Health"},
    {"name": "Rubric"},
    {"name": "Observations"},
    {"name": "Reports"},
    {"name": "Audit Logs"},
]

# FASTAPI APPLICATION CONFIGURATION
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    openapi_tags=_OPENAPI_TAGS,
)

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

# REGISTER EXCEPTION HANDLERS
register_exception_handlers(app)

# REGISTER ROUTERS (order matches _OPENAPI_TAGS / Swagger UI display order)
app.include_router(health_router)        # Health
app.include_router(rubric_router)        # Rubric
app.include_router(observations_router)  # Observations
app.include_router(reports_router)       # Reports
app.include_router(audit_logs_router)    # Audit Logs


# ROOT ENDPOINT
@app.get("/", tags=["Root"], summary="Root endpoint")
async def root():
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": {
            "swagger": "/docs",
            "redoc": "/redoc"
        },
        "status": "running"
    }


async def _sweep_rate_limiters(limiters) -> None:
    while True:
        await asyncio.sleep(RATE_LIMIT_SWEEP_SECONDS)
        for limiter in limiters.values():
            limiter.sweep()


# STARTUP EVENT
@app.on_event("startup")
async def startup_event():
    configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    app.state.rate_limiters = build_rate_limiters(
        settings.rate_limits, settings.RATE_LIMIT_WINDOW_SECONDS
    )
    app.state.rate_limit_sweeper = asyncio.create_task(
        _sweep_rate_limiters(app.state.rate_limiters)
    )
    logger.info("Starting %s (%s)", settings.APP_NAME, settings.APP_ENV)


# SHUTDOWN EVENT
@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down %s", settings.APP_NAME)
    sweeper = getattr(app.state, "rate_limit_sweeper", None)
    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
    for limiter in getattr(app.state, "rate_limiters", {}).values():
        limiter.clear()
    app.state.rate_limiters = {}


# RUN WITH UVICORN
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
