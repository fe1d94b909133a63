"""FastAPI application."""

import logging
import math
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from autoapply.api.limiter import limiter
from autoapply.config import settings
from autoapply.db.base import init_db
from autoapply.pipeline.errors import (
    AlreadyProcessing,
    NotProcessing,
    PreconditionFailed,
    RateLimited,
    RunNotFound,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

ALLOWED_ORIGINS = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    try:
        init_db()
    except ValueError:
        pass  # Database not configured, skip init
    yield


app = FastAPI(
    title="AutoApply API",
    description="Automated job matching and application pipeline",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Return 429 with a clear message when rate limit is exceeded."""
    return JSONResponse(
        status_code=429,
        content={"detail": f"Rate limit exceeded: {exc.detail}"},
    )


@app.exception_handler(RateLimited)
async def cooldown_handler(request: Request, exc: RateLimited):
    """Run started inside the cooldown window."""
    seconds = max(0, math.ceil(exc.retry_after.total_seconds()))
    return JSONResponse(
        status_code=429,
        content={"detail": str(exc), "retry_after_seconds": seconds},
        headers={"Retry-After": str(seconds)},
    )


@app.exception_handler(AlreadyProcessing)
async def already_processing_handler(request: Request, exc: AlreadyProcessing):
    return JSONResponse(status_code=409, content={"detail": str(exc), "run_id": exc.run_id})


@app.exception_handler(PreconditionFailed)
async def precondition_handler(request: Request, exc: PreconditionFailed):
    """The run was created but could not proceed; its id is returned for polling."""
    return JSONResponse(status_code=422, content={"detail": exc.reason, "run_id": exc.run_id})


@app.exception_handler(NotProcessing)
async def not_processing_handler(request: Request, exc: NotProcessing):
    return JSONResponse(status_code=409, content={"detail": str(exc), "run_id": exc.run_id})


@app.exception_handler(RunNotFound)
async def run_not_found_handler(request: Request, exc: RunNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization", "X-User-ID"],
)


# Import and include routers
from autoapply.api.routes import applications, automation, preferences, profile, runs  # noqa: E402

app.include_router(runs.router, prefix="/runs", tags=["Runs"])
app.include_router(automation.router, prefix="/automation", tags=["Automation"])
app.include_router(preferences.router, prefix="/preferences", tags=["Preferences"])
app.include_router(profile.router, prefix="/profile", tags=["Profile"])
app.include_router(applications.router, prefix="/applications", tags=["Applications"])


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
