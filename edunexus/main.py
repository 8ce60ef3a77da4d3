"""EduNexus: FastAPI Application Entry Point."""

import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from edunexus import models  # noqa: F401  (registers tables on Base.metadata)
from edunexus.config import settings
from edunexus.database import engine, Base
from edunexus.errors import InternalError, LmsError
from edunexus.middleware.rate_limit import limiter
from edunexus.routers import admin, assignments, auth, courses, lectures

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create all tables on startup
Base.metadata.create_all(bind=engine)

# ── CORS origins from env ───────────────────────────────────────────────────
_cors_origins = [o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()]

app = FastAPI(
    title="EduNexus",
    description="Learning-management backend: courses, lectures, assignments and grading.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(LmsError)
async def lms_error_handler(request: Request, exc: LmsError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = InternalError("Server error")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(auth.router)
app.include_router(courses.router)
app.include_router(assignments.router)
app.include_router(lectures.router)
app.include_router(admin.router)

# Uploaded blobs (LocalBlobStore)
app.mount(settings.MEDIA_URL, StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="media")


@app.on_event("startup")
async def on_startup():
    """Create the upload directory."""
    Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
    logger.info("EduNexus started; blobs under %s", settings.UPLOAD_DIR)


@app.get("/")
def root():
    return {
        "name": "EduNexus API",
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get("/health")
def health():
    return {"status": "ok"}
