"""
FastAPI stream resolver service
Turns a YouTube video ID and quality into a direct media URL for the TubeGrab client
"""

import json
import time
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .models import (
    QUALITY_CHOICES,
    DEFAULT_QUALITY,
    ErrorCode,
    ErrorDetail,
    ErrorResponse,
    ResolutionRequest,
    HealthResponse,
    HealthStats,
    ProviderInfo,
)
from . import resolver as resolver_module

# Logging configuration
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# App metadata
VERSION = "1.0.0"
start_time = time.time()

# Statistics tracking
stats = {
    "total_resolutions": 0,
    "active_resolutions": 0,
    "failed_resolutions": 0,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for startup/shutdown tasks"""
    logger.info("🚀 Starting TubeGrab stream resolver...")
    logger.info(f"Version: {VERSION}")
    for num, (name, _kind, _kwargs) in enumerate(resolver_module.resolver.list_providers(), 1):
        logger.info(f"🔌 Provider {num}: {name}")
    yield
    logger.info("Shutting down TubeGrab stream resolver...")


# Create FastAPI app
app = FastAPI(
    title="TubeGrab Stream Resolver",
    description="Resolves direct YouTube media URLs through a chain of upstream providers",
    version=VERSION,
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def permissive_cors_headers(request: Request, call_next):
    """CORSMiddleware only answers requests carrying Origin; wildcard deployments tag every response"""
    response = await call_next(request)
    if "*" in settings.allowed_origins:
        response.headers.setdefault("Access-Control-Allow-Origin", "*")
        response.headers.setdefault("Access-Control-Allow-Headers", "authorization, apikey, content-type")
    return response


def error_response(error: ErrorDetail) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content=ErrorResponse.from_detail(error).model_dump(mode="json", by_alias=True, exclude_none=True),
    )


async def _parse_resolution_body(request: Request):
    """Return (ResolutionRequest, None) or (None, error) for the request body."""
    raw = await request.body()
    try:
        body = json.loads(raw) if raw else {}
    except ValueError:
        body = {}

    if not isinstance(body, dict):
        body = {}

    video_id = body.get("videoId")
    if not isinstance(video_id, str) or not video_id.strip():
        return None, ErrorDetail(code=ErrorCode.INVALID_REQUEST, message="videoId is required")

    quality = body.get("quality") or DEFAULT_QUALITY
    quality = str(quality).strip().lower().rstrip("p")
    if quality not in QUALITY_CHOICES:
        return None, ErrorDetail(
            code=ErrorCode.INVALID_REQUEST,
            message=f"quality must be one of: {', '.join(QUALITY_CHOICES)}",
        )

    return ResolutionRequest(video_id=video_id.strip(), quality=quality), None


# ============================================================================
# API ENDPOINTS
# ============================================================================


@app.options("/resolve")
@app.options("/api/v1/resolve")
async def resolve_preflight() -> Response:
    """Bare OPTIONS requests get an empty 200"""
    return Response(status_code=200)


@app.post("/resolve")
@app.post("/api/v1/resolve")
async def resolve_stream(request: Request) -> Response:
    """
    Resolve a direct media URL for a video

    **Body:** `{"videoId": "dQw4w9WgXcQ", "quality": "720"}`; quality is a
    target height (144-2160) or `audio`.

    **Flow:**
    1. Query providers one at a time until one lists streams
    2. Pick the stream nearest the requested quality (combined first)
    3. Return its URL, plus a separate audio URL for video-only picks
    """
    resolution, error = await _parse_resolution_body(request)
    if error:
        logger.warning(f"⚠️ Rejected resolve request: {error.message}")
        return error_response(error)

    logger.info(f"📥 Resolve request: {resolution.video_id} (quality={resolution.quality})")

    stats["total_resolutions"] += 1
    stats["active_resolutions"] += 1
    try:
        result, error = await resolver_module.resolver.resolve(resolution.video_id, resolution.quality)

        if error or not result:
            stats["failed_resolutions"] += 1
            error = error or ErrorDetail(code=ErrorCode.SERVER_ERROR, message="Unknown resolution failure")
            logger.error(f"❌ Resolution failed ({error.code.value}): {error.message}")
            return error_response(error)

        return JSONResponse(content=result.model_dump(mode="json", by_alias=True, exclude_none=True))

    except Exception as e:
        stats["failed_resolutions"] += 1
        logger.exception(f"💥 Unexpected error during resolution: {e}")
        return error_response(ErrorDetail(code=ErrorCode.SERVER_ERROR, message="Internal server error"))
    finally:
        stats["active_resolutions"] -= 1


@app.get("/api/v1/providers")
async def list_providers():
    """List upstream providers with their 1-based position in the fallback chain."""
    providers = resolver_module.resolver.list_providers()
    return {
        "total": len(providers),
        "providers": [
            ProviderInfo(num=i + 1, name=name, kind=kind).model_dump()
            for i, (name, kind, _) in enumerate(providers)
        ],
    }


@app.get("/api/v1/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint for monitoring"""
    return HealthResponse(
        status="healthy",
        version=VERSION,
        uptime_seconds=time.time() - start_time,
        stats=HealthStats(
            total_resolutions=stats["total_resolutions"],
            active_resolutions=stats["active_resolutions"],
            failed_resolutions=stats["failed_resolutions"],
        ),
        providers=len(resolver_module.resolver.providers),
    )


@app.get("/")
async def root():
    """Root endpoint with service info"""
    return {
        "service": "TubeGrab Stream Resolver",
        "version": VERSION,
        "status": "running",
        "endpoints": {
            "resolve": "/resolve",
            "providers": "/api/v1/providers",
            "health": "/api/v1/health",
        },
        "docs": "/docs",
    }


# ============================================================================
# ERROR HANDLERS
# ============================================================================


@app.exception_handler(404)
async def not_found_handler(request, exc):
    """Custom 404 handler"""
    return JSONResponse(
        status_code=404,
        content={"error": "Endpoint not found. See /docs for API documentation.", "code": "NOT_FOUND"}
    )


@app.exception_handler(500)
async def server_error_handler(request, exc):
    """Custom 500 handler"""
    logger.exception("Internal server error")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "code": ErrorCode.SERVER_ERROR.value}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
