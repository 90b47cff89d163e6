"""
FastAPI application that turns a user photo into a stylized avatar.

Features:
- Photo upload or webcam capture via multipart form (POST /api/generate)
- Vision-model description of the person
- Style-template prompt composition
- Text-to-image avatar generation (OpenAI or Gemini)
- Diagnostic endpoint reporting whether the provider key is configured (GET /api/test)
"""
import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import time
import json
import traceback
from typing import Any

from config import Config
from avatars.routes import router as avatars_router
from utils.logger import get_logger
from common.error_messages import ErrorCode, get_error_response

# Initialize logger
logger = get_logger("main")

# Sensitive fields that should be masked in logs
SENSITIVE_FIELDS = {
    'api_key', 'apikey', 'token', 'secret', 'authorization', 'password'
}

MAX_LOGGED_BODY_CHARS = 2000


def mask_sensitive_data(data: Any, mask_value: str = "***MASKED***") -> Any:
    """
    Recursively mask sensitive fields in data structures.

    Args:
        data: Data to mask (dict, list, or string)
        mask_value: Value to replace sensitive data with

    Returns:
        Data with sensitive fields masked
    """
    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            if key.lower() in SENSITIVE_FIELDS:
                masked[key] = mask_value
            else:
                masked[key] = mask_sensitive_data(value, mask_value)
        return masked
    elif isinstance(data, list):
        return [mask_sensitive_data(item, mask_value) for item in data]
    elif isinstance(data, str):
        # Try to parse as JSON and mask if successful
        try:
            parsed = json.loads(data)
            if isinstance(parsed, (dict, list)):
                return json.dumps(mask_sensitive_data(parsed, mask_value))
        except (json.JSONDecodeError, ValueError):
            pass
        return data
    else:
        return data


# Validate configuration on startup; /api/test must keep working without a key
try:
    Config.validate()
    logger.info("Configuration validated successfully")
except ValueError as e:
    logger.error(f"Configuration error: {e}")
    logger.error("Please set required environment variables in .env file")

# Create FastAPI app
app = FastAPI(
    title="Avatar Generation API",
    description="Turns a user photo into a minimalist avatar: a vision model describes the person, an image model draws the avatar.",
    version="1.0.0"
)


# CORS middleware - added first so it applies to error responses too
app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions globally."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    message, status_code = get_error_response(ErrorCode.UNKNOWN_ERROR)
    details = {"message": str(exc), "name": type(exc).__name__}
    if Config.DEBUG_ERRORS:
        details["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "details": details}
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests with timing and response details."""
    start_time = time.time()
    full_url = str(request.url)

    try:
        # Request bodies carry image bytes; log their size only
        log_msg = f"→ {request.method} {full_url} - Client: {request.client.host if request.client else 'unknown'}"
        content_length = request.headers.get("content-length")
        if content_length:
            log_msg += f" - Body: {content_length} bytes ({request.headers.get('content-type', 'unknown')})"
        logger.info(log_msg)

        response = await call_next(request)

        response_body = None
        if response.media_type == "application/json" or response.headers.get("content-type", "").startswith("application/json"):
            response_body_bytes = b""
            async for chunk in response.body_iterator:
                response_body_bytes += chunk

            masked_response = mask_sensitive_data(response_body_bytes.decode("utf-8", errors="replace"))
            if len(masked_response) > MAX_LOGGED_BODY_CHARS:
                masked_response = masked_response[:MAX_LOGGED_BODY_CHARS] + "... [truncated]"
            response_body = masked_response

            response = Response(
                content=response_body_bytes,
                status_code=response.status_code,
                headers=dict(response.headers),
                media_type=response.media_type
            )

        process_time = (time.time() - start_time) * 1000
        log_msg = f"← {request.method} {full_url} - Status: {response.status_code} - Time: {process_time:.2f}ms"
        if response_body:
            log_msg += f"\n  Response Body: {response_body}"
        logger.info(log_msg)

        return response
    except Exception as e:
        process_time = (time.time() - start_time) * 1000
        logger.error(f"← {request.method} {full_url} - Error: {str(e)} - Time: {process_time:.2f}ms")
        raise


app.include_router(avatars_router)
logger.info("Avatars router included")


@app.on_event("startup")
async def startup_event():
    """Log startup event."""
    logger.info("=" * 80)
    logger.info("Avatar service starting up")
    logger.info(f"Provider: {Config.provider_label()} - Style: {Config.AVATAR_STYLE}")
    logger.info(f"Host: {Config.HOST}:{Config.PORT}")
    logger.info("=" * 80)


@app.on_event("shutdown")
async def shutdown_event():
    """Log shutdown event."""
    logger.info("Avatar service shutting down")


@app.get("/healthz")
def health():
    """Health check endpoint."""
    logger.debug("Health check requested")
    return {"status": "ok"}


# Run server directly
if __name__ == "__main__":
    logger.info(f"Starting server on {Config.HOST}:{Config.PORT}")
    uvicorn.run(
        "app:app",
        host=Config.HOST,
        port=Config.PORT,
        reload=True,
        log_level="info"
    )
