"""Avatar generation API routes."""
import asyncio
from typing import Awaitable, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from config import Config
from avatars.models import (
    ApiStatusResponse,
    ErrorResponse,
    GenerateAvatarResponse,
    PipelineFailure,
    PipelineResult,
    PipelineSuccess,
)
from avatars.pipeline import AvatarPipeline, build_pipeline
from utils.logger import get_logger

logger = get_logger("avatars.routes")
router = APIRouter(prefix="/api", tags=["avatars"])

# Non-standard status used when the client went away before we answered
CLIENT_CLOSED_REQUEST = 499


def get_avatar_pipeline() -> AvatarPipeline:
    """Dependency providing a pipeline built from the current configuration."""
    return build_pipeline()


async def run_until_disconnected(
    request: Request,
    work: Awaitable[PipelineResult],
    poll_interval: float
) -> Optional[PipelineResult]:
    """
    Await ``work`` while watching for the client to disconnect.

    Returns None (after cancelling the in-flight work) if the client
    disconnected first.
    """
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.warning(f"Client disconnected, cancelling {request.method} {request.url.path}")
                task.cancel()
                return None
    finally:
        if not task.done():
            task.cancel()


@router.post(
    "/generate",
    response_model=GenerateAvatarResponse,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def generate_avatar(request: Request, pipeline: AvatarPipeline = Depends(get_avatar_pipeline)):
    """
    Generate a stylized avatar from an uploaded photo.

    Accepts multipart/form-data with a single ``image`` file field (upload or
    webcam capture). Responds with ``{"url": ...}`` on success and
    ``{"error": ..., "details": ...}`` on failure.
    """
    logger.info("Avatar generation requested")
    image = await pipeline.ingest(request)
    if isinstance(image, PipelineFailure):
        result = image
    else:
        result = await run_until_disconnected(
            request, pipeline.generate_avatar(image), Config.DISCONNECT_POLL_SECONDS
        )

    if result is None:
        return JSONResponse(status_code=CLIENT_CLOSED_REQUEST, content={"error": "Client disconnected"})

    if isinstance(result, PipelineSuccess):
        return GenerateAvatarResponse(url=result.url)

    content = {"error": result.error}
    # Ingress rejections answer with the message only
    if result.status_code >= 500:
        content["details"] = result.details
    return JSONResponse(status_code=result.status_code, content=content)


@router.get("/test", response_model=ApiStatusResponse)
def api_status():
    """Report whether a provider key is configured without revealing it."""
    api_key = Config.get_provider_api_key()
    return ApiStatusResponse(
        api_key_configured=bool(api_key),
        api_key_length=len(api_key),
    )
