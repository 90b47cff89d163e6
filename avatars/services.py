"""Avatar pipeline stages: image ingress, vision description and image generation."""
import asyncio
from typing import Optional

from fastapi import Request
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from avatars.exceptions import GenerationError, InvalidInput, VisionError
from avatars.models import GenerationParams, ImageInput, StyleTemplate
from avatars.providers import ImageGenerator, VisionDescriber
from common.error_messages import ErrorCode
from utils.logger import get_logger

logger = get_logger("avatars.services")

IMAGE_FIELD = "image"
MIN_DESCRIPTION_LENGTH = 20


async def ingest_image(request: Request, max_bytes: Optional[int] = None) -> ImageInput:
    """
    Read the uploaded image out of a multipart request.

    Args:
        request: Incoming request carrying an ``image`` file field
        max_bytes: Optional upper bound on the payload size

    Returns:
        ImageInput with the raw bytes and declared MIME type

    Raises:
        InvalidInput: If the field is missing, not a file, not an image,
                      empty or too large
    """
    try:
        async with request.form() as form:
            upload = form.get(IMAGE_FIELD)

            if upload is None or not isinstance(upload, UploadFile):
                logger.warning(f"Invalid image field: {type(upload).__name__}")
                raise InvalidInput(ErrorCode.NO_IMAGE_PROVIDED)

            mime_type = upload.content_type or ""
            if not mime_type.startswith("image/"):
                logger.warning(f"Rejected upload with content type '{mime_type}'")
                raise InvalidInput(ErrorCode.NO_IMAGE_PROVIDED)

            if max_bytes is not None and upload.size is not None and upload.size > max_bytes:
                logger.warning(f"Rejected upload of {upload.size} bytes (limit {max_bytes})")
                raise InvalidInput(ErrorCode.IMAGE_TOO_LARGE)

            data = await upload.read()
    except (MultiPartException, StarletteHTTPException) as e:
        logger.warning(f"Could not parse multipart body: {e}")
        raise InvalidInput(ErrorCode.NO_IMAGE_PROVIDED) from e

    if not data:
        raise InvalidInput(ErrorCode.EMPTY_IMAGE)
    if max_bytes is not None and len(data) > max_bytes:
        logger.warning(f"Rejected upload of {len(data)} bytes (limit {max_bytes})")
        raise InvalidInput(ErrorCode.IMAGE_TOO_LARGE)

    logger.info(f"Received image: {mime_type}, {len(data)} bytes")
    return ImageInput(data=data, mime_type=mime_type)


async def describe_image(
    describer: VisionDescriber,
    image: ImageInput,
    template: StyleTemplate,
    timeout: Optional[float] = None
) -> str:
    """
    Ask the vision model for a description and validate it.

    Returns:
        The description, stripped of surrounding whitespace

    Raises:
        VisionError: Empty or too short description, or timeout
        ProviderError: The remote call failed
    """
    try:
        description = await asyncio.wait_for(describer.describe(image, template), timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"Vision analysis timed out after {timeout}s")
        raise VisionError(ErrorCode.VISION_TIMEOUT) from e

    description = (description or "").strip()
    if not description:
        logger.error("Vision analysis returned no content")
        raise VisionError(ErrorCode.EMPTY_DESCRIPTION)

    if len(description) < MIN_DESCRIPTION_LENGTH:
        logger.error(f"Description too short: {description!r}")
        raise VisionError(ErrorCode.DESCRIPTION_TOO_SHORT)

    logger.info(f"Vision analysis: {description}")
    return description


async def generate_image(
    generator: ImageGenerator,
    prompt: str,
    params: GenerationParams,
    timeout: Optional[float] = None
) -> str:
    """
    Ask the image model for one avatar and return its URL.

    Raises:
        GenerationError: No image in the response, or timeout
        ProviderError: The remote call failed
    """
    try:
        url = await asyncio.wait_for(generator.generate(prompt, params), timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"Avatar generation timed out after {timeout}s")
        raise GenerationError(ErrorCode.GENERATION_TIMEOUT) from e

    if not url:
        logger.error("Image model returned no image URL")
        raise GenerationError(ErrorCode.NO_IMAGE_RETURNED)

    return url
