"""
User-facing error messages and status codes.

Every failure the avatar pipeline can report maps to one ErrorCode, which
carries the message shown to the UI and the HTTP status of the response.
"""
from typing import Tuple, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for different types of failures."""

    # Configuration Errors (500)
    MISSING_API_KEY = "MISSING_API_KEY"

    # Ingress Errors (400, 413)
    NO_IMAGE_PROVIDED = "NO_IMAGE_PROVIDED"
    EMPTY_IMAGE = "EMPTY_IMAGE"
    IMAGE_TOO_LARGE = "IMAGE_TOO_LARGE"

    # Vision Description Errors (500)
    EMPTY_DESCRIPTION = "EMPTY_DESCRIPTION"
    DESCRIPTION_TOO_SHORT = "DESCRIPTION_TOO_SHORT"
    VISION_TIMEOUT = "VISION_TIMEOUT"

    # Image Generation Errors (500)
    NO_IMAGE_RETURNED = "NO_IMAGE_RETURNED"
    GENERATION_TIMEOUT = "GENERATION_TIMEOUT"

    # External API Errors (500)
    PROVIDER_ERROR = "PROVIDER_ERROR"

    # Generic Errors
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


ERROR_MESSAGES = {
    ErrorCode.MISSING_API_KEY: "API key is not configured",

    ErrorCode.NO_IMAGE_PROVIDED: "No image provided",
    ErrorCode.EMPTY_IMAGE: "Uploaded file is empty",
    ErrorCode.IMAGE_TOO_LARGE: "Image exceeds the upload size limit",

    ErrorCode.EMPTY_DESCRIPTION: "Failed to analyze the image",
    ErrorCode.DESCRIPTION_TOO_SHORT: "Image analysis produced insufficient description",
    ErrorCode.VISION_TIMEOUT: "Image analysis timed out",

    ErrorCode.NO_IMAGE_RETURNED: "Failed to generate avatar",
    ErrorCode.GENERATION_TIMEOUT: "Avatar generation timed out",

    ErrorCode.PROVIDER_ERROR: "The AI service rejected the request",

    ErrorCode.UNKNOWN_ERROR: "Failed to generate avatar",
}


# HTTP status codes for each error type
ERROR_STATUS_CODES = {
    ErrorCode.MISSING_API_KEY: 500,

    ErrorCode.NO_IMAGE_PROVIDED: 400,
    ErrorCode.EMPTY_IMAGE: 400,
    ErrorCode.IMAGE_TOO_LARGE: 413,

    ErrorCode.EMPTY_DESCRIPTION: 500,
    ErrorCode.DESCRIPTION_TOO_SHORT: 500,
    ErrorCode.VISION_TIMEOUT: 500,

    ErrorCode.NO_IMAGE_RETURNED: 500,
    ErrorCode.GENERATION_TIMEOUT: 500,

    ErrorCode.PROVIDER_ERROR: 500,

    ErrorCode.UNKNOWN_ERROR: 500,
}


def get_error_response(
    error_code: ErrorCode,
    custom_message: Optional[str] = None
) -> Tuple[str, int]:
    """
    Get the user-facing error message and HTTP status code.

    Args:
        error_code: The error code enum
        custom_message: Optional message that replaces the standard one

    Returns:
        Tuple of (error_message, status_code)
    """
    message = custom_message or ERROR_MESSAGES.get(error_code, ERROR_MESSAGES[ErrorCode.UNKNOWN_ERROR])
    status_code = ERROR_STATUS_CODES.get(error_code, 500)
    return message, status_code
