"""Exceptions raised by the avatar generation pipeline."""
from typing import Any, Optional

from common.error_messages import ErrorCode, get_error_response


class AvatarPipelineError(Exception):
    """Base class for every failure the pipeline knows how to report."""

    def __init__(self, error_code: ErrorCode, message: Optional[str] = None):
        self.error_code = error_code
        self.message, self.status_code = get_error_response(error_code, message)
        super().__init__(self.message)


class ConfigurationError(AvatarPipelineError):
    """Required provider credential is missing."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(ErrorCode.MISSING_API_KEY, message)


class InvalidInput(AvatarPipelineError):
    """The request did not carry a usable image."""

    def __init__(self, error_code: ErrorCode = ErrorCode.NO_IMAGE_PROVIDED, message: Optional[str] = None):
        super().__init__(error_code, message)


class VisionError(AvatarPipelineError):
    """The vision stage returned nothing usable.

    ``reason`` is one of EMPTY_DESCRIPTION, DESCRIPTION_TOO_SHORT or VISION_TIMEOUT.
    """

    def __init__(self, reason: ErrorCode, message: Optional[str] = None):
        self.reason = reason
        super().__init__(reason, message)


class GenerationError(AvatarPipelineError):
    """The image generation stage returned no image.

    ``reason`` is one of NO_IMAGE_RETURNED or GENERATION_TIMEOUT.
    """

    def __init__(self, reason: ErrorCode, message: Optional[str] = None):
        self.reason = reason
        super().__init__(reason, message)


class ProviderError(AvatarPipelineError):
    """The remote model call itself failed (network, quota, rejection).

    ``response_body`` is the provider's structured error body when it could be
    extracted, otherwise a placeholder string or None.
    """

    def __init__(self, stage: str, message: Optional[str] = None, response_body: Any = None):
        self.stage = stage
        self.response_body = response_body
        super().__init__(ErrorCode.PROVIDER_ERROR, message)
