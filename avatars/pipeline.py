"""Avatar generation pipeline orchestration."""
import traceback
from typing import Any, Dict, Optional, Union

from fastapi import Request

from config import Config, PROVIDER_API_KEY_ENV
from avatars.exceptions import AvatarPipelineError, ConfigurationError, ProviderError
from avatars.models import ImageInput, PipelineFailure, PipelineResult, PipelineSuccess, StyleTemplate
from avatars.providers import ImageGenerator, VisionDescriber, create_providers
from avatars.services import describe_image, generate_image, ingest_image
from avatars.templates import compose_prompt, get_style_template
from common.error_messages import ErrorCode, get_error_response
from utils.logger import get_logger

logger = get_logger("avatars.pipeline")


class AvatarPipeline:
    """
    Photo -> description -> prompt -> avatar.

    Holds only immutable configuration, so one instance may serve any number
    of concurrent requests. ``run`` and ``generate_avatar`` never raise; every
    failure comes back as a PipelineFailure.
    """

    def __init__(
        self,
        api_key: Optional[str],
        describer: VisionDescriber,
        generator: ImageGenerator,
        template: StyleTemplate,
        vision_timeout: Optional[float] = None,
        generation_timeout: Optional[float] = None,
        max_upload_bytes: Optional[int] = None,
        debug: bool = False,
        provider_label: str = "OpenAI"
    ):
        self.api_key = api_key
        self.describer = describer
        self.generator = generator
        self.template = template
        self.vision_timeout = vision_timeout
        self.generation_timeout = generation_timeout
        self.max_upload_bytes = max_upload_bytes
        self.debug = debug
        self.provider_label = provider_label

    def _require_credential(self) -> None:
        if not self.api_key:
            logger.error(f"{self.provider_label} API key is missing")
            raise ConfigurationError(f"{self.provider_label} API key is not configured")
        logger.debug(f"API key found, length: {len(self.api_key)}")

    async def run(self, request: Request) -> PipelineResult:
        """Check configuration, read the uploaded image and generate the avatar."""
        image = await self.ingest(request)
        if isinstance(image, PipelineFailure):
            return image
        return await self.generate_avatar(image)

    async def ingest(self, request: Request) -> Union[ImageInput, PipelineFailure]:
        """
        Check configuration and read the uploaded image.

        Consumes the request body, so it must finish before anything else
        listens on the request (e.g. disconnect polling).
        """
        try:
            self._require_credential()
            return await ingest_image(request, self.max_upload_bytes)
        except Exception as e:
            return self._to_failure(e)

    async def generate_avatar(self, image: ImageInput) -> PipelineResult:
        """Generate an avatar for an already ingested image."""
        try:
            self._require_credential()
            return await self._execute(image)
        except Exception as e:
            return self._to_failure(e)

    async def _execute(self, image: ImageInput) -> PipelineSuccess:
        description = await describe_image(self.describer, image, self.template, self.vision_timeout)

        prompt = compose_prompt(description, self.template)
        logger.debug(f"Image prompt ({self.template.name}): {prompt}")

        url = await generate_image(self.generator, prompt, self.template.params, self.generation_timeout)
        logger.info(f"Avatar generated with style '{self.template.name}'")
        return PipelineSuccess(url=url)

    def _to_failure(self, exc: Exception) -> PipelineFailure:
        """Normalize any exception into the {error, details} envelope."""
        if isinstance(exc, AvatarPipelineError):
            message, status_code = exc.message, exc.status_code
            if status_code >= 500:
                logger.error(f"Avatar pipeline failed ({exc.error_code.value}): {message}")
            else:
                logger.warning(f"Rejected avatar request ({exc.error_code.value}): {message}")
        else:
            logger.error(f"Unexpected error in avatar pipeline: {exc}", exc_info=True)
            message, status_code = get_error_response(ErrorCode.UNKNOWN_ERROR, str(exc) or None)

        details: Dict[str, Any] = {
            "message": message,
            "name": type(exc).__name__,
        }
        if self.debug:
            details["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            details["response"] = exc.response_body if isinstance(exc, ProviderError) else None

        return PipelineFailure(error=message, details=details, status_code=status_code)


def build_pipeline() -> AvatarPipeline:
    """
    Build a pipeline from the current configuration.

    The API key is read from the environment here, once per request.

    Raises:
        KeyError: If AVATAR_STYLE names an unknown template
        ValueError: If AVATAR_PROVIDER is unknown
    """
    provider = Config.AVATAR_PROVIDER
    if provider not in PROVIDER_API_KEY_ENV:
        raise ValueError(f"Unknown avatar provider '{provider}'")

    if provider == "gemini":
        vision_model, image_model = Config.GEMINI_VISION_MODEL, Config.GEMINI_IMAGE_MODEL
    else:
        vision_model, image_model = Config.OPENAI_VISION_MODEL, Config.OPENAI_IMAGE_MODEL

    api_key = Config.get_provider_api_key()
    describer, generator = create_providers(
        provider,
        api_key,
        vision_model,
        image_model,
        timeout=max(Config.VISION_TIMEOUT_SECONDS, Config.GENERATION_TIMEOUT_SECONDS),
    )

    return AvatarPipeline(
        api_key=api_key,
        describer=describer,
        generator=generator,
        template=get_style_template(Config.AVATAR_STYLE),
        vision_timeout=Config.VISION_TIMEOUT_SECONDS,
        generation_timeout=Config.GENERATION_TIMEOUT_SECONDS,
        max_upload_bytes=Config.MAX_UPLOAD_BYTES,
        debug=Config.DEBUG_ERRORS,
        provider_label=Config.provider_label(),
    )
