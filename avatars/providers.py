"""
Remote model providers for the two pipeline stages.

Each stage has a narrow interface (``VisionDescriber.describe`` and
``ImageGenerator.generate``) so tests can substitute deterministic fakes.
Implementations return the raw provider output (or None) and translate SDK
failures into pipeline exceptions; validation gates live in avatars.services.
"""
from typing import Any, Optional, Tuple

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from openai import AsyncOpenAI, APIError, APIStatusError, APITimeoutError

from avatars.exceptions import GenerationError, ProviderError, VisionError
from avatars.models import GenerationParams, ImageInput, StyleTemplate
from common.error_messages import ErrorCode
from utils.logger import get_logger

logger = get_logger("avatars.providers")

VISION_STAGE = "vision"
GENERATION_STAGE = "generation"


class VisionDescriber:
    """Turns a photo into a free-text description of the person."""

    async def describe(self, image: ImageInput, template: StyleTemplate) -> Optional[str]:
        raise NotImplementedError


class ImageGenerator:
    """Turns a prompt into the URL of one generated image."""

    async def generate(self, prompt: str, params: GenerationParams) -> Optional[str]:
        raise NotImplementedError


def _timeout_error(stage: str, message: Optional[str] = None) -> Exception:
    if stage == VISION_STAGE:
        return VisionError(ErrorCode.VISION_TIMEOUT, message)
    return GenerationError(ErrorCode.GENERATION_TIMEOUT, message)


def extract_response_body(response: Optional[httpx.Response]) -> Any:
    """
    Best-effort read of a provider's JSON error body.

    Never raises: a body that cannot be decoded is reported as a placeholder
    so it does not hide the error that produced it.
    """
    if response is None:
        return None
    try:
        return response.json()
    except Exception as e:
        logger.debug(f"Could not decode provider error body: {e}")
        return "No JSON response"


# ---------- OpenAI ----------
class _OpenAIClientMixin:
    def __init__(self, api_key: str, model: str, timeout: Optional[float] = None):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client: Optional[AsyncOpenAI] = None

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            # Retries stay off: a failed stage aborts the request
            self._client = AsyncOpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def _translate(self, stage: str, exc: APIError) -> Exception:
        if isinstance(exc, APITimeoutError):
            return _timeout_error(stage)
        if isinstance(exc, APIStatusError):
            body = extract_response_body(exc.response)
            logger.error(f"OpenAI {stage} request failed with status {exc.status_code}: {body}")
            return ProviderError(stage, exc.message, response_body=body)
        logger.error(f"OpenAI {stage} request failed: {exc}")
        return ProviderError(stage, str(exc))


class OpenAIVisionDescriber(_OpenAIClientMixin, VisionDescriber):
    """Describes a photo with an OpenAI vision-capable chat model."""

    async def describe(self, image: ImageInput, template: StyleTemplate) -> Optional[str]:
        logger.info(f"Analyzing image with {self.model} ({image.mime_type}, {image.size} bytes)")
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "image_url", "image_url": {"url": image.to_data_uri()}},
                            {"type": "text", "text": template.vision_instruction},
                        ],
                    }
                ],
                max_tokens=template.vision_max_tokens,
            )
        except APIError as e:
            raise self._translate(VISION_STAGE, e) from e

        if not response.choices:
            return None
        return response.choices[0].message.content


class OpenAIImageGenerator(_OpenAIClientMixin, ImageGenerator):
    """Generates the avatar with an OpenAI image model and returns its hosted URL."""

    async def generate(self, prompt: str, params: GenerationParams) -> Optional[str]:
        logger.info(f"Generating avatar with {self.model} (size={params.size}, quality={params.quality}, style={params.style})")
        try:
            response = await self.client.images.generate(
                model=self.model,
                prompt=prompt,
                n=params.n,
                size=params.size,
                response_format="url",
                quality=params.quality,
                style=params.style,
            )
        except APIError as e:
            raise self._translate(GENERATION_STAGE, e) from e

        if not response.data:
            return None
        return response.data[0].url


# ---------- Gemini ----------
class _GeminiClientMixin:
    def __init__(self, api_key: str, model: str, timeout: Optional[float] = None):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client: Optional[genai.Client] = None

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            http_options = None
            if self.timeout:
                # google-genai expects milliseconds
                http_options = types.HttpOptions(timeout=int(self.timeout * 1000))
            self._client = genai.Client(api_key=self.api_key, http_options=http_options)
        return self._client

    def _translate(self, stage: str, exc: Exception) -> Exception:
        if isinstance(exc, httpx.TimeoutException):
            return _timeout_error(stage)
        if isinstance(exc, genai_errors.APIError):
            body = getattr(exc, "details", None)
            logger.error(f"Gemini {stage} request failed with code {exc.code}: {body}")
            return ProviderError(stage, exc.message or str(exc), response_body=body)
        logger.error(f"Gemini {stage} request failed: {exc}")
        return ProviderError(stage, str(exc))


class GeminiVisionDescriber(_GeminiClientMixin, VisionDescriber):
    """Describes a photo with a multimodal Gemini model."""

    async def describe(self, image: ImageInput, template: StyleTemplate) -> Optional[str]:
        logger.info(f"Analyzing image with {self.model} ({image.mime_type}, {image.size} bytes)")
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=[
                    types.Part.from_bytes(data=image.data, mime_type=image.mime_type),
                    template.vision_instruction,
                ],
                config=types.GenerateContentConfig(max_output_tokens=template.vision_max_tokens),
            )
        except (genai_errors.APIError, httpx.HTTPError) as e:
            raise self._translate(VISION_STAGE, e) from e

        return response.text


class GeminiImageGenerator(_GeminiClientMixin, ImageGenerator):
    """
    Generates the avatar with an Imagen model.

    Imagen returns image bytes rather than a hosted URL, so the result is
    handed back as a data URI. Quality and style tiers have no Imagen
    equivalent and are ignored.
    """

    async def generate(self, prompt: str, params: GenerationParams) -> Optional[str]:
        logger.info(f"Generating avatar with {self.model} (size={params.size})")
        try:
            response = await self.client.aio.models.generate_images(
                model=self.model,
                prompt=prompt,
                config=types.GenerateImagesConfig(
                    number_of_images=params.n,
                    aspect_ratio="1:1",
                    output_mime_type="image/png",
                ),
            )
        except (genai_errors.APIError, httpx.HTTPError) as e:
            raise self._translate(GENERATION_STAGE, e) from e

        if not response.generated_images:
            return None
        generated = response.generated_images[0].image
        if generated is None or not generated.image_bytes:
            return None
        encoded = ImageInput(data=generated.image_bytes, mime_type=generated.mime_type or "image/png")
        return encoded.to_data_uri()


def create_providers(
    provider: str,
    api_key: str,
    vision_model: str,
    image_model: str,
    timeout: Optional[float] = None
) -> Tuple[VisionDescriber, ImageGenerator]:
    """
    Build the describer/generator pair for a provider name.

    Raises:
        ValueError: If the provider is unknown
    """
    if provider == "openai":
        return (
            OpenAIVisionDescriber(api_key, vision_model, timeout),
            OpenAIImageGenerator(api_key, image_model, timeout),
        )
    if provider == "gemini":
        return (
            GeminiVisionDescriber(api_key, vision_model, timeout),
            GeminiImageGenerator(api_key, image_model, timeout),
        )
    raise ValueError(f"Unknown avatar provider '{provider}'")
