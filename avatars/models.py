"""Pydantic models for avatar generation."""
import base64
from typing import Any, Dict, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


class ImageInput(BaseModel):
    """Image received from the client, kept only for the lifetime of one request."""
    data: bytes = Field(..., min_length=1, description="Raw image bytes")
    mime_type: str = Field(..., pattern=r"^image/", description="Declared MIME type, e.g. image/jpeg")

    @property
    def size(self) -> int:
        return len(self.data)

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")

    def to_data_uri(self) -> str:
        """Encode as ``data:<mime>;base64,<data>`` for multimodal chat requests."""
        return f"data:{self.mime_type};base64,{self.to_base64()}"


class GenerationParams(BaseModel):
    """Fixed text-to-image parameters attached to a style template."""
    model_config = ConfigDict(frozen=True)

    n: Literal[1] = Field(1, description="Number of images; always exactly one")
    size: str = Field("1024x1024", description="Square output resolution")
    quality: Literal["standard", "hd"] = Field("standard", description="Quality tier")
    style: Literal["vivid", "natural"] = Field("vivid", description="Style tier")


class StyleTemplate(BaseModel):
    """Immutable description of one avatar style."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Template identifier")
    vision_instruction: str = Field(..., description="Instruction sent alongside the photo to the vision model")
    vision_max_tokens: int = Field(1000, ge=1, description="Cap on the vision model's reply length")
    prompt_template: str = Field(..., description="Image prompt with a single {description} placeholder")
    reinforcement: Optional[str] = Field(None, description="Optional block appended after the prompt")
    params: GenerationParams = Field(default_factory=GenerationParams)


class PipelineSuccess(BaseModel):
    """Successful pipeline outcome."""
    url: str = Field(..., min_length=1, description="URL (or data URI) of the generated avatar")


class PipelineFailure(BaseModel):
    """Failed pipeline outcome, already normalized for the HTTP response."""
    error: str = Field(..., description="User-facing error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Diagnostics for operators")
    status_code: int = Field(500, description="HTTP status to answer with")


PipelineResult = Union[PipelineSuccess, PipelineFailure]


class GenerateAvatarResponse(BaseModel):
    """Response model for a generated avatar."""
    url: str = Field(..., description="URL of the generated avatar")


class ErrorResponse(BaseModel):
    """Error envelope returned by /api/generate."""
    error: str = Field(..., description="User-facing error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Diagnostic details")


class ApiStatusResponse(BaseModel):
    """Response model for the /api/test diagnostic endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    status: str = Field("ok", description="Service status")
    message: str = Field("API is working", description="Status message")
    api_key_configured: bool = Field(..., alias="apiKeyConfigured", description="Whether a provider key is set")
    api_key_length: int = Field(..., alias="apiKeyLength", description="Length of the provider key, 0 if unset")
