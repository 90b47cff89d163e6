"""Avatar generation module."""
from avatars.models import (
    ImageInput,
    GenerationParams,
    StyleTemplate,
    PipelineSuccess,
    PipelineFailure,
    PipelineResult
)
from avatars.templates import STYLE_TEMPLATES, get_style_template, compose_prompt
from avatars.pipeline import AvatarPipeline, build_pipeline

__all__ = [
    "ImageInput",
    "GenerationParams",
    "StyleTemplate",
    "PipelineSuccess",
    "PipelineFailure",
    "PipelineResult",
    "STYLE_TEMPLATES",
    "get_style_template",
    "compose_prompt",
    "AvatarPipeline",
    "build_pipeline"
]
