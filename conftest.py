"""Shared fixtures: deterministic stage fakes and a test client wired to them."""
import asyncio
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from app import app
from config import Config
from avatars.models import GenerationParams, ImageInput, StyleTemplate
from avatars.pipeline import AvatarPipeline
from avatars.providers import ImageGenerator, VisionDescriber
from avatars.routes import get_avatar_pipeline
from avatars.templates import NOTION_TEMPLATE

TEST_API_KEY = "sk-test-0123456789"
FAKE_AVATAR_URL = "https://images.example.com/avatars/generated.png"
# 40 characters
FAKE_DESCRIPTION = "Oval face, short curly hair, round specs"


class FakeDescriber(VisionDescriber):
    def __init__(self, description: Optional[str] = FAKE_DESCRIPTION, error: Exception = None, delay: float = 0):
        self.description = description
        self.error = error
        self.delay = delay
        self.calls = 0
        self.images: List[ImageInput] = []

    async def describe(self, image: ImageInput, template: StyleTemplate) -> Optional[str]:
        self.calls += 1
        self.images.append(image)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.description


class FakeGenerator(ImageGenerator):
    def __init__(self, url: Optional[str] = FAKE_AVATAR_URL, error: Exception = None, delay: float = 0):
        self.url = url
        self.error = error
        self.delay = delay
        self.calls = 0
        self.prompts: List[str] = []
        self.params: List[GenerationParams] = []

    async def generate(self, prompt: str, params: GenerationParams) -> Optional[str]:
        self.calls += 1
        self.prompts.append(prompt)
        self.params.append(params)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.url


@pytest.fixture(autouse=True)
def provider_env(monkeypatch):
    """Pin provider settings so a developer's .env does not leak into tests."""
    monkeypatch.setattr(Config, "AVATAR_PROVIDER", "openai")
    monkeypatch.setattr(Config, "AVATAR_STYLE", "notion")
    monkeypatch.setattr(Config, "DEBUG_ERRORS", False)
    monkeypatch.setenv("OPENAI_API_KEY", TEST_API_KEY)


@pytest.fixture
def describer():
    return FakeDescriber()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def make_pipeline(describer, generator):
    """Factory for pipelines using the fakes; the key is read when called."""
    def _make(**overrides) -> AvatarPipeline:
        kwargs = dict(
            api_key=Config.get_provider_api_key(),
            describer=describer,
            generator=generator,
            template=NOTION_TEMPLATE,
            vision_timeout=5,
            generation_timeout=5,
            max_upload_bytes=Config.MAX_UPLOAD_BYTES,
            debug=Config.DEBUG_ERRORS,
        )
        kwargs.update(overrides)
        return AvatarPipeline(**kwargs)
    return _make


@pytest.fixture
def pipeline_overrides():
    """Keyword overrides applied to the pipeline served by the test client."""
    return {}


@pytest.fixture
def client(make_pipeline, pipeline_overrides):
    app.dependency_overrides[get_avatar_pipeline] = lambda: make_pipeline(**pipeline_overrides)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def jpeg_bytes() -> bytes:
    """A 10KB payload with JPEG start/end markers."""
    body = bytes(range(256)) * 40
    return b"\xff\xd8\xff\xe0" + body[: 10 * 1024 - 6] + b"\xff\xd9"
