"""HTTP-level tests for /api/generate, /api/test and /healthz."""
import pytest
from fastapi.testclient import TestClient

from app import app
from avatars.exceptions import ProviderError
from avatars.routes import get_avatar_pipeline
from conftest import FAKE_AVATAR_URL, FAKE_DESCRIPTION, TEST_API_KEY, FakeDescriber, FakeGenerator


def upload(client, data: bytes, mime_type: str = "image/jpeg", field: str = "image"):
    return client.post("/api/generate", files={field: ("photo.jpg", data, mime_type)})


# ---------- /api/generate ----------
def test_generate_returns_avatar_url(client, describer, generator, jpeg_bytes):
    response = upload(client, jpeg_bytes)

    assert response.status_code == 200
    assert response.json() == {"url": FAKE_AVATAR_URL}
    assert describer.calls == 1
    assert describer.images[0].data == jpeg_bytes
    assert describer.images[0].mime_type == "image/jpeg"
    assert generator.calls == 1
    assert FAKE_DESCRIPTION in generator.prompts[0]


def test_generate_accepts_webcam_capture(client, generator):
    # Webcam stills arrive as an unnamed blob
    response = client.post(
        "/api/generate",
        files={"image": ("blob", b"\xff\xd8\xff\xe0webcam-frame\xff\xd9", "image/jpeg")},
    )

    assert response.status_code == 200
    assert generator.calls == 1


def test_generate_without_image_field(client, describer):
    response = upload(client, b"\xff\xd8\xff", field="photo")

    assert response.status_code == 400
    assert response.json() == {"error": "No image provided"}
    assert describer.calls == 0


def test_generate_with_empty_form(client, describer):
    response = client.post("/api/generate", data={"name": "me"})

    assert response.status_code == 400
    assert response.json() == {"error": "No image provided"}
    assert describer.calls == 0


def test_generate_rejects_string_image_field(client, describer):
    response = client.post("/api/generate", data={"image": "data:image/png;base64,AAAA"})

    assert response.status_code == 400
    assert response.json() == {"error": "No image provided"}
    assert describer.calls == 0


def test_generate_rejects_non_image_upload(client, describer):
    response = upload(client, b"just some text", mime_type="text/plain")

    assert response.status_code == 400
    assert response.json() == {"error": "No image provided"}
    assert describer.calls == 0


def test_generate_rejects_empty_upload(client, describer):
    response = upload(client, b"")

    assert response.status_code == 400
    assert response.json() == {"error": "Uploaded file is empty"}
    assert describer.calls == 0


@pytest.mark.parametrize("pipeline_overrides", [{"max_upload_bytes": 1024}])
def test_generate_rejects_oversized_upload(client, describer, jpeg_bytes):
    response = upload(client, jpeg_bytes)

    assert response.status_code == 413
    assert response.json() == {"error": "Image exceeds the upload size limit"}
    assert describer.calls == 0


def test_generate_without_api_key(client, monkeypatch, describer, generator, jpeg_bytes):
    monkeypatch.delenv("OPENAI_API_KEY")

    response = upload(client, jpeg_bytes)

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "OpenAI API key is not configured"
    assert body["details"]["name"] == "ConfigurationError"
    assert describer.calls == 0
    assert generator.calls == 0


def test_generate_missing_key_checked_before_form(client, monkeypatch, describer):
    monkeypatch.delenv("OPENAI_API_KEY")

    response = client.post("/api/generate")

    assert response.status_code == 500
    assert response.json()["error"] == "OpenAI API key is not configured"


@pytest.mark.parametrize("describer", [FakeDescriber(description="")])
def test_generate_empty_description(client, describer, generator, jpeg_bytes):
    response = upload(client, jpeg_bytes)

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Failed to analyze the image"
    assert body["details"] == {"message": "Failed to analyze the image", "name": "VisionError"}
    assert generator.calls == 0


@pytest.mark.parametrize("describer", [FakeDescriber(description="A person.")])
def test_generate_short_description(client, describer, generator, jpeg_bytes):
    response = upload(client, jpeg_bytes)

    assert response.status_code == 500
    assert response.json()["error"] == "Image analysis produced insufficient description"
    assert generator.calls == 0


@pytest.mark.parametrize("generator", [FakeGenerator(url=None)])
def test_generate_no_image_returned(client, describer, generator, jpeg_bytes):
    response = upload(client, jpeg_bytes)

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Failed to generate avatar"
    assert body["details"]["name"] == "GenerationError"
    assert generator.calls == 1


@pytest.mark.parametrize(
    "generator",
    [FakeGenerator(error=ProviderError("generation", "Your request was rejected by the safety system",
                                       response_body={"error": {"code": "content_policy_violation"}}))],
)
def test_generate_provider_error_hides_body_without_debug(client, generator, jpeg_bytes):
    response = upload(client, jpeg_bytes)

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Your request was rejected by the safety system"
    assert "response" not in body["details"]
    assert "stack" not in body["details"]


@pytest.mark.parametrize(
    "generator",
    [FakeGenerator(error=ProviderError("generation", "Rate limit reached",
                                       response_body={"error": {"code": "rate_limit_exceeded"}}))],
)
@pytest.mark.parametrize("pipeline_overrides", [{"debug": True}])
def test_generate_provider_error_with_debug(client, generator, jpeg_bytes):
    response = upload(client, jpeg_bytes)

    assert response.status_code == 500
    details = response.json()["details"]
    assert details["name"] == "ProviderError"
    assert details["response"] == {"error": {"code": "rate_limit_exceeded"}}
    assert "Traceback" in details["stack"]


@pytest.mark.parametrize("describer", [FakeDescriber(error=RuntimeError("socket closed"))])
def test_generate_unexpected_error(client, describer, generator, jpeg_bytes):
    response = upload(client, jpeg_bytes)

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "socket closed"
    assert body["details"]["name"] == "RuntimeError"
    assert generator.calls == 0


# ---------- /api/test ----------
def test_api_status_without_key(client, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY")

    response = client.get("/api/test")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "message": "API is working",
        "apiKeyConfigured": False,
        "apiKeyLength": 0,
    }


def test_api_status_with_key(client):
    response = client.get("/api/test")

    assert response.status_code == 200
    body = response.json()
    assert body["apiKeyConfigured"] is True
    assert body["apiKeyLength"] == len(TEST_API_KEY)
    assert TEST_API_KEY not in response.text


def test_api_status_reads_key_per_request(client, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "abc")
    assert client.get("/api/test").json()["apiKeyLength"] == 3

    monkeypatch.setenv("OPENAI_API_KEY", "abcdef")
    assert client.get("/api/test").json()["apiKeyLength"] == 6


# ---------- unhandled errors ----------
def test_unhandled_error_uses_global_handler(client, monkeypatch):
    def broken_pipeline():
        raise RuntimeError("pipeline wiring failed")

    monkeypatch.setitem(app.dependency_overrides, get_avatar_pipeline, broken_pipeline)
    with TestClient(app, raise_server_exceptions=False) as raw_client:
        response = raw_client.post("/api/generate", files={"image": ("photo.jpg", b"\xff\xd8\xff\xd9", "image/jpeg")})

    assert response.status_code == 500
    assert response.json() == {
        "error": "Failed to generate avatar",
        "details": {"message": "pipeline wiring failed", "name": "RuntimeError"},
    }


def test_framework_http_errors_keep_their_status(client):
    response = client.get("/api/generate")

    assert response.status_code == 405
    assert response.json() == {"detail": "Method Not Allowed"}


# ---------- /healthz ----------
def test_healthz(client):
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
