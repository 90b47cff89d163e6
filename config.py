"""
Configuration module - loads all settings from environment variables.
"""
import os
from typing import List
from dotenv import load_dotenv

# Load environment variables from .env file
try:
    load_dotenv()
except Exception as e:
    print(f"Warning: Failed to load .env file: {e}")
    print("Continuing with environment variables or defaults...")


# Provider name -> environment variable holding its API key
PROVIDER_API_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "gemini": "GEMINI_API_KEY",
}

PROVIDER_LABELS = {
    "openai": "OpenAI",
    "gemini": "Gemini",
}


class Config:
    """Application configuration loaded from environment variables."""

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Safely parse integer environment variable."""
        try:
            return int(os.getenv(key, str(default)))
        except (ValueError, TypeError) as e:
            print(f"Warning: Invalid integer for {key}, using default {default}: {e}")
            return default

    @staticmethod
    def _get_float(key: str, default: float) -> float:
        """Safely parse float environment variable."""
        try:
            return float(os.getenv(key, str(default)))
        except (ValueError, TypeError) as e:
            print(f"Warning: Invalid float for {key}, using default {default}: {e}")
            return default

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Safely parse boolean environment variable."""
        try:
            value = os.getenv(key, str(default)).lower()
            return value in ("true", "1", "yes", "on")
        except Exception as e:
            print(f"Warning: Invalid boolean for {key}, using default {default}: {e}")
            return default

    # Provider selection
    AVATAR_PROVIDER: str = os.getenv("AVATAR_PROVIDER", "openai").strip().lower()
    AVATAR_STYLE: str = os.getenv("AVATAR_STYLE", "notion").strip().lower()

    # OpenAI models
    OPENAI_VISION_MODEL: str = os.getenv("OPENAI_VISION_MODEL", "gpt-4o")
    OPENAI_IMAGE_MODEL: str = os.getenv("OPENAI_IMAGE_MODEL", "dall-e-3")

    # Gemini models
    GEMINI_VISION_MODEL: str = os.getenv("GEMINI_VISION_MODEL", "gemini-2.5-flash")
    GEMINI_IMAGE_MODEL: str = os.getenv("GEMINI_IMAGE_MODEL", "imagen-4.0-generate-001")

    # Remote call timeouts (seconds)
    VISION_TIMEOUT_SECONDS: float = _get_float.__func__("VISION_TIMEOUT_SECONDS", 60.0)
    GENERATION_TIMEOUT_SECONDS: float = _get_float.__func__("GENERATION_TIMEOUT_SECONDS", 60.0)
    DISCONNECT_POLL_SECONDS: float = _get_float.__func__("DISCONNECT_POLL_SECONDS", 0.5)

    # Upload limits
    MAX_UPLOAD_BYTES: int = _get_int.__func__("MAX_UPLOAD_BYTES", 10 * 1024 * 1024)

    # Include stack traces and raw provider error bodies in error responses
    DEBUG_ERRORS: bool = _get_bool.__func__("DEBUG_ERRORS", False)

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = _get_int.__func__("PORT", 8000)
    CORS_ORIGINS: List[str] = [
        origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()
    ]

    @classmethod
    def provider_label(cls) -> str:
        """Human readable name of the configured provider."""
        return PROVIDER_LABELS.get(cls.AVATAR_PROVIDER, cls.AVATAR_PROVIDER)

    @classmethod
    def get_provider_api_key(cls) -> str:
        """
        Read the configured provider's API key from the environment.

        Read on every call so a key added after startup is picked up on the
        next request. Returns an empty string when unset.
        """
        env_name = PROVIDER_API_KEY_ENV.get(cls.AVATAR_PROVIDER)
        if not env_name:
            return ""
        return os.getenv(env_name, "")

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration."""
        if cls.AVATAR_PROVIDER not in PROVIDER_API_KEY_ENV:
            raise ValueError(
                f"AVATAR_PROVIDER must be one of {sorted(PROVIDER_API_KEY_ENV)}, got '{cls.AVATAR_PROVIDER}'"
            )
        # Imported here: avatars imports config
        from avatars.templates import STYLE_TEMPLATES
        if cls.AVATAR_STYLE not in STYLE_TEMPLATES:
            raise ValueError(
                f"AVATAR_STYLE must be one of {sorted(STYLE_TEMPLATES)}, got '{cls.AVATAR_STYLE}'"
            )
        if not cls.get_provider_api_key():
            raise ValueError(f"{PROVIDER_API_KEY_ENV[cls.AVATAR_PROVIDER]} environment variable is required")
