"""
Runtime configuration for the poster pipeline.

Values come from environment variables, then from a ``.env`` file in the
working directory, then from the defaults below. Empty variables count as
unset.
"""
from typing import Literal, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Provider selection, credentials and browser tuning."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        populate_by_name=True,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # AI PROVIDER
    # -------------------------------------------------------------------------
    ai_provider: Literal["openai", "gemini"] = Field(default="openai", description="Selected AI backend")

    openai_api_key: str = Field(default="", description="OpenAI API key")
    openai_model: str = Field(default="gpt-4-turbo", description="Text completion model")
    openai_vision_model: str = Field(default="gpt-4o", description="Vision completion model")
    openai_image_model: str = Field(default="dall-e-3", description="Image generation model")
    openai_max_tokens: int = Field(default=4096, description="Completion token budget")

    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_API_KEY"),
        description="Google Gemini API key",
    )
    gemini_model: str = Field(default="gemini-2.5-flash", description="Text and vision model")
    gemini_image_model: str = Field(default="gemini-2.5-flash-image", description="Image generation model")

    temperature: float = Field(
        default=0.7,
        validation_alias=AliasChoices("OPENAI_TEMPERATURE", "AI_TEMPERATURE"),
        description="Sampling temperature",
    )
    request_timeout: float = Field(
        default=60.0,
        validation_alias="AI_REQUEST_TIMEOUT",
        description="Per-request AI timeout in seconds",
    )

    # -------------------------------------------------------------------------
    # BROWSER
    # -------------------------------------------------------------------------
    browser_executable_path: Optional[str] = Field(default=None, description="Chromium binary override")
    navigation_timeout_ms: int = Field(
        default=30000,
        validation_alias="BROWSER_NAVIGATION_TIMEOUT_MS",
        description="Page navigation timeout",
    )
    settle_delay_ms: int = Field(
        default=1000,
        validation_alias="BROWSER_SETTLE_DELAY_MS",
        description="Wait after cleanup before the screenshot",
    )

    @field_validator("ai_provider", mode="before")
    @classmethod
    def _normalise_provider(cls, value):
        if isinstance(value, str):
            return value.strip().lower() or "openai"
        return value

    @property
    def api_key(self) -> str:
        """Credential of the selected provider."""
        if self.ai_provider == "gemini":
            return self.gemini_api_key
        return self.openai_api_key

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables (and .env)."""
        return cls()
