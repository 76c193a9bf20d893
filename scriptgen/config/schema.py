from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator

SUPPORTED_PROVIDERS = ("openai", "groq", "ollama", "anthropic", "gemini")


class AISettings(BaseModel):
    enabled: bool = True
    provider: str = "openai"
    base_url: str | None = None
    model: str | None = None
    api_key: str | None = Field(default=None, repr=False)
    timeout_seconds: float = Field(default=30, gt=0)
    health_check_timeout_seconds: float = Field(default=5, gt=0)
    max_retries: int = Field(default=3, ge=1)
    temperature: float = Field(default=0.2, ge=0, le=2)
    max_tokens: int = Field(default=4000, gt=0)

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in SUPPORTED_PROVIDERS:
            raise ValueError(f"Unsupported provider: {value}. Expected one of {', '.join(SUPPORTED_PROVIDERS)}")
        return normalized

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str | None) -> str | None:
        return value.rstrip("/") if value else value

    @model_validator(mode="after")
    def validate_timeouts(self) -> "AISettings":
        if self.health_check_timeout_seconds >= self.timeout_seconds:
            raise ValueError("health_check_timeout_seconds must be shorter than timeout_seconds")
        return self


class BrowserSettings(BaseModel):
    browser: str = "chrome"
    headless: bool = True
    page_load_timeout_seconds: int = 10
    script_timeout_seconds: float = 5
    window_width: int = Field(default=1440, gt=0)
    window_height: int = Field(default=1200, gt=0)

    @field_validator("browser")
    @classmethod
    def validate_browser(cls, value: str) -> str:
        normalized = value.lower()
        if normalized not in {"chrome", "firefox"}:
            raise ValueError(f"Unsupported browser: {value}")
        return normalized


class OutputSettings(BaseModel):
    framework: str = "Selenium Java"
    page_object_class_name: str = "ApplicationPage"
    test_class_name: str = "ApplicationTest"
    package_name: str = "com.example.automation"
    artifacts_root: str = "artifacts"

    @field_validator("page_object_class_name", "test_class_name")
    @classmethod
    def validate_class_name(cls, value: str) -> str:
        if not value.isidentifier():
            raise ValueError(f"Invalid class name: {value!r}")
        return value


class GeneratorConfig(BaseModel):
    ai: AISettings = Field(default_factory=AISettings)
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    output: OutputSettings = Field(default_factory=OutputSettings)
    log_level: str = "INFO"
