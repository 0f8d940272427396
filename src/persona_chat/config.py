"""Configuration management with proper validation and environment handling."""

from enum import Enum
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environments."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class CompletionBackendConfig(BaseSettings):
    """OpenAI-compatible completion backend configuration."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("SAMBANOVA_API_KEY", "NEXT_PUBLIC_SAMBANOVA_API_KEY"),
        description="Bearer token for the completion backend",
    )
    api_url: str = Field(
        default="https://api.sambanova.ai/v1",
        validation_alias=AliasChoices("SAMBANOVA_API_URL"),
        description="Base URL of the chat-completions endpoint",
    )
    fallback_model: str = Field(
        default="Llama-4-Maverick-17B-128E-Instruct",
        validation_alias=AliasChoices("SAMBANOVA_FALLBACK_MODEL"),
        description="Model retried once when the requested model is not found",
    )
    default_temperature: float = Field(default=0.1, description="Temperature used when the agent sets none")
    default_max_tokens: int = Field(default=1024, description="Max tokens used when the agent sets none")
    default_top_p: float = Field(default=0.1, description="Nucleus sampling value sent with every request")

    @property
    def is_configured(self) -> bool:
        """Check if a credential is available."""
        return bool(self.api_key)

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        """Strip trailing slashes from the base URL."""
        return v.rstrip("/") if v else v


class MockBackendConfig(BaseSettings):
    """Local mock backend configuration."""

    model_config = SettingsConfigDict(env_prefix="MOCK_", env_file=".env", extra="ignore")

    min_delay: float = Field(default=1.0, description="Lower bound of the simulated latency in seconds")
    max_delay: float = Field(default=2.0, description="Upper bound of the simulated latency in seconds")
    default_model: str = Field(default="mock-llama-4", description="Model name echoed when the request names none")


class ModerationConfig(BaseSettings):
    """Content moderation configuration."""

    model_config = SettingsConfigDict(env_prefix="MODERATION_", env_file=".env", extra="ignore")

    enabled: bool = Field(default=True, description="Run the deny-list check before every send")


class ResilienceConfig(BaseSettings):
    """Timeouts for outbound calls."""

    model_config = SettingsConfigDict(env_prefix="RESILIENCE_", env_file=".env", extra="ignore")

    completion_request_timeout: float = Field(
        default=60.0, description="Timeout for a single real-backend completion call in seconds"
    )
    orchestration_timeout: float = Field(
        default=120.0, description="Upper bound for a whole send (including fallbacks) in seconds"
    )


class ApplicationConfig(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Application environment")
    debug: bool = Field(default=True, description="Enable debug mode")

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Path | None = Field(default=None, description="Log file path")

    @field_validator("environment", mode="before")
    @classmethod
    def parse_environment(cls, v: str) -> Environment:
        """Parse environment from string."""
        if isinstance(v, str):
            return Environment(v.lower())
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION


class Settings:
    """Centralized settings management."""

    def __init__(self):
        self._app: ApplicationConfig | None = None
        self._backend: CompletionBackendConfig | None = None
        self._mock: MockBackendConfig | None = None
        self._moderation: ModerationConfig | None = None
        self._resilience: ResilienceConfig | None = None

    @property
    def app(self) -> ApplicationConfig:
        """Get application configuration."""
        if self._app is None:
            self._app = ApplicationConfig()
        return self._app

    @property
    def backend(self) -> CompletionBackendConfig:
        """Get completion backend configuration."""
        if self._backend is None:
            self._backend = CompletionBackendConfig()
        return self._backend

    @property
    def mock(self) -> MockBackendConfig:
        """Get mock backend configuration."""
        if self._mock is None:
            self._mock = MockBackendConfig()
        return self._mock

    @property
    def moderation(self) -> ModerationConfig:
        """Get moderation configuration."""
        if self._moderation is None:
            self._moderation = ModerationConfig()
        return self._moderation

    @property
    def resilience(self) -> ResilienceConfig:
        """Get resilience configuration."""
        if self._resilience is None:
            self._resilience = ResilienceConfig()
        return self._resilience

    def reload(self) -> None:
        """Reload all configurations."""
        self._app = None
        self._backend = None
        self._mock = None
        self._moderation = None
        self._resilience = None


# Global settings instance
settings = Settings()
