from pydantic import model_validator
from pydantic_settings import BaseSettings


SUPPORTED_PROVIDERS = ("deepseek", "gemini")


class Settings(BaseSettings):
    """Application settings from environment variables"""

    # Application Settings
    APP_NAME: str = "PAU Math Tutor"
    APP_VERSION: str = "3.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # LLM Configuration - DeepSeek is the default provider
    LLM_PROVIDER: str = "deepseek"
    DEEPSEEK_API_KEY: str = ""
    DEEPSEEK_API_URL: str = "https://api.deepseek.com/v1/chat/completions"
    DEEPSEEK_MODEL: str = "deepseek-chat"
    GEMINI_API_KEY: str = ""
    GEMINI_API_URL: str = "https://generativelanguage.googleapis.com/v1beta/models"
    GEMINI_MODEL: str = "gemini-1.5-flash"
    LLM_TEMPERATURE: float = 0.3
    MAX_TOKENS: int = 800
    GEMINI_TOP_P: float = 0.8
    GEMINI_TOP_K: int = 40

    # Time budget (seconds). The host kills the function at PLATFORM_MAX_DURATION.
    UPSTREAM_TIMEOUT: float = 9.0
    PLATFORM_MAX_DURATION: int = 10

    # Request limits
    MAX_PROMPT_LENGTH: int = 500
    MAX_BODY_BYTES: int = 1024 * 1024

    # Behaviour switches
    FALLBACK_ON_ANY_FAILURE: bool = False
    TEST_MODE_ENABLED: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @model_validator(mode="after")
    def check_time_budget(self) -> "Settings":
        if self.LLM_PROVIDER not in SUPPORTED_PROVIDERS:
            raise ValueError(
                f"LLM_PROVIDER must be one of {', '.join(SUPPORTED_PROVIDERS)}"
            )
        if self.UPSTREAM_TIMEOUT <= 0:
            raise ValueError("UPSTREAM_TIMEOUT must be positive")
        if self.UPSTREAM_TIMEOUT >= self.PLATFORM_MAX_DURATION:
            raise ValueError("UPSTREAM_TIMEOUT must be shorter than PLATFORM_MAX_DURATION")
        return self

    @property
    def provider_api_key(self) -> str:
        """API key of the selected provider (empty when not configured)"""
        if self.LLM_PROVIDER == "gemini":
            return self.GEMINI_API_KEY
        return self.DEEPSEEK_API_KEY

    @property
    def api_key_configured(self) -> bool:
        return bool(self.provider_api_key.strip())


def get_settings() -> Settings:
    """Build settings per request so the key is read at invocation time."""
    return Settings()


# Global settings instance
settings = Settings()
