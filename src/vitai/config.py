"""Configuration settings for the application."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pydantic settings class for the application."""

    # Loaded from environment variables or a .env file when present
    API_PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "info"  # Options: debug, info, warning, error, critical

    # Planner (LLM) configuration
    PLANNER: str = "openai"  # Options: openai, anthropic, gemini, tgi
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o"
    ANTHROPIC_API_KEY: str | None = None
    ANTHROPIC_MODEL: str = "claude-3-5-sonnet-latest"
    GEMINI_API_KEY: str | None = None
    GEMINI_MODEL: str = "gemini-2.5-pro"
    TGI_ENDPOINT: str = "http://tgi:8080/generate"
    PLANNER_TIMEOUT: float = 120.0  # seconds per planner call

    # Source-hosting (GitHub) configuration
    GITHUB_TOKEN: str | None = None
    GITHUB_API_URL: str = "https://api.github.com"
    TOOL_TIMEOUT: float = 30.0  # seconds per tool HTTP call
    ENFORCE_ALLOW_LIST: bool = True

    # Agent loop limits
    MAX_ITERATIONS: int = 100
    RUN_TIME_BUDGET: float = 1800.0  # seconds per run, 0 disables

    class Config:
        """Configuration for Pydantic settings."""

        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
