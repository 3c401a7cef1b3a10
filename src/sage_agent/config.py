"""Configuration settings for the application."""

from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pydantic settings class for the application."""

    # Define the settings with default values and types
    # These will be loaded from environment variables or a .env file if not provided
    API_PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "info"  # Options: debug, info, warning, error, critical

    # LLM Configuration
    LLM_PROVIDER: str = "atoma"  # Options: atoma, openai, anthropic, tgi
    MODEL_NAME: str = "mistral/mistral-nemo-instruct-2407"
    LLM_TEMPERATURE: float = 0.2
    LLM_TIMEOUT: float = 60.0
    ATOMA_API_KEY: str | None = None
    ATOMA_BASE_URL: str = "https://api.atoma.network/v1"
    OPENAI_API_KEY: str | None = None
    ANTHROPIC_API_KEY: str | None = None
    TGI_ENDPOINT: str = "http://tgi:8080/generate"

    # Agent Configuration
    AGENT_NAME: str = "Atoma Sage"
    TOOL_TIMEOUT: float | None = 120.0  # seconds per tool call, None disables
    TOOL_MODULES: List[str] = []  # dotted modules exposing register_tools(registry)

    # CLI caller identity (the API takes these per request instead)
    WALLET_ADDRESS: str | None = None
    WALLET_PRIVATE_KEY: str | None = None

    class Config:
        """Configuration for Pydantic settings."""

        # Load environment variables from a .env file
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
