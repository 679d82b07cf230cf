# docfill/config.py
"""
Configuration module for the document filling assistant
Reads environment variables / .env so the LLM tier can be switched on or off without code changes
"""

import os
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variables"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # OpenAI Configuration (empty key = LLM tier disabled)
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.0
    openai_max_tokens: int = 256
    llm_timeout_seconds: float = 10.0

    # Langchain Configuration (Optional - for monitoring)
    langchain_tracing_v2: bool = False
    langchain_endpoint: Optional[str] = None
    langchain_api_key: Optional[str] = None
    langchain_project: str = "docfill"

    # Conversation Configuration
    history_window: int = 6
    clarification_max_chars: int = 300

    # Server Configuration
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # Document Configuration
    max_file_size_mb: int = 50
    allowed_file_types: list = [".docx"]
    session_timeout_minutes: int = 60

    @property
    def llm_enabled(self) -> bool:
        return bool(self.openai_api_key.strip())


def configure_tracing(config: Settings) -> None:
    """Export LangSmith tracing variables; LangChain only reads them from the process env"""
    if not config.langchain_tracing_v2:
        return
    exported = {
        "LANGCHAIN_TRACING_V2": "true",
        "LANGCHAIN_ENDPOINT": config.langchain_endpoint,
        "LANGCHAIN_API_KEY": config.langchain_api_key,
        "LANGCHAIN_PROJECT": config.langchain_project,
    }
    os.environ.update({key: value for key, value in exported.items() if value})


# Initialize global settings
settings = Settings()
configure_tracing(settings)
