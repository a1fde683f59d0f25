"""
Configuration Settings.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings."""

    # App info
    app_name: str = "Memory Arena"
    app_version: str = "1.0.0"
    debug: bool = True

    # Database (any SQLAlchemy async URL)
    database_url: str = "sqlite+aiosqlite:///./data/arena.db"
    database_echo: bool = False

    # LLM gateway (LiteLLM, OpenAI-compatible) used by Mem0 and Supermemory agents
    litellm_api_url: Optional[str] = None
    litellm_api_key: Optional[str] = None
    llm_timeout: float = 120.0
    max_output_tokens: int = 4096
    default_model_id: str = "gpt-5-mini"

    # Memory providers
    mem0_api_url: str = "https://api.mem0.ai"
    mem0_api_key: Optional[str] = None
    supermemory_api_url: str = "https://api.supermemory.ai"
    supermemory_api_key: Optional[str] = None
    memorylake_api_url: Optional[str] = None
    memorylake_api_key: Optional[str] = None
    memory_search_limit: int = 5

    # Arena backend (documents, uploads, drive downloads, profile)
    arena_api_base: Optional[str] = None
    arena_timeout: float = 30.0

    # Main identity domain (session cookie -> user)
    main_domain_api_url: Optional[str] = None
    session_cookie_name: str = "session"

    # Chat behaviour
    title_max_length: int = 100
    attachment_base64_limit_bytes: int = 20 * 1024 * 1024  # 20 MB

    # Client-side pending-send relay
    relay_storage_path: str = "./data/relay"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file_path: str = "./logs/arena.log"
    log_file_enabled: bool = True
    log_console_enabled: bool = True
    log_json_format: bool = True  # JSON format for files, human-readable for console
    log_api_requests: bool = True  # Log all API requests/responses
    log_llm_calls: bool = True  # Log upstream LLM calls with token usage

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
