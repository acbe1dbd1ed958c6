# report_agent/settings.py
from __future__ import annotations
from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, AliasChoices


class Settings(BaseSettings):
    # pydantic v2 config
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Gemini (chat capability) ---
    # Left unset the agent reports the chat capability as unavailable.
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = Field(default="gemini-1.5-pro", validation_alias=AliasChoices("GEMINI_MODEL", "GEMINI_MODEL_REPORT"))
    GEMINI_FALLBACK_MODEL: str = "gemini-1.5-flash"
    GEMINI_TEMPERATURE: float = 0.0
    CHAT_TIMEOUT_SECONDS: float = Field(default=120.0, validation_alias=AliasChoices("CHAT_TIMEOUT_SECONDS", "GEMINI_TIMEOUT_SECONDS"))

    # --- Database (read-only) ---
    DB_URL_RO: str = "sqlite:///./shafaf.db"
    # sqlglot dialect for table checks; defaults to the engine dialect
    SQL_DIALECT: Optional[str] = None
    MAX_RESULT_ROWS: int = Field(default=5000, validation_alias=AliasChoices("MAX_RESULT_ROWS", "SQL_DEFAULT_LIMIT"))
    STATEMENT_TIMEOUT_MS: int = Field(default=20000, validation_alias=AliasChoices("STATEMENT_TIMEOUT_MS", "SQL_STATEMENT_TIMEOUT_MS"))  # 20s

    # --- Agent loop ---
    AGENT_MAX_TURNS: int = 12
    AGENT_TOOL_WORKERS: int = 4
    SCHEMA_SUMMARY_SOURCE: Literal["static", "database"] = "static"

    # Misc
    APP_NAME: str = "Shafaf Report Agent"
    APP_VERSION: str = "0.1.0"
    DOCS_SERVER_URL: str = "http://127.0.0.1:8001"
