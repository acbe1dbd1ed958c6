# report_agent/deps.py
from __future__ import annotations
from functools import lru_cache
from typing import Optional

from sqlalchemy import create_engine

from report_agent.settings import Settings
from report_agent.core.gemini_client import GeminiChatClient
from report_agent.core.read_only_db_executor import ReadOnlyDbExecutor
from report_agent.core.report_agent import ReportAgent
from report_agent.core.report_tools import ReportTools
from report_agent.core.schema_catalog import REPORT_SCHEMA
from report_agent.core.schema_overview import build_report_schema


@lru_cache(maxsize=1)
def settings() -> Settings:
    return Settings()


@lru_cache(maxsize=1)
def engine():
    s = settings()
    # Pre-ping keeps connections healthy over time
    return create_engine(s.DB_URL_RO, pool_pre_ping=True)


@lru_cache(maxsize=1)
def db() -> ReadOnlyDbExecutor:
    s = settings()
    return ReadOnlyDbExecutor(
        engine=engine(),
        max_rows=s.MAX_RESULT_ROWS,
        statement_timeout_ms=s.STATEMENT_TIMEOUT_MS,
    )


@lru_cache(maxsize=1)
def chat_client() -> Optional[GeminiChatClient]:
    """None when no API key is configured; the agent then refuses to start a run."""
    s = settings()
    if not s.GEMINI_API_KEY:
        return None
    return GeminiChatClient(
        api_key=s.GEMINI_API_KEY,
        model=s.GEMINI_MODEL,
        fallback_model=s.GEMINI_FALLBACK_MODEL,
        temperature=s.GEMINI_TEMPERATURE,
        timeout=s.CHAT_TIMEOUT_SECONDS,
    )


def schema_text() -> str:
    # live summary is TTL-cached inside build_report_schema
    if settings().SCHEMA_SUMMARY_SOURCE == "database":
        return build_report_schema(engine())
    return REPORT_SCHEMA


# SQLAlchemy dialect name -> sqlglot dialect name
_SQLGLOT_DIALECTS = {"postgresql": "postgres", "mssql": "tsql", "mariadb": "mysql"}


def sql_dialect() -> str:
    s = settings()
    if s.SQL_DIALECT:
        return s.SQL_DIALECT
    name = engine().dialect.name
    return _SQLGLOT_DIALECTS.get(name, name)


def report_agent() -> ReportAgent:
    s = settings()
    return ReportAgent(
        chat_client(),
        ReportTools(db(), dialect=sql_dialect()),
        schema_text=schema_text(),
        max_turns=s.AGENT_MAX_TURNS,
        tool_workers=s.AGENT_TOOL_WORKERS,
        chat_timeout=s.CHAT_TIMEOUT_SECONDS,
    )
