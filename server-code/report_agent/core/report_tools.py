# report_agent/core/report_tools.py
from __future__ import annotations
import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, field_validator

from report_agent.core.read_only_db_executor import ReadOnlyDbExecutor
from report_agent.core.redact import redact
from report_agent.core.schema_catalog import allowed_sample, match_table
from report_agent.core.sql_guard import (
    READ_ONLY_ERROR,
    SqlTableCheckError,
    disallowed_tables,
    is_read_only,
)

logger = logging.getLogger(__name__)

RUN_QUERY = "run_query"
DESCRIBE_TABLE = "describe_table"

# Function declarations handed to the chat capability (JSON-schema parameters).
TOOL_SPECS: List[Dict[str, Any]] = [
    {
        "name": RUN_QUERY,
        "description": (
            "Execute a read-only SELECT query on the database. Use for report data. "
            "SQL must be SELECT only. params: JSON array string, e.g. '[]' or '[\"2024-01-01\"]'."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "sql": {"type": "string", "description": "SELECT query"},
                "params": {"type": "string", "description": "JSON array of parameters"},
            },
            "required": ["sql"],
        },
    },
    {
        "name": DESCRIBE_TABLE,
        "description": "Get column names and types for a table. Use when unsure about a table's schema before writing SQL.",
        "parameters": {
            "type": "object",
            "properties": {"table": {"type": "string", "description": "Table name"}},
            "required": ["table"],
        },
    },
]


def _dump(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, default=str, ensure_ascii=False)


def _error(message: str, **extra: Any) -> str:
    return _dump({"error": message, **extra})


class RunQueryArgs(BaseModel):
    sql: Optional[str] = None
    params: Any = None

    @field_validator("sql", mode="before")
    @classmethod
    def _sql_or_none(cls, v: Any) -> Optional[str]:
        return v if isinstance(v, str) else None

    def param_list(self) -> List[Any]:
        """params as a list; anything unparseable means no parameters."""
        p = self.params
        if isinstance(p, list):
            return p
        if isinstance(p, str):
            try:
                p = json.loads(p or "[]")
            except ValueError:
                return []
            return p if isinstance(p, list) else []
        return []


class DescribeTableArgs(BaseModel):
    table: Optional[str] = None

    @field_validator("table", mode="before")
    @classmethod
    def _table_or_none(cls, v: Any) -> Optional[str]:
        return None if v is None or isinstance(v, (dict, list)) else str(v)


def decode_arguments(args_json: Any) -> Dict[str, Any]:
    if isinstance(args_json, dict):
        return args_json
    if not isinstance(args_json, str) or not args_json.strip():
        return {}
    try:
        decoded = json.loads(args_json)
    except ValueError:
        logger.info("Tool arguments were not valid JSON; using empty arguments")
        return {}
    return decoded if isinstance(decoded, dict) else {}


class ReportTools:
    """
    The two read-only tools exposed to the model. Every method returns a JSON
    string and never raises, so failures flow back into the conversation.
    """

    def __init__(self, db: ReadOnlyDbExecutor, dialect: str = "mysql"):
        self.db = db
        self.dialect = dialect

    def run_query(self, sql: Any, params: Any = None) -> str:
        args = RunQueryArgs(sql=sql, params=params)
        if not args.sql or not args.sql.strip():
            return _error("Missing sql")
        if not is_read_only(args.sql):
            logger.info("Rejected non read-only SQL")
            return _error(READ_ONLY_ERROR)
        try:
            blocked = disallowed_tables(args.sql, self.dialect)
        except SqlTableCheckError as e:
            return _error(f"{e}. Rewrite the query as a single SELECT statement.")
        if blocked:
            return _error(
                "Query references tables outside the allowed list: "
                f"{', '.join(blocked)}. Use one of: {allowed_sample()}"
            )
        try:
            res = self.db.query(args.sql, args.param_list())
        except Exception as ex:
            logger.warning("run_query failed: %s", redact(str(ex)))
            return _error(
                f"Query execution failed: {ex}. Check SQL syntax, table names, column names, and parameter types.",
                columns=[],
                rows=[],
            )
        return _dump({"columns": res.columns, "rows": res.rows})

    def describe_table(self, table: Any) -> str:
        args = DescribeTableArgs(table=table)
        name = match_table(args.table)
        if name is None:
            return _error(f"Unknown or disallowed table. Use one of: {allowed_sample()}")
        try:
            cols = self.db.describe(name)
        except Exception as ex:
            logger.warning("describe_table failed for %s: %s", name, redact(str(ex)))
            return _error(f"Could not get schema for table: {name}. Refer to the system schema. Details: {ex}")
        return _dump({"columns": cols})

    def dispatch(self, tool_name: str, args_json: Any) -> str:
        args = decode_arguments(args_json)
        if tool_name == RUN_QUERY:
            return self.run_query(args.get("sql"), args.get("params"))
        if tool_name == DESCRIBE_TABLE:
            return self.describe_table(args.get("table"))
        return _error(f"Unknown tool: {tool_name}")
