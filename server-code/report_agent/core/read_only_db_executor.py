# report_agent/core/read_only_db_executor.py
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import List, Dict, Any, Sequence
from decimal import Decimal
from datetime import date, datetime, time

from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection, Engine

from report_agent.core.redact import redact

logger = logging.getLogger(__name__)


def _json_safe(v: Any) -> Any:
    """Coerce DB types into JSON-serializable values."""
    if isinstance(v, Decimal):
        # Use float for analytics; switch to str if you need exact precision
        return float(v)
    if isinstance(v, (date, datetime, time)):
        return v.isoformat()
    if isinstance(v, memoryview):
        v = v.tobytes()
    if isinstance(v, (bytes, bytearray)):
        return bytes(v).decode("utf-8", errors="replace")
    return v


def _adapt_placeholders(sql: str, paramstyle: str) -> str:
    """
    Statements arrive with positional `?` markers. Rewrite them for drivers that
    use another paramstyle, leaving quoted text alone.
    """
    if paramstyle == "qmark":
        return sql
    out: List[str] = []
    quote = None
    n = 0
    for ch in sql:
        if quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"', "`"):
            quote = ch
        elif ch == "?":
            n += 1
            if paramstyle in ("format", "pyformat"):
                out.append("%s")
            elif paramstyle == "numeric":
                out.append(f":{n}")
            else:  # named
                out.append(f":p{n}")
            continue
        if ch == "%" and paramstyle in ("format", "pyformat"):
            out.append("%%")
            continue
        out.append(ch)
    return "".join(out)


@dataclass
class QueryResult:
    columns: List[str] = field(default_factory=list)
    rows: List[List[Any]] = field(default_factory=list)


class ReadOnlyDbExecutor:
    def __init__(self, engine: Engine, max_rows: int = 5000, statement_timeout_ms: int = 20000):
        self.engine = engine
        self.max_rows = max_rows
        self.statement_timeout_ms = statement_timeout_ms

    def _apply_guards(self, conn: Connection) -> None:
        name = self.engine.dialect.name
        if name == "postgresql":
            # the server refuses writes for the rest of this transaction
            conn.exec_driver_sql("SET TRANSACTION READ ONLY")
        ms = int(self.statement_timeout_ms)
        if ms <= 0:
            return
        if name == "postgresql":
            conn.exec_driver_sql(f"SET LOCAL statement_timeout = {ms}")
        elif name in ("mysql", "mariadb"):
            conn.exec_driver_sql(f"SET SESSION MAX_EXECUTION_TIME = {ms}")

    def query(self, sql: str, params: Sequence[Any] = ()) -> QueryResult:
        """
        Run one statement with positional parameters. The caller is expected to
        have passed `sql` through the read-only gate; driver errors propagate.
        """
        paramstyle = self.engine.dialect.paramstyle
        stmt = _adapt_placeholders(sql, paramstyle)
        values = list(params or [])
        if paramstyle == "named":
            bound: Any = {f"p{i}": v for i, v in enumerate(values, 1)}
        else:
            bound = tuple(values)
        with self.engine.begin() as conn:
            self._apply_guards(conn)
            result = conn.exec_driver_sql(stmt, bound)
            if not result.returns_rows:
                return QueryResult()
            columns = [str(k) for k in result.keys()]
            fetched = result.fetchmany(self.max_rows) if self.max_rows > 0 else result.fetchall()
            rows = [[_json_safe(v) for v in r] for r in fetched]
        if self.max_rows > 0 and len(rows) >= self.max_rows:
            logger.info("Result truncated to %d rows", self.max_rows)
        return QueryResult(columns=columns, rows=rows)

    def describe(self, table: str) -> List[Dict[str, Any]]:
        """
        Column name/type pairs for `table`. Tries the SQLAlchemy inspector first,
        then information_schema; raises if neither yields columns.
        """
        try:
            cols = self._describe_via_inspector(table)
            if cols:
                return cols
            logger.info("Inspector returned no columns for %s; trying information_schema", table)
        except Exception as ex:
            logger.info("Inspector failed for %s (%s); trying information_schema", table, redact(str(ex)))
        cols = self._describe_via_information_schema(table)
        if not cols:
            raise LookupError(f"No columns found for {table}")
        return cols

    def _describe_via_inspector(self, table: str) -> List[Dict[str, Any]]:
        with self.engine.connect() as conn:
            return [{"name": c["name"], "type": str(c["type"])} for c in inspect(conn).get_columns(table)]

    def _describe_via_information_schema(self, table: str) -> List[Dict[str, Any]]:
        with self.engine.begin() as conn:
            rows = conn.execute(text("""
                SELECT column_name, data_type
                FROM information_schema.columns
                WHERE table_name = :t
                ORDER BY ordinal_position
            """), {"t": table}).all()
        return [{"name": r[0], "type": r[1]} for r in rows]

    def ping(self) -> QueryResult:
        return self.query("SELECT 1 AS ok")
