# report_agent/core/sql_guard.py
from __future__ import annotations
import re
from typing import List

import sqlglot
from sqlglot import expressions as exp
from sqlglot.errors import SqlglotError

from report_agent.core.schema_catalog import match_table

# Statement must open with one of these (WITH lets a CTE wrap a SELECT)
ALLOWED_PREFIXES = ("SELECT", "WITH")
BANNED_VERBS = frozenset({"DROP", "DELETE", "UPDATE", "INSERT", "ALTER", "CREATE", "TRUNCATE", "EXEC", "EXECUTE"})
WS = re.compile(r"\s+")
# words split on anything but identifier characters, so "1;DELETE" and "AS(DELETE" still expose the verb
WORD = re.compile(r"[A-Z0-9_$]+")

READ_ONLY_ERROR = (
    "Only SELECT queries are allowed. Dangerous operations like DROP, DELETE, "
    "UPDATE, INSERT, ALTER are blocked."
)

# Query roots a read-only statement may have
_QUERY_ROOTS = (exp.Select, exp.Union, exp.Intersect, exp.Except, exp.Subquery)
# Nodes that write or run arbitrary commands, wherever they sit in the tree
_WRITE_NODES = (exp.Insert, exp.Update, exp.Delete, exp.Merge, exp.Drop, exp.Create, exp.Command)


def is_read_only(sql: str) -> bool:
    """
    Lexical gate: SELECT/WITH prefix and no banned verb as a word, whether
    separated by whitespace or by punctuation. Not a parser, so a literal such
    as 'please DELETE me' is rejected too.
    """
    if not isinstance(sql, str):
        return False
    normalized = WS.sub(" ", sql).strip().upper()
    if not normalized:
        return False
    if any(tok in BANNED_VERBS for tok in WORD.findall(normalized)):
        return False
    return normalized.startswith(ALLOWED_PREFIXES)


class SqlTableCheckError(ValueError):
    pass


def _parse_single_query(sql: str, dialect: str) -> exp.Expression:
    try:
        trees = [t for t in sqlglot.parse(sql, read=dialect) if t is not None]
    except SqlglotError as e:
        raise SqlTableCheckError(f"Could not parse SQL: {e}") from e
    except Exception as e:  # noqa: BLE001
        raise SqlTableCheckError(f"Could not analyze SQL: {e}") from e
    if not trees:
        raise SqlTableCheckError("Empty or invalid SQL")
    if len(trees) > 1:
        raise SqlTableCheckError(f"Only one statement is allowed, got {len(trees)}")
    tree = trees[0]
    if not isinstance(tree, _QUERY_ROOTS):
        raise SqlTableCheckError(f"Statement is not a query ({tree.key.upper()})")
    writer = tree.find(*_WRITE_NODES)
    if writer is not None:
        raise SqlTableCheckError(f"Statement contains a data-changing {writer.key.upper()}")
    return tree


def referenced_tables(sql: str, dialect: str = "mysql") -> List[str]:
    """
    Base tables a single read-only query reads from, CTE names excluded.
    Raises SqlTableCheckError for unparseable SQL, several statements, or any
    write nested in the query (e.g. a DELETE inside a CTE).
    """
    tree = _parse_single_query(sql, dialect)
    ctes = {(c.alias_or_name or "").lower() for c in tree.find_all(exp.CTE)}
    tables: List[str] = []
    for t in tree.find_all(exp.Table):
        name = (t.name or "").strip()
        if name and name.lower() not in ctes and name not in tables:
            tables.append(name)
    return tables


def disallowed_tables(sql: str, dialect: str = "mysql") -> List[str]:
    return [t for t in referenced_tables(sql, dialect) if match_table(t) is None]
