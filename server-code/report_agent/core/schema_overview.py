# report_agent/core/schema_overview.py
from __future__ import annotations
import logging
import time
from typing import Dict, List, Tuple

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from report_agent.core.redact import redact
from report_agent.core.schema_catalog import ALLOWED_TABLES, REPORT_SCHEMA

logger = logging.getLogger(__name__)

# Very small in-process cache so we don't rebuild the overview every request
_CACHE: Dict[str, Tuple[float, str]] = {}
_TTL_SECONDS = 300  # 5 minutes


def build_report_schema(engine: Engine, max_cols_per_table: int = 40) -> str:
    """
    Schema summary of the whitelisted tables read from live metadata, in the
    same markdown shape as the static summary. Tables missing from the database
    are skipped; an unreachable database yields the static summary.
    """
    k = str(engine.url)
    now = time.time()
    hit = _CACHE.get(k)
    if hit and (now - hit[0] < _TTL_SECONDS):
        return hit[1]

    try:
        with engine.connect() as conn:
            insp = inspect(conn)
            present = set(insp.get_table_names())
            lines: List[str] = ["## Database Schema"]
            for table in ALLOWED_TABLES:
                if table not in present:
                    continue
                pk = set(insp.get_pk_constraint(table).get("constrained_columns") or [])
                fks = {
                    fk["constrained_columns"][0]: f"{fk['referred_table']}({fk['referred_columns'][0]})"
                    for fk in insp.get_foreign_keys(table)
                    if fk.get("constrained_columns") and fk.get("referred_columns")
                }
                lines.append(f"\n### {table}")
                for c in insp.get_columns(table)[:max_cols_per_table]:
                    desc = f"- {c['name']} {c['type']}"
                    if c["name"] in pk:
                        desc += " PK"
                    if c["name"] in fks:
                        desc += f" -> {fks[c['name']]}"
                    lines.append(desc)
    except Exception as ex:
        logger.warning("Live schema unavailable; using static summary: %s", redact(str(ex)))
        return REPORT_SCHEMA

    overview = "\n".join(lines) if len(lines) > 1 else REPORT_SCHEMA
    _CACHE[k] = (now, overview)
    return overview
