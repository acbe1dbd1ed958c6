# report_agent/routers/health.py
from __future__ import annotations

import logging
from fastapi import APIRouter
from report_agent.deps import chat_client, db
from report_agent.core.redact import redact

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


@router.get("/health", summary="Liveness & readiness checks")
def health_check():
    return {"status": "ok", "chat_configured": chat_client() is not None}


@router.get("/health/db", summary="Database connectivity (read-only)")
def db_health():
    try:
        res = db().ping()
        return {"ok": True, "columns": res.columns, "rows": res.rows}
    except Exception as ex:
        logger.warning("DB health check failed: %s", redact(str(ex)))
        return {"ok": False, "error": redact(str(ex))}
