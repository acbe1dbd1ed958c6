# report_agent/routers/reports.py
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from report_agent.deps import report_agent
from report_agent.core.errors import (
    ChatTimeoutError,
    ChatUnavailableError,
    InvalidReportError,
    MaxTurnsExceededError,
    ReportAgentError,
)
from report_agent.core.models import Message, ReportResult
from report_agent.core.report_agent import ReportAgent
from report_agent.core.schema_catalog import ALLOWED_TABLES

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/reports", tags=["reports"])

UNUSABLE_REPORT = "The AI returned an unusable report; try again or rephrase."


class ReportRequest(BaseModel):
    prompt: str
    model: Optional[str] = None


class RefineRequest(BaseModel):
    messages: List[Message] = Field(default_factory=list)
    refinement_text: str
    model: Optional[str] = None


def _run(agent: ReportAgent, prompt: str, **kwargs) -> ReportResult:
    try:
        return agent.generate_report(prompt, **kwargs)
    except ChatUnavailableError as ex:
        raise HTTPException(status_code=503, detail=str(ex))
    except ChatTimeoutError as ex:
        raise HTTPException(status_code=504, detail=str(ex))
    except InvalidReportError as ex:
        logger.warning("Unusable report: %s", ex)
        raise HTTPException(status_code=502, detail={"message": UNUSABLE_REPORT, "reason": str(ex)})
    except MaxTurnsExceededError as ex:
        raise HTTPException(status_code=502, detail={"message": UNUSABLE_REPORT, "reason": str(ex)})
    except ReportAgentError as ex:
        logger.exception("Report run failed: %s", ex)
        raise HTTPException(status_code=500, detail=str(ex))


@router.post("", response_model=ReportResult, summary="Generate a report from a natural-language request")
def create_report(body: ReportRequest, agent: ReportAgent = Depends(report_agent)):
    if not body.prompt or not body.prompt.strip():
        raise HTTPException(status_code=400, detail="Missing 'prompt' in request body.")
    return _run(agent, body.prompt.strip(), model=body.model)


@router.post("/refine", response_model=ReportResult, summary="Refine a previous report")
def refine_report(body: RefineRequest, agent: ReportAgent = Depends(report_agent)):
    if not body.messages:
        raise HTTPException(status_code=400, detail="Missing 'messages' from the previous report.")
    if not body.refinement_text or not body.refinement_text.strip():
        raise HTTPException(status_code=400, detail="Missing 'refinement_text' in request body.")
    return _run(
        agent,
        "",
        model=body.model,
        previous_messages=body.messages,
        refinement_text=body.refinement_text,
    )


@router.get("/tables", summary="Tables the report agent may query")
def list_tables():
    return {"tables": list(ALLOWED_TABLES)}
