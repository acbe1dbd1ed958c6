# report_agent/core/report_parser.py
from __future__ import annotations
import json
import logging
import re
from enum import Enum
from typing import Any, List, Optional

from report_agent.core.errors import InvalidReportError
from report_agent.core.models import Message, ReportDocument
from report_agent.prompts.versioned.v1.report import JSON_RETRY_PROMPT

logger = logging.getLogger(__name__)

FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.I)
RAW_EXCERPT_CHARS = 500


class ReportParseError(ValueError):
    pass


def extract_json(text: str) -> str:
    """Body of the first fenced block if there is one, else the trimmed text."""
    m = FENCE_RE.search(text or "")
    if m:
        return m.group(1).strip()
    return (text or "").strip()


def parse_report(raw: str) -> ReportDocument:
    if not raw or not raw.strip():
        raise ReportParseError("Empty response from AI.")
    try:
        payload: Any = json.loads(extract_json(raw))
    except ValueError as e:
        raise ReportParseError(str(e)) from e
    if not isinstance(payload, dict):
        raise ReportParseError("Report must be a JSON object.")
    title = payload.get("title")
    if not isinstance(title, str) or not title.strip() or not isinstance(payload.get("sections"), list):
        raise ReportParseError("Report must have title and sections array.")
    return ReportDocument.from_payload(payload)


class RecoveryState(str, Enum):
    AWAITING_FINAL_ANSWER = "awaiting_final_answer"
    VALIDATING = "validating"
    RETRY_REQUESTED = "retry_requested"
    AWAITING_RETRY = "awaiting_retry"
    DONE = "done"
    FAILED = "failed"


class ReportRecovery:
    """
    Validates the model's final answer and allows exactly one corrective turn.

    AWAITING_FINAL_ANSWER -> VALIDATING -> DONE
                                        -> RETRY_REQUESTED -> AWAITING_RETRY -> VALIDATING -> DONE | FAILED

    Accepted and rejected answers are appended to `messages` as assistant turns,
    followed by the retry instruction when one is needed.
    """

    def __init__(self, messages: List[Message]):
        self.messages = messages
        self.state = RecoveryState.AWAITING_FINAL_ANSWER
        self.report: Optional[ReportDocument] = None

    def submit(self, raw: str) -> Optional[ReportDocument]:
        """
        Feed a candidate answer. Returns the report when accepted, None when a
        retry turn should be sent. Raises InvalidReportError once the retry fails.
        """
        if self.state is RecoveryState.AWAITING_FINAL_ANSWER:
            is_retry = False
        elif self.state is RecoveryState.AWAITING_RETRY:
            is_retry = True
        else:
            raise RuntimeError(f"Cannot submit an answer in state {self.state.value}")

        self.state = RecoveryState.VALIDATING
        raw = (raw or "").strip()
        try:
            report = parse_report(raw)
        except ReportParseError as e:
            return self._reject(raw, str(e), is_retry)

        self.messages.append(Message(role="assistant", content=raw))
        self.report = report
        self.state = RecoveryState.DONE
        return report

    def _reject(self, raw: str, reason: str, is_retry: bool) -> None:
        if is_retry:
            self.state = RecoveryState.FAILED
            raise InvalidReportError(
                f"Invalid report JSON after retry: {reason}. Raw: {raw[:RAW_EXCERPT_CHARS]}"
            )
        logger.info("Final answer rejected (%s); requesting a JSON-only resend", reason)
        self.messages.append(Message(role="assistant", content=raw))
        self.messages.append(Message(role="user", content=JSON_RETRY_PROMPT))
        self.state = RecoveryState.RETRY_REQUESTED
        return None

    def mark_retry_sent(self) -> None:
        if self.state is not RecoveryState.RETRY_REQUESTED:
            raise RuntimeError(f"No retry pending (state {self.state.value})")
        self.state = RecoveryState.AWAITING_RETRY
