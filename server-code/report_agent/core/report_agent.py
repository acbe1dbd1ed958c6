# report_agent/core/report_agent.py
from __future__ import annotations
import logging
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union

from report_agent.core.errors import (
    ChatUnavailableError,
    MaxTurnsExceededError,
    RunCancelledError,
)
from report_agent.core.models import ChatResponse, Message, ReportResult, ToolCall
from report_agent.core.report_parser import RecoveryState, ReportRecovery
from report_agent.core.report_tools import TOOL_SPECS, ReportTools
from report_agent.core.schema_catalog import REPORT_SCHEMA
from report_agent.prompts.versioned.v1.report import REFINEMENT_PROMPT, build_system_prompt

logger = logging.getLogger(__name__)


class ChatClient(Protocol):
    def chat(self, messages: List[Message], tools: List[Dict[str, Any]],
             model: Optional[str] = None, timeout: Optional[float] = None) -> ChatResponse:
        ...


MessageLike = Union[Message, Dict[str, Any]]


class ReportAgent:
    """
    Drives one tool-calling conversation per call to `generate_report`.

    The agent itself holds no per-run state, so one instance can serve
    concurrent runs; each run owns its transcript.
    """

    def __init__(
        self,
        chat_client: Optional[ChatClient],
        tools: ReportTools,
        schema_text: str = REPORT_SCHEMA,
        max_turns: int = 12,
        tool_workers: int = 4,
        chat_timeout: Optional[float] = None,
    ):
        self.chat_client = chat_client
        self.tools = tools
        self.schema_text = schema_text
        self.max_turns = max(1, int(max_turns))
        self.tool_workers = max(1, int(tool_workers))
        self.chat_timeout = chat_timeout

    # === Main entry ===
    def generate_report(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        previous_messages: Optional[Sequence[MessageLike]] = None,
        refinement_text: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ReportResult:
        """
        Fresh report from `prompt`, or a refinement when both `previous_messages`
        and `refinement_text` are given (then `prompt` is ignored).
        """
        if self.chat_client is None:
            raise ChatUnavailableError(
                "The AI chat service is not configured. Set GEMINI_API_KEY and restart the service."
            )
        run_id = uuid.uuid4().hex[:8]
        messages = self._initial_messages(prompt, previous_messages, refinement_text)
        logger.info("[%s] report run started (%d seed messages)", run_id, len(messages))

        with self._step(run_id, "tool-loop"):
            response = self._chat(messages, model, cancel_event)
            turns = 1
            while response.tool_calls:
                if turns >= self.max_turns:
                    logger.warning("[%s] still requesting tools after %d turns", run_id, turns)
                    raise MaxTurnsExceededError(self.max_turns)
                messages.append(Message(role="assistant", content=response.content or "", tool_calls=response.tool_calls))
                for tc, result in zip(response.tool_calls, self._dispatch_all(run_id, response.tool_calls, cancel_event)):
                    messages.append(Message(role="tool", content=result, tool_call_id=tc.id))
                response = self._chat(messages, model, cancel_event)
                turns += 1

        with self._step(run_id, "validation"):
            recovery = ReportRecovery(messages)
            report = recovery.submit(response.content)
            if recovery.state is RecoveryState.RETRY_REQUESTED:
                recovery.mark_retry_sent()
                retry = self._chat(messages, model, cancel_event)
                report = recovery.submit(retry.content)

        logger.info("[%s] report ready: %r with %d sections", run_id, report.title, len(report.sections))
        return ReportResult(report=report, messages=messages)

    def _initial_messages(
        self,
        prompt: str,
        previous_messages: Optional[Sequence[MessageLike]],
        refinement_text: Optional[str],
    ) -> List[Message]:
        refinement = (refinement_text or "").strip()
        if previous_messages and refinement:
            history = [m if isinstance(m, Message) else Message.model_validate(m) for m in previous_messages]
            history.append(Message(role="user", content=REFINEMENT_PROMPT.format(REFINEMENT=refinement)))
            return history
        return [
            Message(role="system", content=build_system_prompt(self.schema_text)),
            Message(role="user", content=prompt or ""),
        ]

    def _chat(self, messages: List[Message], model: Optional[str],
              cancel_event: Optional[threading.Event]) -> ChatResponse:
        self._check_cancel(cancel_event)
        # the client gets a snapshot; later appends never leak into an in-flight call
        return self.chat_client.chat(list(messages), TOOL_SPECS, model=model, timeout=self.chat_timeout)

    def _dispatch_all(self, run_id: str, calls: List[ToolCall],
                      cancel_event: Optional[threading.Event]) -> List[str]:
        def one(tc: ToolCall) -> str:
            self._check_cancel(cancel_event)
            logger.info("[%s] tool %s (%s)", run_id, tc.name, tc.id)
            return self.tools.dispatch(tc.name, tc.arguments)

        if len(calls) == 1:
            return [one(calls[0])]
        with ThreadPoolExecutor(max_workers=min(self.tool_workers, len(calls)),
                                thread_name_prefix="report-tool") as pool:
            # map() yields in submission order, keeping results paired to their calls
            return list(pool.map(one, calls))

    @staticmethod
    def _check_cancel(cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise RunCancelledError("Report run cancelled")

    @contextmanager
    def _step(self, run_id: str, name: str):
        t0 = time.perf_counter()
        try:
            yield
        finally:
            dt = int((time.perf_counter() - t0) * 1000)
            logger.info("[%s] step=%s latency_ms=%d", run_id, name, dt)
