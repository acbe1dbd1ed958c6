# report_agent/core/errors.py
from __future__ import annotations


class ReportAgentError(Exception):
    """Base class for failures that end an agent run."""


class ChatUnavailableError(ReportAgentError):
    """The chat capability is not configured; raised before any turn is sent."""


class ChatTimeoutError(ReportAgentError):
    pass


class MaxTurnsExceededError(ReportAgentError):
    def __init__(self, max_turns: int):
        super().__init__(f"Model kept requesting tools after {max_turns} turns; giving up.")
        self.max_turns = max_turns


class RunCancelledError(ReportAgentError):
    pass


class InvalidReportError(ReportAgentError):
    """The model's final answer was not a usable report, even after one retry."""
