# report_agent/core/gemini_client.py
from __future__ import annotations
import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import google.generativeai as genai
from google.api_core.exceptions import (
    DeadlineExceeded,
    InternalServerError,
    ResourceExhausted,
    ServiceUnavailable,
)
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from report_agent.core.errors import ChatTimeoutError
from report_agent.core.models import ChatResponse, Message, ToolCall
from report_agent.core.redact import redact

logger = logging.getLogger(__name__)

_TYPE_MAP = {
    "object": "OBJECT",
    "string": "STRING",
    "number": "NUMBER",
    "integer": "INTEGER",
    "boolean": "BOOLEAN",
    "array": "ARRAY",
}


def _to_gemini_schema(js: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """JSON-schema fragment -> Gemini Schema casing."""
    if not isinstance(js, dict):
        return {"type": "OBJECT"}
    out: Dict[str, Any] = {"type": _TYPE_MAP.get(str(js.get("type", "object")).lower(), "OBJECT")}
    if isinstance(js.get("properties"), dict):
        out["properties"] = {k: _to_gemini_schema(v) for k, v in js["properties"].items()}
    if "items" in js:
        out["items"] = _to_gemini_schema(js["items"])
    for k in ("required", "enum", "description"):
        if k in js:
            out[k] = js[k]
    return out


def to_gemini_tools(tools: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    decls = [
        {
            "name": t["name"],
            "description": t.get("description", ""),
            "parameters": _to_gemini_schema(t.get("parameters")),
        }
        for t in tools
    ]
    return [{"function_declarations": decls}] if decls else []


def _tool_result_payload(content: str) -> Dict[str, Any]:
    try:
        decoded = json.loads(content or "{}")
    except ValueError:
        return {"result": content}
    return decoded if isinstance(decoded, dict) else {"result": decoded}


def to_gemini_contents(messages: List[Message]) -> Tuple[str, List[Dict[str, Any]]]:
    """
    Split the transcript into (system_instruction, contents). Tool messages
    become function responses named after the call they answer.
    """
    system_parts: List[str] = []
    contents: List[Dict[str, Any]] = []
    call_names: Dict[str, str] = {}
    for m in messages:
        if m.role == "system":
            system_parts.append(m.content)
        elif m.role == "user":
            contents.append({"role": "user", "parts": [{"text": m.content}]})
        elif m.role == "assistant":
            parts: List[Dict[str, Any]] = []
            if m.content:
                parts.append({"text": m.content})
            for tc in m.tool_calls or []:
                call_names[tc.id] = tc.name
                try:
                    args = json.loads(tc.arguments or "{}")
                except ValueError:
                    args = {}
                parts.append({"function_call": {"name": tc.name, "args": args if isinstance(args, dict) else {}}})
            if parts:
                contents.append({"role": "model", "parts": parts})
        elif m.role == "tool":
            name = call_names.get(m.tool_call_id or "", "unknown")
            part = {"function_response": {"name": name, "response": _tool_result_payload(m.content)}}
            # consecutive responses to one model turn travel together
            if contents and contents[-1]["role"] == "function":
                contents[-1]["parts"].append(part)
            else:
                contents.append({"role": "function", "parts": [part]})
    return "\n\n".join(p for p in system_parts if p), contents


def _to_plain(v: Any) -> Any:
    if isinstance(v, (str, bytes, int, float, bool)) or v is None:
        return v
    if hasattr(v, "items"):
        return {str(k): _to_plain(x) for k, x in v.items()}
    if hasattr(v, "__iter__"):
        return [_to_plain(x) for x in v]
    return v


def from_gemini_response(resp: Any) -> ChatResponse:
    texts: List[str] = []
    calls: List[ToolCall] = []
    candidates = getattr(resp, "candidates", None) or []
    if candidates:
        content = getattr(candidates[0], "content", None)
        for p in getattr(content, "parts", None) or []:
            fc = getattr(p, "function_call", None)
            if fc is not None and getattr(fc, "name", ""):
                args = _to_plain(getattr(fc, "args", None) or {})
                calls.append(ToolCall(
                    id=f"call_{uuid.uuid4().hex[:12]}",
                    name=str(fc.name),
                    arguments=json.dumps(args, ensure_ascii=False),
                ))
                continue
            text = getattr(p, "text", "") or ""
            if text:
                texts.append(text)
    return ChatResponse(content="".join(texts), tool_calls=calls)


@dataclass
class GeminiChatClient:
    api_key: str
    model: str = "gemini-1.5-pro"
    # Fallback model used when rate limited or quota-exhausted.
    fallback_model: str = "gemini-1.5-flash"
    temperature: float = 0.0
    timeout: float = 120.0

    def __post_init__(self) -> None:
        genai.configure(api_key=self.api_key)

    @retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=8),
        retry=retry_if_exception_type((ServiceUnavailable, InternalServerError)),
    )
    def _generate(self, model_name: str, system: str, contents: List[Dict[str, Any]],
                  tools: List[Dict[str, Any]], timeout: float):
        model = genai.GenerativeModel(
            model_name,
            system_instruction=system or None,
            tools=to_gemini_tools(tools) or None,
        )
        return model.generate_content(
            contents,
            generation_config={"temperature": self.temperature},
            request_options={"timeout": timeout},
        )

    def chat(self, messages: List[Message], tools: List[Dict[str, Any]],
             model: Optional[str] = None, timeout: Optional[float] = None) -> ChatResponse:
        """One model turn. Quota errors fall back once; timeouts end the run."""
        system, contents = to_gemini_contents(messages)
        primary = model or self.model
        t = timeout or self.timeout
        try:
            try:
                resp = self._generate(primary, system, contents, tools, t)
            except ResourceExhausted:
                if not self.fallback_model or self.fallback_model == primary:
                    raise
                logger.warning("Quota exhausted on %s; falling back to %s", primary, self.fallback_model)
                resp = self._generate(self.fallback_model, system, contents, tools, t)
        except (DeadlineExceeded, TimeoutError) as ex:
            logger.error("Chat call timed out after %ss: %s", t, redact(str(ex)))
            raise ChatTimeoutError(f"Chat capability did not answer within {t}s") from ex
        return from_gemini_response(resp)
