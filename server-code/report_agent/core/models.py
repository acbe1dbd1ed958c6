from __future__ import annotations
import logging
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

logger = logging.getLogger(__name__)


# --- Conversation ---

class ToolCall(BaseModel):
    id: str
    name: str
    arguments: str = "{}"  # JSON-encoded


class Message(BaseModel):
    role: Literal["system", "user", "assistant", "tool"]
    content: str = ""
    tool_call_id: Optional[str] = None
    tool_calls: Optional[List[ToolCall]] = None


class ChatResponse(BaseModel):
    content: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)


# --- Report document ---

class _ReportModel(BaseModel):
    # models often emit years or month numbers where text is expected
    model_config = ConfigDict(coerce_numbers_to_str=True)


class ReportTableColumn(_ReportModel):
    key: str
    label: str


class ReportTable(_ReportModel):
    columns: List[ReportTableColumn] = Field(default_factory=list)
    # Rows may carry keys outside `columns`; consumers ignore them.
    rows: List[Dict[str, Any]] = Field(default_factory=list)


class ReportChartSeries(_ReportModel):
    name: str = ""
    data: List[float] = Field(default_factory=list)


ChartType = Literal["line", "bar", "area", "pie", "donut"]


class ReportChart(_ReportModel):
    type: ChartType
    categories: Optional[List[str]] = None
    series: List[ReportChartSeries] = Field(default_factory=list)
    labels: Optional[List[str]] = None


class ReportSection(_ReportModel):
    type: Literal["table", "chart"]
    title: str = ""
    table: Optional[ReportTable] = None
    chart: Optional[ReportChart] = None

    @model_validator(mode="after")
    def _payload_matches_type(self) -> "ReportSection":
        if self.type == "table":
            if self.table is None:
                raise ValueError("table section without table payload")
            self.chart = None
        else:
            if self.chart is None:
                raise ValueError("chart section without chart payload")
            self.table = None
        return self


class ReportDocument(BaseModel):
    title: str = Field(min_length=1)
    summary: Optional[str] = None
    sections: List[ReportSection] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ReportDocument":
        """
        Build from an already shape-checked payload. Sections that do not fit
        the model are dropped; chart sections are normalized.
        """
        sections: List[ReportSection] = []
        for i, raw in enumerate(payload.get("sections") or []):
            try:
                section = ReportSection.model_validate(raw)
            except ValidationError as e:
                logger.warning("Dropping malformed report section %d: %s", i, e.errors()[:1])
                continue
            if section.chart is not None:
                chart = normalize_chart(section.chart)
                if chart is None:
                    logger.info("Dropping empty chart section %r", section.title)
                    continue
                section.chart = chart
            sections.append(section)
        summary = payload.get("summary")
        return cls(
            title=payload["title"],
            summary=summary if isinstance(summary, str) else None,
            sections=sections,
        )


class ReportResult(BaseModel):
    report: ReportDocument
    messages: List[Message]


# --- Chart normalization ---

def normalize_chart(chart: ReportChart) -> Optional[ReportChart]:
    """
    Align array lengths so renderers never see ragged data. Returns None when
    nothing drawable is left.

    pie/donut keep one series truncated to its labels; line/bar/area truncate
    categories and every series to the shortest of them.
    """
    categories = list(chart.categories or [])
    labels = list(chart.labels or [])
    if not chart.series:
        return None

    if chart.type in ("pie", "donut"):
        first = chart.series[0]
        slice_labels = labels or categories
        n = min(len(first.data), len(slice_labels))
        if n == 0:
            return None
        return ReportChart(
            type=chart.type,
            categories=chart.categories,
            series=[ReportChartSeries(name=first.name, data=first.data[:n])],
            labels=slice_labels[:n],
        )

    cats = categories or labels
    n = min([len(cats), *(len(s.data) for s in chart.series)])
    if n == 0:
        return None
    return ReportChart(
        type=chart.type,
        categories=cats[:n],
        series=[ReportChartSeries(name=s.name, data=s.data[:n]) for s in chart.series],
        labels=chart.labels,
    )
