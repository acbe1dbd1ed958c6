"""Unit tests for the report document model and chart normalization."""

import pytest
from pydantic import ValidationError

from report_agent.core.models import (
    ReportChart,
    ReportDocument,
    ReportSection,
    normalize_chart,
)


def _chart(**kw):
    return ReportChart.model_validate(kw)


def test_bar_chart_truncates_categories_to_shortest_series():
    chart = _chart(
        type="bar",
        categories=["a", "b", "c", "d", "e"],
        series=[{"name": "sales", "data": [1, 2, 3]}],
    )
    out = normalize_chart(chart)
    assert out.categories == ["a", "b", "c"]
    assert out.series[0].data == [1, 2, 3]


def test_line_chart_truncates_every_series_to_common_length():
    chart = _chart(
        type="line",
        categories=["jan", "feb", "mar"],
        series=[{"name": "s1", "data": [1, 2, 3, 4]}, {"name": "s2", "data": [5, 6]}],
    )
    out = normalize_chart(chart)
    assert out.categories == ["jan", "feb"]
    assert [s.data for s in out.series] == [[1, 2], [5, 6]]


def test_area_chart_uses_labels_when_categories_missing():
    out = normalize_chart(_chart(type="area", labels=["q1", "q2"], series=[{"name": "x", "data": [3, 4, 5]}]))
    assert out.categories == ["q1", "q2"]
    assert out.series[0].data == [3, 4]


def test_pie_keeps_single_series_matched_to_labels():
    chart = _chart(
        type="pie",
        labels=["rice", "oil", "tea", "sugar"],
        series=[{"name": "share", "data": [50, 30]}, {"name": "ignored", "data": [1, 1, 1, 1]}],
    )
    out = normalize_chart(chart)
    assert len(out.series) == 1
    assert out.series[0].data == [50, 30]
    assert out.labels == ["rice", "oil"]


def test_donut_falls_back_to_categories_for_labels():
    out = normalize_chart(_chart(type="donut", categories=["a", "b", "c"], series=[{"name": "s", "data": [1, 2, 3, 4]}]))
    assert out.labels == ["a", "b", "c"]
    assert out.series[0].data == [1, 2, 3]


@pytest.mark.parametrize(
    "chart",
    [
        {"type": "pie", "labels": [], "series": [{"name": "s", "data": [1, 2]}]},
        {"type": "donut", "labels": ["a"], "series": [{"name": "s", "data": []}]},
        {"type": "bar", "categories": ["a", "b"], "series": [{"name": "s", "data": []}]},
        {"type": "line", "categories": [], "series": [{"name": "s", "data": [1]}]},
        {"type": "bar", "categories": ["a"], "series": []},
    ],
)
def test_charts_with_nothing_to_draw_are_dropped(chart):
    assert normalize_chart(_chart(**chart)) is None


@pytest.mark.parametrize(
    "chart",
    [
        {"type": "bar", "categories": ["a", "b", "c", "d", "e"], "series": [{"name": "s", "data": [1, 2, 3]}]},
        {"type": "line", "labels": ["x", "y"], "series": [{"name": "s", "data": [1, 2, 3]}, {"name": "t", "data": [4, 5]}]},
        {"type": "pie", "labels": ["a", "b", "c"], "series": [{"name": "s", "data": [1, 2]}]},
        {"type": "donut", "categories": ["a", "b"], "series": [{"name": "s", "data": [1, 2, 3]}]},
    ],
)
def test_normalization_is_idempotent(chart):
    once = normalize_chart(_chart(**chart))
    twice = normalize_chart(once)
    assert twice == once


def test_section_payload_must_match_type():
    with pytest.raises(ValidationError):
        ReportSection.model_validate({"type": "table", "title": "t"})
    with pytest.raises(ValidationError):
        ReportSection.model_validate({"type": "chart", "title": "c", "table": {"columns": [], "rows": []}})


def test_section_drops_payload_of_the_other_kind():
    s = ReportSection.model_validate({
        "type": "table",
        "title": "t",
        "table": {"columns": [], "rows": []},
        "chart": {"type": "bar", "series": []},
    })
    assert s.chart is None and s.table is not None


def test_from_payload_drops_bad_and_empty_sections_and_keeps_extra_row_keys():
    doc = ReportDocument.from_payload({
        "title": "Monthly sales",
        "summary": "Totals per month",
        "sections": [
            {
                "type": "table",
                "title": "Totals",
                "table": {
                    "columns": [{"key": "month", "label": "Month"}],
                    "rows": [{"month": "2024-01", "extra": 1}],
                },
            },
            {"type": "map", "title": "unsupported"},
            {"type": "chart", "title": "empty", "chart": {"type": "pie", "labels": [], "series": [{"name": "s", "data": [1]}]}},
            {"type": "chart", "title": "ok", "chart": {"type": "bar", "categories": ["a", "b"], "series": [{"name": "s", "data": [1]}]}},
        ],
    })
    assert [s.title for s in doc.sections] == ["Totals", "ok"]
    assert doc.sections[0].table.rows == [{"month": "2024-01", "extra": 1}]
    assert doc.sections[1].chart.categories == ["a"]
    assert doc.summary == "Totals per month"


def test_from_payload_ignores_non_string_summary():
    doc = ReportDocument.from_payload({"title": "T", "summary": 5, "sections": []})
    assert doc.summary is None


def test_numeric_labels_and_categories_are_kept_as_text():
    doc = ReportDocument.from_payload({
        "title": "Yearly sales",
        "sections": [
            {
                "type": "chart",
                "title": "By year",
                "chart": {"type": "bar", "categories": [2022, 2023], "series": [{"name": 1, "data": [10, 12]}]},
            },
            {"type": "chart", "title": "Share", "chart": {"type": "pie", "labels": [1, 2], "series": [{"name": "s", "data": [3, 4]}]}},
            {
                "type": "table",
                "title": "Totals",
                "table": {"columns": [{"key": "y", "label": 2023}], "rows": [{"y": 5}]},
            },
        ],
    })
    assert [s.title for s in doc.sections] == ["By year", "Share", "Totals"]
    assert doc.sections[0].chart.categories == ["2022", "2023"]
    assert doc.sections[0].chart.series[0].name == "1"
    assert doc.sections[1].chart.labels == ["1", "2"]
    assert doc.sections[2].table.columns[0].label == "2023"
