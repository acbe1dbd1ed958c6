"""Unit tests for the run_query / describe_table tools and the dispatcher."""

import json

import pytest

from report_agent.core.report_tools import (
    DESCRIBE_TABLE,
    RUN_QUERY,
    TOOL_SPECS,
    ReportTools,
    decode_arguments,
)


class RecordingDb:
    """Stands in for the executor and fails the test if it is touched."""

    def __init__(self):
        self.calls = []

    def query(self, sql, params=()):
        self.calls.append(("query", sql, params))
        raise AssertionError("database should not be called")

    def describe(self, table):
        self.calls.append(("describe", table))
        raise AssertionError("database should not be called")


def test_drop_statement_is_blocked():
    out = json.loads(ReportTools(RecordingDb()).run_query("DROP TABLE sales", "[]"))
    assert out["error"].startswith("Only SELECT queries are allowed")
    assert "DROP, DELETE, UPDATE, INSERT, ALTER" in out["error"]


def test_select_with_bound_param_returns_columns_and_rows(tools):
    out = json.loads(tools.run_query("SELECT id FROM sales WHERE id = ?", '["5"]'))
    assert out == {"columns": ["id"], "rows": [[5]]}


def test_params_may_arrive_already_decoded(tools):
    out = json.loads(tools.run_query("SELECT id FROM sales WHERE customer_id = ? ORDER BY id", [1]))
    assert out["rows"] == [[5], [7]]


@pytest.mark.parametrize("params", ["{not json", '{"a": 1}', "5", None, 12])
def test_malformed_params_mean_no_parameters(tools, params):
    out = json.loads(tools.run_query("SELECT COUNT(*) AS n FROM sales", params))
    assert out == {"columns": ["n"], "rows": [[3]]}


@pytest.mark.parametrize("sql", [None, 42, "", "   ", ["SELECT 1"], {"sql": "SELECT 1"}])
def test_missing_or_non_string_sql_is_an_error_payload(sql):
    out = json.loads(ReportTools(RecordingDb()).run_query(sql, "[]"))
    assert out == {"error": "Missing sql"}


def test_execution_failure_is_returned_not_raised(tools):
    out = json.loads(tools.run_query("SELECT no_such_column FROM sales", "[]"))
    assert out["error"].startswith("Query execution failed:")
    assert "no_such_column" in out["error"]
    assert out["columns"] == [] and out["rows"] == []


def test_tables_outside_whitelist_are_rejected_before_execution():
    db = RecordingDb()
    out = json.loads(ReportTools(db, dialect="sqlite").run_query("SELECT name FROM sqlite_master", "[]"))
    assert "outside the allowed list" in out["error"]
    assert "sqlite_master" in out["error"]
    assert db.calls == []


def test_unparseable_select_is_reported_to_the_model():
    db = RecordingDb()
    out = json.loads(ReportTools(db, dialect="sqlite").run_query("SELECT * FROM sales WHERE (id = 1", "[]"))
    assert out["error"].startswith("Could not parse SQL")
    assert db.calls == []


def test_describe_known_table_returns_columns(tools):
    out = json.loads(tools.describe_table("customers"))
    names = [c["name"] for c in out["columns"]]
    assert names == ["id", "full_name", "phone"]
    assert out["columns"][0]["type"].upper().startswith("INTEGER")


def test_describe_matches_whitelist_case_insensitively(tools):
    out = json.loads(tools.describe_table("  Customers "))
    assert len(out["columns"]) == 3


@pytest.mark.parametrize("table", ["dropusers", "sqlite_master", "", None, {"t": 1}])
def test_describe_unknown_table_never_touches_database(table):
    db = RecordingDb()
    out = json.loads(ReportTools(db).describe_table(table))
    assert out["error"].startswith("Unknown or disallowed table. Use one of: users, currencies")
    assert out["error"].endswith(", ...")
    assert db.calls == []


def test_describe_falls_back_to_information_schema(executor, monkeypatch):
    def broken(table):
        raise RuntimeError("inspector unavailable")

    monkeypatch.setattr(executor, "_describe_via_inspector", broken)
    monkeypatch.setattr(
        executor,
        "_describe_via_information_schema",
        lambda table: [{"name": "id", "type": "int"}],
    )
    out = json.loads(ReportTools(executor).describe_table("sales"))
    assert out == {"columns": [{"name": "id", "type": "int"}]}


def test_describe_reports_error_when_both_strategies_fail(tools):
    # expenses is whitelisted but missing from the seed database,
    # and SQLite has no information_schema either
    out = json.loads(tools.describe_table("expenses"))
    assert out["error"].startswith("Could not get schema for table: expenses.")
    assert "Refer to the system schema" in out["error"]


def test_dispatch_routes_known_tools(tools):
    q = json.loads(tools.dispatch(RUN_QUERY, json.dumps({"sql": "SELECT id FROM sales WHERE id = ?", "params": "[6]"})))
    assert q["rows"] == [[6]]
    d = json.loads(tools.dispatch(DESCRIBE_TABLE, '{"table": "products"}'))
    assert [c["name"] for c in d["columns"]] == ["id", "name", "price"]


def test_dispatch_unknown_tool():
    out = json.loads(ReportTools(RecordingDb()).dispatch("drop_everything", "{}"))
    assert out == {"error": "Unknown tool: drop_everything"}


@pytest.mark.parametrize("args", ["not json", "[1, 2]", "", None])
def test_dispatch_bad_arguments_default_to_empty(args):
    out = json.loads(ReportTools(RecordingDb()).dispatch(RUN_QUERY, args))
    assert out == {"error": "Missing sql"}


def test_decode_arguments():
    assert decode_arguments('{"table": "sales"}') == {"table": "sales"}
    assert decode_arguments({"table": "sales"}) == {"table": "sales"}
    assert decode_arguments('"sales"') == {}
    assert decode_arguments("{") == {}


def test_tool_specs_declare_both_tools():
    names = [t["name"] for t in TOOL_SPECS]
    assert names == [RUN_QUERY, DESCRIBE_TABLE]
    assert TOOL_SPECS[0]["parameters"]["required"] == ["sql"]
    assert TOOL_SPECS[1]["parameters"]["required"] == ["table"]


@pytest.mark.parametrize(
    "sql",
    [
        "SELECT 1;DELETE FROM sales",
        "WITH x AS(DELETE FROM sales RETURNING id) SELECT * FROM x",
    ],
)
def test_writes_hidden_behind_punctuation_never_reach_the_database(sql):
    db = RecordingDb()
    out = json.loads(ReportTools(db, dialect="postgres").run_query(sql, "[]"))
    assert out["error"].startswith("Only SELECT queries are allowed")
    assert db.calls == []


def test_second_statement_is_rejected_before_execution():
    db = RecordingDb()
    out = json.loads(ReportTools(db, dialect="postgres").run_query("SELECT 1; SELECT 2", "[]"))
    assert out["error"].startswith("Only one statement is allowed")
    assert db.calls == []
