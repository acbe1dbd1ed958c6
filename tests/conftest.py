"""
Shared fixtures: an in-memory ERP database and a scripted chat capability.
"""

import json
import logging
from typing import Any, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from report_agent.core.models import ChatResponse, ToolCall
from report_agent.core.read_only_db_executor import ReadOnlyDbExecutor
from report_agent.core.report_tools import ReportTools

SEED_SQL = [
    "CREATE TABLE customers (id INTEGER PRIMARY KEY, full_name TEXT, phone TEXT)",
    "CREATE TABLE products (id INTEGER PRIMARY KEY, name TEXT, price REAL)",
    """CREATE TABLE sales (
        id INTEGER PRIMARY KEY,
        customer_id INTEGER REFERENCES customers(id),
        date TEXT,
        total_amount REAL
    )""",
    """CREATE TABLE sale_items (
        id INTEGER PRIMARY KEY,
        sale_id INTEGER REFERENCES sales(id),
        product_id INTEGER REFERENCES products(id),
        amount REAL,
        total REAL
    )""",
    "INSERT INTO customers (id, full_name, phone) VALUES (1, 'Ahmad Karimi', '0700'), (2, 'Sara Noori', '0701')",
    "INSERT INTO products (id, name, price) VALUES (1, 'Rice 25kg', 30.5), (2, 'Cooking oil', 12.0)",
    """INSERT INTO sales (id, customer_id, date, total_amount) VALUES
        (5, 1, '2024-01-10', 91.5),
        (6, 2, '2024-01-11', 24.0),
        (7, 1, '2024-02-02', 30.5)""",
    """INSERT INTO sale_items (id, sale_id, product_id, amount, total) VALUES
        (1, 5, 1, 3, 91.5),
        (2, 6, 2, 2, 24.0),
        (3, 7, 1, 1, 30.5)""",
]


class FakeChatClient:
    """Plays back scripted responses and records every call it receives."""

    def __init__(self, responses: List[Any]):
        self.responses = list(responses)
        self.calls: List[dict] = []

    def chat(self, messages, tools, model=None, timeout=None):
        self.calls.append({"messages": list(messages), "tools": tools, "model": model, "timeout": timeout})
        if not self.responses:
            raise AssertionError("unexpected chat call")
        r = self.responses.pop(0)
        if isinstance(r, Exception):
            raise r
        if isinstance(r, str):
            return ChatResponse(content=r)
        return r


def make_tool_call(call_id: str, name: str, arguments: Optional[dict] = None) -> ToolCall:
    return ToolCall(id=call_id, name=name, arguments=json.dumps(arguments or {}))


@pytest.fixture(autouse=True)
def configure_test_logging(caplog):
    caplog.set_level(logging.DEBUG)
    yield


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    with eng.begin() as conn:
        for stmt in SEED_SQL:
            conn.exec_driver_sql(stmt)
    yield eng
    eng.dispose()


@pytest.fixture
def executor(engine):
    return ReadOnlyDbExecutor(engine=engine, max_rows=100, statement_timeout_ms=1000)


@pytest.fixture
def tools(executor):
    return ReportTools(executor, dialect="sqlite")


@pytest.fixture
def fake_chat():
    return FakeChatClient


@pytest.fixture
def tool_call():
    return make_tool_call
