"""Pytest configuration and fixtures for transaction-agent tests."""

from collections.abc import Iterable
from typing import Any

import pytest
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage
from langchain_core.outputs import ChatGeneration, ChatResult
from pydantic import Field

from transaction_agent.documents import TransactionChunk


class ScriptedChatModel(BaseChatModel):
    """Chat model that replays scripted replies in order.

    A reply that is an exception instance is raised instead of returned.
    """

    replies: Any = None
    calls: list = Field(default_factory=list)
    bound_tools: list = Field(default_factory=list)

    def __init__(self, replies: Iterable[AIMessage | Exception], **kwargs: Any):
        super().__init__(replies=iter(replies), **kwargs)

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def bind_tools(self, tools, **kwargs):
        self.bound_tools = list(tools)
        return self

    def _generate(self, messages, stop=None, run_manager=None, **kwargs) -> ChatResult:
        self.calls.append(list(messages))
        reply = next(self.replies)
        if isinstance(reply, Exception):
            raise reply
        # Fresh copy so repeated replies get their own message ids
        return ChatResult(generations=[ChatGeneration(message=reply.model_copy(deep=True))])


class FakeIndex:
    """Index stand-in returning fixed rows and counting queries."""

    def __init__(self, rows: list[str], error: Exception | None = None):
        self.rows = rows
        self.error = error
        self.queries: list[tuple[str, int]] = []

    def query(self, text: str, k: int):
        self.queries.append((text, k))
        if self.error is not None:
            raise self.error
        return [
            (TransactionChunk(position=i, text=row, start_offset=0), 1.0 - i * 0.1)
            for i, row in enumerate(self.rows[:k])
        ]


def tool_call(query: str, call_id: str = "call_1", name: str = "TransactionRetriever") -> AIMessage:
    """An AI message asking for one tool call."""
    return AIMessage(content="", tool_calls=[{"name": name, "args": {"query": query}, "id": call_id}])


@pytest.fixture
def grocery_rows():
    """Fixture providing the two grocery transactions."""
    return ["2024-01-05,Groceries,54.20", "2024-01-12,Groceries,30.10"]


@pytest.fixture
def sample_transactions():
    """Fixture providing a small transactions CSV as text."""
    return (
        "date,category,description,amount\n"
        "2024-01-03,Rent,January rent,1450.00\n"
        "2024-01-05,Groceries,Trader Joe's,54.20\n"
        "2024-01-07,Transport,Metro card refill,40.00\n"
        "2024-01-09,Dining,Pho House,23.75\n"
        "2024-01-12,Groceries,Whole Foods,30.10\n"
        "2024-01-15,Utilities,Electric bill,88.42\n"
        "2024-01-18,Entertainment,Movie tickets,31.00\n"
        "2024-01-21,Groceries,Farmers market,18.60\n"
    )


@pytest.fixture
def transactions_file(tmp_path, sample_transactions):
    """Fixture writing the sample transactions to documents/transactions.csv."""
    path = tmp_path / "documents" / "transactions.csv"
    path.parent.mkdir()
    path.write_text(sample_transactions, encoding="utf-8")
    return path
