"""Shared test fixtures for the skill graph test suite."""

import json
from unittest.mock import MagicMock

import pytest

from helpers import LONG_TEXT, make_node
from skillgraph.models import SkillGraph


@pytest.fixture
def sample_graph_payload():
    """Sample synthesis reply, with wire field names."""
    return {
        "topic": "Postgres Optimization",
        "nodes": [
            {"id": "postgres-optimization", "label": "Postgres Optimization", "type": "moc",
             "description": "Entry point", "content": "# Postgres\n\n[[query-planner]]",
             "links": ["query-planner", "indexing", "vacuum"]},
            {"id": "query-planner", "label": "Query Planner", "type": "concept",
             "description": "How plans are chosen", "content": "---\ntitle: Query Planner\n---",
             "links": ["postgres-optimization", "indexing"]},
            {"id": "indexing", "label": "Indexing", "type": "pattern",
             "description": "When to add an index", "content": "---\ntitle: Indexing\n---",
             "links": ["query-planner", "missing-node"]},
            {"id": "vacuum", "label": "Vacuum Bloat", "type": "gotcha",
             "description": "Dead tuples pile up", "content": "---\ntitle: Vacuum\n---",
             "links": []},
        ],
    }


@pytest.fixture
def sample_graph():
    """Small hub-and-spoke graph with a reciprocal and a dangling reference."""
    return SkillGraph(
        topic="Postgres Optimization",
        nodes=(
            make_node("hub", refs=["concept-a", "concept-b"], kind="hub", label="Postgres"),
            make_node("concept-a", refs=["hub", "pattern-c"]),
            make_node("concept-b", refs=["ghost"]),
            make_node("pattern-c", refs=["concept-a"], kind="pattern"),
            make_node("gotcha-d", kind="gotcha"),
        ),
    )


@pytest.fixture
def mock_openai_client(sample_graph_payload):
    """Mock OpenAI client whose chat completion returns sample_graph_payload."""
    client = MagicMock()

    mock_message = MagicMock()
    mock_message.content = json.dumps(sample_graph_payload)
    mock_choice = MagicMock()
    mock_choice.message = mock_message
    mock_chat_response = MagicMock()
    mock_chat_response.choices = [mock_choice]
    client.chat.completions.create.return_value = mock_chat_response

    return client


class FakeFetcher:
    """Async fetcher driven by a {url: text | Exception} map.

    Records call order and the peak number of fetches in flight.
    """

    def __init__(self, responses, delay=0.01):
        self.responses = responses
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, url):
        import asyncio

        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            result = self.responses.get(url, LONG_TEXT)
            if isinstance(result, Exception):
                raise result
            return result
        finally:
            self.in_flight -= 1


@pytest.fixture
def fake_fetcher():
    """Factory: fake_fetcher(responses, delay=0.01) -> FakeFetcher."""
    return FakeFetcher
