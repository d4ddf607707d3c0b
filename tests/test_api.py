"""
API Unit Tests

HTTP surface with the pipeline replaced through ``dependency_overrides``.
The lifespan handler is not entered, so no database or provider is needed.
"""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from citewise.api.v1.ask import get_pipeline
from citewise.core.exceptions import UpstreamError
from citewise.main import app
from citewise.models.schemas import AnswerResult, Principal, SourceCitation
from citewise.services.pipeline import NO_RESULTS_ANSWER


@pytest.fixture
def pipeline() -> MagicMock:
    mock = MagicMock()
    mock.ask = AsyncMock()
    mock.retrieve = AsyncMock(return_value=[])
    return mock


@pytest.fixture
def client(pipeline) -> TestClient:
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health_check(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["service"] == "citewise"
    assert "environment" in data


class TestAskEndpoint:
    def test_returns_answer_and_sources(self, client, pipeline) -> None:
        pipeline.ask.return_value = AnswerResult(
            answer_text="Reconciliation is manual [1].",
            sources=[
                SourceCitation(
                    title="Interview",
                    url="https://example.com/1",
                    excerpt="Commission reconciliation is manual.",
                )
            ],
            citations=[1],
        )

        response = client.post(
            "/api/v1/ask",
            json={
                "team_id": "T001",
                "user_id": "U1",
                "channel_id": "C001",
                "question": "How do agencies reconcile commissions?",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["answer"] == "Reconciliation is manual [1]."
        assert data["sources"][0]["url"] == "https://example.com/1"

        args, kwargs = pipeline.ask.call_args
        assert args[1] == Principal(team_id="T001", user_id="U1", channel_id="C001")
        assert kwargs == {"limit": 12, "self_check": True}

    def test_nothing_found(self, client, pipeline) -> None:
        pipeline.ask.return_value = AnswerResult(answer_text=NO_RESULTS_ANSWER)

        response = client.post(
            "/api/v1/ask",
            json={"team_id": "T001", "user_id": "U1", "question": "Anything?"},
        )

        assert response.status_code == 200
        assert response.json() == {"answer": NO_RESULTS_ANSWER, "sources": []}

    @pytest.mark.parametrize(
        "body",
        [
            {"team_id": "T001", "user_id": "U1", "question": ""},
            {"team_id": "T001", "question": "Missing user"},
            {"team_id": "T001", "user_id": "U1", "question": "q", "k": 0},
        ],
    )
    def test_validation_errors(self, client, body) -> None:
        assert client.post("/api/v1/ask", json=body).status_code == 422

    def test_upstream_failure_maps_to_502(self, client, pipeline) -> None:
        pipeline.ask.side_effect = UpstreamError("openai-chat", "rate limited")

        response = client.post(
            "/api/v1/ask",
            json={"team_id": "T001", "user_id": "U1", "question": "How?"},
        )

        assert response.status_code == 502
        assert "openai-chat" in response.json()["detail"]


class TestSearchEndpoint:
    def test_returns_ranked_chunks(self, client, pipeline, make_candidate) -> None:
        candidate = make_candidate(
            text="Commission reconciliation is manual.",
            lex_score=0.8,
            vector_score=0.7,
            recency_score=0.5,
            final_score=0.71,
        )
        pipeline.retrieve.return_value = [candidate]

        response = client.post(
            "/api/v1/search",
            json={"team_id": "T001", "user_id": "U1", "query": "commission", "k": 5},
        )

        assert response.status_code == 200
        [item] = response.json()
        assert uuid.UUID(item["chunk_id"]) == candidate.chunk_id
        assert item["final_score"] == 0.71
        pipeline.retrieve.assert_awaited_once()
        assert pipeline.retrieve.call_args.args[2] == 5

    def test_empty_result(self, client, pipeline) -> None:
        response = client.post(
            "/api/v1/search",
            json={"team_id": "T001", "user_id": "U1", "query": "nothing"},
        )

        assert response.status_code == 200
        assert response.json() == []
