"""Tests for the chat API routes.

Covers the request handler state machine end to end: method check, request
gate, body validation, relevance filter, credential check, upstream call and
error translation. The upstream client is always mocked.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from app.api.routes.chat import get_chat_service
from app.core.errors import ConfigurationAppError, UpstreamAppError
from app.main import app
from app.services.chat_service import NOT_RELATED_RESPONSE, ChatService

RELATED = "When is the GP surgery opening?"
UNRELATED = "Please explain the plot of the latest film about dinosaurs in detail"


@pytest.fixture
def upstream() -> MagicMock:
    """Mocked upstream client returning a fixed answer."""
    client = MagicMock()
    client.complete = AsyncMock(return_value="The GP surgery opens in spring 2026.")
    return client


@pytest.fixture
def client_factory(upstream: MagicMock) -> MagicMock:
    return MagicMock(return_value=upstream)


@pytest.fixture
def client(client_factory: MagicMock):
    """Create FastAPI test client with the chat service wired to the mock."""
    service = ChatService(client_factory=client_factory)
    app.dependency_overrides[get_chat_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def _upstream_error(status: int) -> UpstreamAppError:
    return UpstreamAppError(
        code="upstream_http_error",
        message=f"Upstream API returned HTTP {status}",
        details={"http_status": status},
    )


# ======================== Method / body validation ========================


class TestRequestValidation:
    """Test method and body checks."""

    @pytest.mark.parametrize("method", ["get", "put", "delete", "patch"])
    def test_non_post_returns_405(self, client: TestClient, method: str) -> None:
        response = getattr(client, method)("/chat")

        assert response.status_code == 405
        assert response.json()["error"] == "Method not allowed"

    def test_missing_message_returns_400(self, client: TestClient, client_factory: MagicMock) -> None:
        response = client.post("/chat", json={})

        assert response.status_code == 400
        assert response.json()["error"] == "Message is required"
        client_factory.assert_not_called()

    @pytest.mark.parametrize("body", [{"message": ""}, {"message": 42}, {"message": None}, {"message": ["a"]}])
    def test_invalid_message_returns_400(self, client: TestClient, body: dict) -> None:
        response = client.post("/chat", json=body)

        assert response.status_code == 400
        assert response.json()["error"] == "Message is required"

    def test_malformed_json_returns_400(self, client: TestClient) -> None:
        response = client.post(
            "/chat", content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert "error" in response.json()


# ======================== Relevance / upstream ========================


class TestChatEndpoint:
    """Test successful and refused answers."""

    def test_related_question_returns_upstream_text(
        self, client: TestClient, upstream: MagicMock
    ) -> None:
        response = client.post("/chat", json={"message": RELATED})

        assert response.status_code == 200
        assert response.json() == {"response": "The GP surgery opens in spring 2026."}
        upstream.complete.assert_awaited_once()

    def test_unrelated_question_is_refused_without_upstream_call(
        self, client: TestClient, client_factory: MagicMock, upstream: MagicMock
    ) -> None:
        response = client.post("/chat", json={"message": UNRELATED})

        assert response.status_code == 200
        assert response.json() == {"response": NOT_RELATED_RESPONSE, "notRelated": True}
        client_factory.assert_not_called()
        upstream.complete.assert_not_awaited()

    def test_missing_api_key_returns_500(self, client: TestClient, client_factory: MagicMock) -> None:
        client_factory.side_effect = ConfigurationAppError(
            code="api_key_not_configured", message="API key not configured"
        )

        response = client.post("/chat", json={"message": RELATED})

        assert response.status_code == 500
        assert response.json()["error"] == "API key not configured"

    def test_empty_completion_returns_500(self, client: TestClient, upstream: MagicMock) -> None:
        upstream.complete.return_value = ""

        response = client.post("/chat", json={"message": RELATED})

        assert response.status_code == 500
        assert response.json()["error"] == "No response from AI service"

    def test_response_carries_request_id(self, client: TestClient) -> None:
        response = client.post(
            "/chat", json={"message": RELATED}, headers={"X-Request-ID": "req-chat-1"}
        )

        assert response.headers["X-Request-ID"] == "req-chat-1"

    def test_upstream_client_reused_across_requests(
        self, client: TestClient, client_factory: MagicMock, upstream: MagicMock
    ) -> None:
        for _ in range(3):
            assert client.post("/chat", json={"message": RELATED}).status_code == 200

        client_factory.assert_called_once()
        assert upstream.complete.await_count == 3


class TestUpstreamErrors:
    """Test translation of upstream failures into responses."""

    @pytest.mark.parametrize(
        "status, expected_status, expected_message",
        [
            (401, 500, "API authentication failed - check your Perplexity API key"),
            (403, 500, "API access forbidden - check your Perplexity API key permissions"),
            (429, 429, "API rate limit exceeded. Please try again later."),
            (500, 500, "Failed to get response. Please try again."),
            (503, 500, "Failed to get response. Please try again."),
        ],
    )
    def test_upstream_status_mapping(
        self,
        client: TestClient,
        upstream: MagicMock,
        status: int,
        expected_status: int,
        expected_message: str,
    ) -> None:
        upstream.complete.side_effect = _upstream_error(status)

        response = client.post("/chat", json={"message": RELATED})

        assert response.status_code == expected_status
        body = response.json()
        assert body["error"] == expected_message
        assert "rateLimited" not in body
        assert "http_status" not in response.text

    def test_upstream_unavailable_returns_generic_500(
        self, client: TestClient, upstream: MagicMock
    ) -> None:
        upstream.complete.side_effect = UpstreamAppError(
            code="upstream_unavailable", message="Upstream API request failed: APITimeoutError"
        )

        response = client.post("/chat", json={"message": RELATED})

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to get response. Please try again."
        assert "APITimeoutError" not in response.text


# ======================== Rate limiting ========================


class TestRateLimiting:
    """Test the request gate on /chat."""

    def test_sixth_request_in_window_is_rate_limited(self, client: TestClient) -> None:
        for _ in range(5):
            assert client.post("/chat", json={"message": RELATED}).status_code == 200

        blocked = client.post("/chat", json={"message": RELATED})

        assert blocked.status_code == 429
        body = blocked.json()
        assert body["rateLimited"] is True
        assert body["error"].startswith("Too many requests")
        assert "Retry-After" in blocked.headers
        assert blocked.headers["X-RateLimit-Limit"] == "5"
        assert blocked.headers["X-RateLimit-Remaining"] == "0"
        assert "X-RateLimit-Reset" in blocked.headers

    def test_gate_runs_before_body_validation(self, client: TestClient) -> None:
        for _ in range(5):
            client.post("/chat", json={"message": RELATED})

        blocked = client.post("/chat", json={})

        assert blocked.status_code == 429
        assert blocked.json()["rateLimited"] is True

    def test_unrelated_questions_count_towards_limit(self, client: TestClient) -> None:
        for _ in range(5):
            assert client.post("/chat", json={"message": UNRELATED}).status_code == 200

        assert client.post("/chat", json={"message": RELATED}).status_code == 429

    def test_window_expiry_allows_again(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
        from app.core import rate_limit as rate_limit_module

        now = {"t": 1000.0}
        limiter = InMemoryFixedWindowRateLimiter(
            limit=5, window_seconds=300, clock=lambda: now["t"]
        )
        rate_limit_module.set_rate_limiter(limiter)

        for _ in range(5):
            client.post("/chat", json={"message": RELATED})
        assert client.post("/chat", json={"message": RELATED}).status_code == 429

        now["t"] = 1300.5
        assert client.post("/chat", json={"message": RELATED}).status_code == 200
        entry = limiter.get_entry("ip:testclient")
        assert entry is not None
        assert entry.count == 1

    def test_forwarded_for_isolates_clients(self, client: TestClient) -> None:
        first = {"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}
        second = {"X-Forwarded-For": "198.51.100.2"}

        for _ in range(5):
            client.post("/chat", json={"message": RELATED}, headers=first)
        assert client.post("/chat", json={"message": RELATED}, headers=first).status_code == 429

        assert client.post("/chat", json={"message": RELATED}, headers=second).status_code == 200

    def test_headers_omitted_when_disabled(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        from app.core import rate_limit as rate_limit_module

        monkeypatch.setattr(rate_limit_module.settings.app, "rate_limit_include_headers", False)

        for _ in range(5):
            client.post("/chat", json={"message": RELATED})
        blocked = client.post("/chat", json={"message": RELATED})

        assert blocked.status_code == 429
        assert blocked.json()["rateLimited"] is True
        assert "Retry-After" not in blocked.headers

    def test_rate_limit_can_be_disabled(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        from app.core import rate_limit as rate_limit_module

        monkeypatch.setattr(rate_limit_module.settings.app, "rate_limit_enabled", False)

        for _ in range(8):
            assert client.post("/chat", json={"message": RELATED}).status_code == 200


# ======================== Health / diagnostics ========================


class TestHealthAndDiagnostics:
    """Test auxiliary endpoints."""

    def test_health_check_returns_ok(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_health_is_not_rate_limited(self, client: TestClient) -> None:
        for _ in range(10):
            assert client.get("/health").status_code == 200

    def test_diagnostics_reports_probe_results(
        self, client: TestClient, upstream: MagicMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        from app.api.routes import diagnostics as diagnostics_module

        monkeypatch.setattr(diagnostics_module.settings.upstream, "api_key", "pplx-0123456789")
        monkeypatch.setattr(diagnostics_module.settings.upstream, "probe_models", "old-model,sonar")
        upstream.complete.side_effect = [_upstream_error(400), "Hello there"]

        response = client.get("/diagnostics/upstream")

        assert response.status_code == 200
        body = response.json()
        assert body["apiKeyConfigured"] is True
        assert body["apiKeyLength"] == 15
        assert body["results"] == [
            {"model": "old-model", "status": "failed", "error": "Upstream API returned HTTP 400"},
            {"model": "sonar", "status": "success", "response": "Hello there"},
        ]

    def test_diagnostics_without_key_returns_500(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        from app.api.routes import diagnostics as diagnostics_module

        monkeypatch.setattr(diagnostics_module.settings.upstream, "api_key", None)

        response = client.get("/diagnostics/upstream")

        assert response.status_code == 500
        assert response.json()["error"] == "API key not configured"

    def test_diagnostics_can_be_disabled(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        from app.api.routes import diagnostics as diagnostics_module

        monkeypatch.setattr(diagnostics_module.settings.app, "diagnostics_enabled", False)

        response = client.get("/diagnostics/upstream")

        assert response.status_code == 404
        assert response.json()["error"] == "Not found"
