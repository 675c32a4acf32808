"""Integration tests for the gateway's HTTP surface.

Tests routing, CORS, health, models and metrics through the full app.
"""

from fastapi.testclient import TestClient

from lm_gateway.platform.server.state import ServerState


class TestRouting:
    """Tests for unknown paths and methods."""

    def test_unknown_path_openai_shape(self, client: TestClient):
        """Unknown paths are 404 in the OpenAI error shape."""
        response = client.get("/v1/embeddings")

        assert response.status_code == 404
        body = response.json()
        assert body["error"]["code"] == "404"
        assert "type" not in body

    def test_unknown_messages_path_anthropic_shape(self, client: TestClient):
        """Unknown paths under "messages" are 404 in the Anthropic shape."""
        response = client.post("/v1/messages/count_tokens", json={})

        assert response.status_code == 404
        body = response.json()
        assert body["type"] == "error"
        assert "code" not in body["error"]

    def test_method_not_allowed(self, client: TestClient):
        """GET on a chat route is a 405."""
        response = client.get("/v1/chat/completions")

        assert response.status_code == 405
        assert response.json()["error"]["message"] == "method not allowed"

    def test_preflight(self, client: TestClient):
        """OPTIONS preflight is answered with 200 and CORS headers."""
        response = client.options("/v1/messages")

        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "*"
        assert "POST" in response.headers["access-control-allow-methods"]

    def test_request_id_is_echoed(self, client: TestClient):
        """The correlation id is echoed back and used for the response id."""
        response = client.post(
            "/v1/chat/completions",
            json={"model": "gpt-4o", "messages": [{"role": "user", "content": "Hi"}]},
            headers={"X-Request-ID": "req-42"},
        )

        assert response.headers["x-request-id"] == "req-42"
        assert response.json()["id"] == "chatcmpl-req-42"

    def test_body_too_large(self, client: TestClient):
        """Bodies over the configured limit are rejected with 413."""
        response = client.post(
            "/v1/chat/completions",
            content=b"x" * (64 * 1024 + 1),
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 413
        assert response.json()["error"]["code"] == "413"


class TestHealthEndpoint:
    """Tests for GET /health."""

    def test_health_report(self, client: TestClient):
        """Health reports running state, models and routes."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["server"]["running"] is True
        assert data["languageModels"]["available"] == 2
        assert data["endpoints"]["anthropic"] == "/v1/messages"

    def test_counters(self, client: TestClient, server_state: ServerState):
        """Requests and errors are counted since start."""
        client.get("/nowhere")
        client.get("/health")

        data = client.get("/health").json()

        assert data["server"]["requests"] == 3
        assert data["server"]["errors"] == 1
        assert server_state.request_count == 3

    def test_stopped_after_shutdown(self, test_app, server_state: ServerState):
        """Leaving the lifespan marks the server stopped."""
        with TestClient(test_app):
            assert server_state.is_running is True

        assert server_state.is_running is False


class TestModelsEndpoint:
    """Tests for GET /v1/models."""

    def test_openai_list(self, client: TestClient):
        """The default shape is the flat OpenAI list."""
        data = client.get("/v1/models").json()

        assert data["object"] == "list"
        assert data["data"][0]["id"] == "gpt-4o"

    def test_anthropic_page(self, client: TestClient):
        """An anthropic-version header selects the paginated shape."""
        data = client.get("/v1/models", headers={"anthropic-version": "2023-06-01"}).json()

        assert data["has_more"] is False
        assert data["first_id"] == "gpt-4o"


class TestMetricsEndpoint:
    """Tests for GET /metrics."""

    def test_metrics_prometheus_format(self, client: TestClient):
        """Metrics are served in the Prometheus text format."""
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]

    def test_gateway_counters_exported(self, client: TestClient):
        """Gateway request and error counters are exported."""
        client.post(
            "/v1/chat/completions",
            json={"model": "gpt-4o", "messages": [{"role": "user", "content": "Hi"}]},
        )
        client.get("/nowhere")

        text = client.get("/metrics").text

        assert 'gateway_requests_total{protocol="openai"}' in text
        assert "gateway_errors_total" in text
        assert "http_request_duration_seconds" in text
