"""Direct unit tests for the request middleware."""
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from project_admin.api.middleware.body_limit import BodyLimitMiddleware
from project_admin.api.middleware.cors import CorsPolicyMiddleware
from project_admin.config.cors import CorsPolicy


def _scope(method="GET", path="/api/projects", headers=None) -> dict:
    return {
        "type": "http",
        "method": method,
        "path": path,
        "raw_path": path.encode(),
        "query_string": b"",
        "headers": [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in (headers or {}).items()
        ],
        "scheme": "http",
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 12345),
    }


def _request(method="GET", path="/api/projects", headers=None) -> Request:
    return Request(_scope(method, path, headers))


@pytest.mark.unit
@pytest.mark.security
class TestCorsPolicyMiddleware:
    """Tests for CorsPolicyMiddleware.dispatch()."""

    @pytest.fixture
    def middleware(self):
        policy = CorsPolicy(allowed_origins=frozenset({"http://localhost:3000"}))
        return CorsPolicyMiddleware(FastAPI(), policy=policy)

    async def test_denied_origin_short_circuits(self, middleware):
        call_next = AsyncMock()

        response = await middleware.dispatch(
            _request(headers={"Origin": "http://evil.example"}), call_next
        )

        assert response.status_code == 403
        assert json.loads(response.body)["error"] == "CORS_ORIGIN_DENIED"
        call_next.assert_not_called()

    async def test_allowed_origin_passes_through(self, middleware):
        downstream = Response(status_code=200)
        call_next = AsyncMock(return_value=downstream)

        response = await middleware.dispatch(
            _request(headers={"Origin": "http://localhost:3000"}), call_next
        )

        assert response is downstream
        call_next.assert_called_once()

    async def test_no_origin_passes_through(self, middleware):
        downstream = Response(status_code=200)
        call_next = AsyncMock(return_value=downstream)

        response = await middleware.dispatch(_request(), call_next)

        assert response is downstream

    async def test_unexpected_error_keeps_cors_headers(self, middleware, mocker):
        mocker.patch("project_admin.utils.errors.capture_exception")
        call_next = AsyncMock(side_effect=RuntimeError("kaboom"))

        response = await middleware.dispatch(
            _request(headers={"Origin": "http://localhost:3000"}), call_next
        )

        assert response.status_code == 500
        assert json.loads(response.body)["error"] == "INTERNAL_ERROR"
        assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
        assert response.headers["access-control-allow-credentials"] == "true"

    async def test_unexpected_error_without_origin_has_no_cors_headers(self, middleware, mocker):
        mocker.patch("project_admin.utils.errors.capture_exception")
        call_next = AsyncMock(side_effect=RuntimeError("kaboom"))

        response = await middleware.dispatch(_request(), call_next)

        assert response.status_code == 500
        assert "access-control-allow-origin" not in response.headers


async def _read_body_app(scope, receive, send):
    """Downstream app that reads the whole body and reports its size."""
    request = Request(scope, receive)
    body = await request.body()
    response = JSONResponse({"size": len(body)}, status_code=201)
    await response(scope, receive, send)


async def _call(middleware, scope, chunks=(b"",)) -> list:
    """Run an ASGI middleware with the body split into `chunks`."""
    messages = [
        {"type": "http.request", "body": chunk, "more_body": index < len(chunks) - 1}
        for index, chunk in enumerate(chunks)
    ]
    sent = []

    async def receive():
        return messages.pop(0) if messages else {"type": "http.disconnect"}

    async def send(message):
        sent.append(message)

    await middleware(scope, receive, send)
    return sent


def _status(sent: list) -> int:
    return next(m["status"] for m in sent if m["type"] == "http.response.start")


def _body(sent: list) -> dict:
    return json.loads(b"".join(m.get("body", b"") for m in sent if m["type"] == "http.response.body"))


@pytest.mark.unit
class TestBodyLimitMiddleware:
    """Tests for BodyLimitMiddleware."""

    @pytest.fixture
    def middleware(self):
        return BodyLimitMiddleware(_read_body_app, max_body_bytes=1024)

    async def test_within_limit_passes(self, middleware):
        sent = await _call(
            middleware, _scope("POST", headers={"Content-Length": "1024"}), (b"x" * 1024,)
        )

        assert _status(sent) == 201
        assert _body(sent) == {"size": 1024}

    async def test_declared_length_over_limit_rejected_before_reading(self):
        downstream = AsyncMock()
        middleware = BodyLimitMiddleware(downstream, max_body_bytes=1024)

        sent = await _call(middleware, _scope("POST", headers={"Content-Length": "1025"}))

        assert _status(sent) == 413
        assert _body(sent)["error"] == "PAYLOAD_TOO_LARGE"
        downstream.assert_not_called()

    async def test_invalid_content_length_rejected(self):
        downstream = AsyncMock()
        middleware = BodyLimitMiddleware(downstream, max_body_bytes=1024)

        sent = await _call(middleware, _scope("POST", headers={"Content-Length": "lots"}))

        assert _status(sent) == 400
        downstream.assert_not_called()

    async def test_chunked_body_within_limit_passes(self, middleware):
        sent = await _call(middleware, _scope("POST"), (b"x" * 500, b"x" * 500))

        assert _status(sent) == 201
        assert _body(sent) == {"size": 1000}

    async def test_chunked_body_over_limit_rejected(self, middleware):
        sent = await _call(middleware, _scope("POST"), (b"x" * 600, b"x" * 600, b"x" * 600))

        assert _status(sent) == 413
        body = _body(sent)
        assert body["error"] == "PAYLOAD_TOO_LARGE"
        assert body["details"] == {"size": 1200, "limit": 1024}
        # Only the rejection is sent, never the downstream response
        assert [m["type"] for m in sent].count("http.response.start") == 1

    async def test_non_http_scope_passes_through(self):
        downstream = AsyncMock()
        middleware = BodyLimitMiddleware(downstream, max_body_bytes=1024)
        scope = {"type": "lifespan"}

        await middleware(scope, AsyncMock(), AsyncMock())

        downstream.assert_awaited_once()
