"""
Unit tests for Logfire middleware.

This test suite covers:
- Request/response processing
- Error handling and exception tracking
- Slow request detection
- Header injection
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI, Request
from httpx import ASGITransport, AsyncClient
from starlette.responses import Response

from loopwell.server.middleware import LogfireMiddleware


def _mock_request(method: str = "GET", path: str = "/api/v1/projects"):
    request = AsyncMock(spec=Request)
    request.method = method
    request.url.path = path
    request.url.query = ""
    request.state = MagicMock()
    return request


class TestLogfireMiddlewareDispatch:
    """Test LogfireMiddleware.dispatch method."""

    @pytest.mark.asyncio
    async def test_middleware_processes_successful_request(self):
        """Test that middleware processes successful requests."""
        mock_response = Response(content="test", status_code=200)

        async def mock_call_next(request):
            return mock_response

        middleware = LogfireMiddleware(app=AsyncMock())

        with patch("loopwell.server.middleware.logfire_middleware.log_api_request") as mock_log:
            response = await middleware.dispatch(_mock_request(), mock_call_next)

        assert response.status_code == 200
        mock_log.assert_called_once()
        assert mock_log.call_args[1]["method"] == "GET"
        assert mock_log.call_args[1]["path"] == "/api/v1/projects"
        assert mock_log.call_args[1]["status_code"] == 200
        assert "X-Process-Time" in response.headers

    @pytest.mark.asyncio
    async def test_middleware_records_request_state(self):
        request = _mock_request("POST", "/api/v1/tasks")

        async def mock_call_next(req):
            return Response(status_code=201)

        with patch("loopwell.server.middleware.logfire_middleware.log_api_request"):
            await LogfireMiddleware(app=AsyncMock()).dispatch(request, mock_call_next)

        assert request.state.method == "POST"
        assert request.state.path == "/api/v1/tasks"

    @pytest.mark.asyncio
    async def test_middleware_reports_failures_as_500(self):
        async def failing_call_next(request):
            raise RuntimeError("boom")

        middleware = LogfireMiddleware(app=AsyncMock())

        with patch("loopwell.server.middleware.logfire_middleware.log_api_request") as mock_log, patch(
            "loopwell.server.middleware.logfire_middleware.logger"
        ) as mock_logger:
            with pytest.raises(RuntimeError):
                await middleware.dispatch(_mock_request(), failing_call_next)

        assert mock_log.call_args[1]["status_code"] == 500
        mock_logger.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_slow_request_warning(self):
        async def mock_call_next(request):
            return Response(status_code=200)

        with patch("loopwell.server.middleware.logfire_middleware.log_api_request"), patch(
            "loopwell.server.middleware.logfire_middleware.time"
        ) as mock_time, patch("loopwell.server.middleware.logfire_middleware.logger") as mock_logger:
            mock_time.time.side_effect = [100.0, 102.5]
            response = await LogfireMiddleware(app=AsyncMock()).dispatch(_mock_request(), mock_call_next)

        mock_logger.warning.assert_called_once()
        assert "Slow API request" in mock_logger.warning.call_args[0][0]
        assert response.headers["X-Process-Time"] == "2500.0"


class TestLogfireMiddlewareIntegration:
    @pytest.mark.asyncio
    async def test_header_added_through_app(self):
        app = FastAPI()
        app.add_middleware(LogfireMiddleware)

        @app.get("/ping")
        async def ping():
            return {"pong": True}

        with patch("loopwell.server.middleware.logfire_middleware.log_api_request") as mock_log:
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as client:
                response = await client.get("/ping")

        assert response.status_code == 200
        assert float(response.headers["X-Process-Time"]) >= 0
        assert mock_log.call_args[1]["path"] == "/ping"
