"""
Unit tests for FastAPI application lifespan management.

Tests verify that startup creates the database schema and the realtime hub,
and that a failing database initialization does not stop the server.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI

from loopwell.realtime import MockRealtimeHub, current_hub, reset_realtime_hub


@pytest.fixture(autouse=True)
def _reset_hub():
    yield
    reset_realtime_hub()


class TestLifespan:
    """Test the application lifespan context manager."""

    @pytest.mark.asyncio
    async def test_startup_initializes_database_and_hub(self):
        from loopwell.server.main import lifespan

        with patch("loopwell.server.main.init_db", new_callable=AsyncMock) as mock_init_db, patch(
            "loopwell.server.main.logger"
        ) as mock_logger:
            async with lifespan(FastAPI()):
                mock_init_db.assert_awaited_once()
                assert isinstance(current_hub(), MockRealtimeHub)

        logged = [call[0][0] for call in mock_logger.info.call_args_list]
        assert "Database initialized successfully" in logged
        assert "Shutting down Loopwell Server..." in logged

    @pytest.mark.asyncio
    async def test_database_failure_is_logged_and_startup_continues(self):
        from loopwell.server.main import lifespan

        with patch(
            "loopwell.server.main.init_db", new_callable=AsyncMock, side_effect=RuntimeError("db down")
        ), patch("loopwell.server.main.logger") as mock_logger, patch(
            "loopwell.server.main.init_realtime_hub"
        ) as mock_init_hub:
            async with lifespan(FastAPI()):
                pass

        mock_logger.error.assert_called_once()
        assert "db down" in mock_logger.error.call_args[0][0]
        mock_init_hub.assert_called_once_with(False)

    @pytest.mark.asyncio
    async def test_enabled_realtime_setting_is_passed_through(self):
        from loopwell.server.main import lifespan

        fake_settings = MagicMock()
        fake_settings.realtime.enabled = True
        with patch("loopwell.server.main.init_db", new_callable=AsyncMock), patch(
            "loopwell.server.main.logger"
        ), patch("loopwell.server.main.settings", fake_settings), patch(
            "loopwell.server.main.init_realtime_hub"
        ) as mock_init_hub:
            async with lifespan(FastAPI()):
                pass

        mock_init_hub.assert_called_once_with(True)


class TestAppWiring:
    def test_routes_are_mounted(self):
        from loopwell.server.main import app

        paths = {route.path for route in app.routes}

        assert {"/health", "/version", "/ws"} <= paths
        assert "/api/v1/projects/" in paths or "/api/v1/projects" in paths
        assert any(path.startswith("/api/v1/migrations") for path in paths)
        assert "/api/v1/projects/{project_id}/members" in paths
        assert "/api/v1/task-templates/{template_id}/apply" in paths
