from typing import AsyncGenerator, Callable, Dict, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from loopwell.assistant.providers import LLMClient
from loopwell.core.database.entities.workspaces import User
from loopwell.realtime import MockRealtimeHub


@pytest_asyncio.fixture(name="client")
async def client_fixture(
    session: AsyncSession, llm: LLMClient, hub: MockRealtimeHub
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client with overridden dependencies.

    The ASGI transport does not run the lifespan, so no database
    initialization or global hub creation happens here.
    """
    from loopwell.assistant.providers import get_llm_client
    from loopwell.core.database import get_session
    from loopwell.realtime import get_realtime_hub
    from loopwell.server.main import app

    async def get_session_override() -> AsyncGenerator[AsyncSession, None]:
        yield session

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_llm_client] = lambda: llm
    app.dependency_overrides[get_realtime_hub] = lambda: hub

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def as_user() -> Callable[..., Dict[str, str]]:
    """Build the identity headers the upstream session layer forwards."""

    def _headers(user: User, workspace_id: Optional[str] = None) -> Dict[str, str]:
        headers = {"X-User-Email": user.email}
        if workspace_id:
            headers["X-Workspace-Id"] = workspace_id
        return headers

    return _headers
