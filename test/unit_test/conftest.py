from typing import AsyncGenerator, List

import pytest
import pytest_asyncio
from pydantic_ai.models.test import TestModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel.pool import StaticPool

from loopwell.assistant.providers import LLMClient
from loopwell.core.database import create_all
from loopwell.core.database.entities.workspaces import User, Workspace, WorkspaceRole
from loopwell.core.database.repositories import UserRepository, WorkspaceRepository
from loopwell.realtime import MockRealtimeHub

# Use in-memory SQLite for testing
# Note: We use check_same_thread=False for SQLite with async
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def test_engine():
    """Create a fresh in-memory database with every table for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_all(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(name="session")
async def session_fixture(test_engine) -> AsyncGenerator[AsyncSession, None]:
    async_session_maker = async_sessionmaker(test_engine, expire_on_commit=False)

    async with async_session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def owner(session: AsyncSession) -> User:
    return await UserRepository(session).get_or_create("owner@example.com", "Olivia Owner")


@pytest_asyncio.fixture
async def workspace(session: AsyncSession, owner: User) -> Workspace:
    workspace, _ = await WorkspaceRepository(session).create_with_owner("Acme", owner)
    return workspace


async def _add_user(session: AsyncSession, workspace: Workspace, email: str, name: str, role: WorkspaceRole) -> User:
    user = await UserRepository(session).get_or_create(email, name)
    await WorkspaceRepository(session).add_member(workspace.id, user.id, role)
    return user


@pytest_asyncio.fixture
async def admin(session: AsyncSession, workspace: Workspace) -> User:
    return await _add_user(session, workspace, "admin@example.com", "Ada Admin", WorkspaceRole.ADMIN)


@pytest_asyncio.fixture
async def member(session: AsyncSession, workspace: Workspace) -> User:
    return await _add_user(session, workspace, "member@example.com", "Mia Member", WorkspaceRole.MEMBER)


@pytest_asyncio.fixture
async def viewer(session: AsyncSession, workspace: Workspace) -> User:
    return await _add_user(session, workspace, "viewer@example.com", "Vic Viewer", WorkspaceRole.VIEWER)


@pytest_asyncio.fixture
async def outsider(session: AsyncSession) -> User:
    """A user that belongs to no workspace."""
    return await UserRepository(session).get_or_create("outsider@example.com", "Otto Outsider")


class FakeLLM:
    """Builds Pydantic AI test models that answer with ``reply``."""

    def __init__(self, reply: str = "Here is what I found in the wiki.") -> None:
        self.reply = reply
        self.requested_models: List[str] = []

    def model(self, model_id: str) -> TestModel:
        self.requested_models.append(model_id)
        return TestModel(custom_output_text=self.reply)


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def llm(fake_llm: FakeLLM) -> LLMClient:
    """LLM client answering from test models instead of a provider."""
    return LLMClient(model_factory=fake_llm.model)


@pytest.fixture
def failing_llm() -> LLMClient:
    def _unavailable(model_id: str):
        raise RuntimeError("provider unavailable")

    return LLMClient(model_factory=_unavailable)


@pytest.fixture
def hub() -> MockRealtimeHub:
    return MockRealtimeHub()
