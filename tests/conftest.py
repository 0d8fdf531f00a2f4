import os
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["APP_ENV"] = "test"
os.environ["MEASUREMENT_SAMPLE_DELAY"] = "0"

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import brandmonitor.models  # noqa: E402,F401
from brandmonitor.core.dependencies import get_adapter_factory, get_session_factory  # noqa: E402
from brandmonitor.core.exceptions import ProviderError  # noqa: E402
from brandmonitor.core.rate_limit import limiter  # noqa: E402
from brandmonitor.db.base import Base  # noqa: E402
from brandmonitor.db.postgres import get_db  # noqa: E402
from brandmonitor.db.repository import SqlAlchemyRepository  # noqa: E402
from brandmonitor.gateway.types import ProviderReply  # noqa: E402
from brandmonitor.main import app  # noqa: E402
from brandmonitor.models.monitoring_prompt import MonitoringPrompt  # noqa: E402
from brandmonitor.models.topic import Topic  # noqa: E402
from brandmonitor.models.workspace import Workspace, WorkspaceRegion  # noqa: E402

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

limiter.enabled = False

DEFAULT_ANSWER = (
    "The best CRM options are:\n\n"
    "1. Acme (https://acme.com) is a trusted choice for small teams.\n"
    "2. HubSpot is popular with marketers.\n\n"
    "See also https://www.g2.com/categories/crm for reviews."
)


class FakeAdapter:
    """Stands in for a provider adapter.

    Prompts containing a ``fail_on`` substring fail, as do the ``fail_calls``-th calls.
    """

    def __init__(
        self,
        provider="openai",
        model="fake-model",
        answer=DEFAULT_ANSWER,
        fail_on=(),
        fail_calls=(),
        native_citations=(),
    ):
        self.provider = provider
        self.model = model
        self.answer = answer
        self.fail_on = tuple(fail_on)
        self.fail_calls = set(fail_calls)  # 1-based call numbers that fail
        self.native_citations = list(native_citations)
        self.calls: list[tuple[str, str]] = []

    async def send(self, prompt, system_prompt, params=None):
        self.calls.append((prompt, system_prompt))
        if len(self.calls) in self.fail_calls or any(marker in prompt for marker in self.fail_on):
            raise ProviderError(self.provider, 500, "upstream failure")
        return ProviderReply(
            text=self.answer,
            model=self.model,
            provider=self.provider,
            input_tokens=10,
            output_tokens=20,
            native_citations=list(self.native_citations),
        )


class Seeder:
    """Inserts workspaces, regions, topics and prompts for a test."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    async def workspace(
        self,
        brand_name="Acme",
        domain="https://www.acme.com/",
        llms=("openai",),
        plan="growth",
        is_active=True,
        **kwargs,
    ) -> Workspace:
        ws = Workspace(
            name=kwargs.pop("name", f"{brand_name or 'Unnamed'} workspace"),
            brand_name=brand_name,
            domain=domain,
            llms=list(llms) if llms is not None else None,
            plan=plan,
            is_active=is_active,
            created_at=self._tick(),
            **kwargs,
        )
        self.session.add(ws)
        await self.session.commit()
        return ws

    async def region(self, workspace: Workspace, region="Germany", language="German") -> WorkspaceRegion:
        row = WorkspaceRegion(workspace_id=workspace.id, region=region, language=language)
        self.session.add(row)
        await self.session.commit()
        return row

    async def topic(self, workspace: Workspace, name="CRM", competitors=("HubSpot",), **kwargs) -> Topic:
        row = Topic(
            workspace_id=workspace.id,
            name=name,
            competitors=list(competitors),
            created_at=self._tick(),
            **kwargs,
        )
        self.session.add(row)
        await self.session.commit()
        return row

    async def prompt(self, workspace: Workspace, text="best crm for small business", **kwargs) -> MonitoringPrompt:
        row = MonitoringPrompt(
            workspace_id=workspace.id,
            prompt_text=text,
            created_at=self._tick(),
            **kwargs,
        )
        self.session.add(row)
        await self.session.commit()
        return row


@pytest.fixture
async def engine():
    engine = create_async_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def repo(db) -> SqlAlchemyRepository:
    return SqlAlchemyRepository(db)


@pytest.fixture
def seed(db) -> Seeder:
    return Seeder(db)


@pytest.fixture
def fake_adapters():
    """Adapter factory returning one FakeAdapter per provider name."""
    adapters: dict[str, FakeAdapter] = {}

    def factory(name: str, **kwargs) -> FakeAdapter:
        if name not in adapters:
            adapters[name] = FakeAdapter(provider=name, **kwargs)
        return adapters[name]

    factory.adapters = adapters
    return factory


@pytest.fixture
async def client(session_factory, fake_adapters) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_adapter_factory] = lambda: fake_adapters

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
