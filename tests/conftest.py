"""Root conftest: test infrastructure for all backend tests.

Provides:
- anyio backend pinned to asyncio (API tests use @pytest.mark.anyio)
- In-memory service graph (cache store, broker, selection, orchestrator)
  wired from the fakes in tests/helpers/fakes.py
- API client with dependency overrides: no database, no GitHub
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from app.config.settings import settings
from app.services.cache import ActivityCacheStore
from app.services.notifications import UserEventBroker
from app.services.selection import SelectionFilter
from app.services.sync import RepositoryCatalog, SyncOrchestrator

from tests.helpers.fakes import (
    FakeActivityStore,
    FakeClock,
    FakeConnections,
    FakeDurableTier,
    FakeEventSource,
    FakeRepositorySelection,
    RecordingSink,
)
from tests.helpers.mock_factories import TEST_USER_ID


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


# ─────────────────────────────────────────────────────────────────────────────
# In-memory collaborators
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def durable() -> FakeDurableTier:
    return FakeDurableTier()


@pytest.fixture
def cache_store(durable: FakeDurableTier, clock: FakeClock) -> ActivityCacheStore:
    return ActivityCacheStore(durable, maxsize=64, timer=clock)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def repositories() -> FakeRepositorySelection:
    return FakeRepositorySelection()


@pytest.fixture
def selection(sink: RecordingSink, repositories: FakeRepositorySelection) -> SelectionFilter:
    return SelectionFilter(sink, repositories=repositories)  # type: ignore[arg-type]


@pytest.fixture
def activities() -> FakeActivityStore:
    return FakeActivityStore()


@pytest.fixture
def connections() -> FakeConnections:
    return FakeConnections()


@pytest.fixture
def event_source() -> FakeEventSource:
    return FakeEventSource()


@pytest.fixture
def orchestrator(
    cache_store: ActivityCacheStore,
    sink: RecordingSink,
    selection: SelectionFilter,
    activities: FakeActivityStore,
    connections: FakeConnections,
    event_source: FakeEventSource,
    clock: FakeClock,
) -> SyncOrchestrator:
    """Orchestrator over in-memory fakes; retries don't actually sleep."""
    return SyncOrchestrator(
        cache_store,
        sink,
        selection,
        source_factory=event_source.for_token,
        activities=activities,  # type: ignore[arg-type]
        connections=connections,  # type: ignore[arg-type]
        page_size=50,
        fetch_timeout=5.0,
        retry_backoff=0.5,
        activity_ttl=300,
        sleep=AsyncMock(),
        wall_clock=clock,
    )


# ─────────────────────────────────────────────────────────────────────────────
# API client
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def broker() -> UserEventBroker:
    return UserEventBroker(queue_size=10)


@pytest.fixture
def catalog(cache_store: ActivityCacheStore, event_source: FakeEventSource) -> RepositoryCatalog:
    return RepositoryCatalog(cache_store, source_factory=event_source.for_token, ttl_seconds=3600)


@pytest.fixture
async def api_client(
    cache_store: ActivityCacheStore,
    broker: UserEventBroker,
    selection: SelectionFilter,
    catalog: RepositoryCatalog,
    orchestrator: SyncOrchestrator,
) -> AsyncIterator[AsyncClient]:
    """HTTP client with every service swapped for its in-memory counterpart.

    The DB session is an AsyncMock: the fakes ignore it, and routes that
    reach domain operations directly patch those operations in the test.
    """
    from app.api.deps import (
        get_cache_store,
        get_notification_broker,
        get_repository_catalog,
        get_selection_filter,
        get_sync_orchestrator,
    )
    from app.core.database import get_db
    from app.main import app

    db = AsyncMock()

    async def override_db():
        yield db

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_cache_store] = lambda: cache_store
    app.dependency_overrides[get_notification_broker] = lambda: broker
    app.dependency_overrides[get_selection_filter] = lambda: selection
    app.dependency_overrides[get_repository_catalog] = lambda: catalog
    app.dependency_overrides[get_sync_orchestrator] = lambda: orchestrator

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={settings.user_id_header: TEST_USER_ID},
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def anonymous_client() -> AsyncIterator[AsyncClient]:
    """Client without the gateway's user header."""
    from app.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
