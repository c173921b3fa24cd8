"""Shared fixtures.

The environment is pinned before anything from ``upskill`` is imported: settings
are cached on first use and the module-level engine is built from them.
"""

import os


os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.pop("PRIMARY_LLM_MODEL", None)

from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from tests.fixtures.record_store import InMemoryRecordStore  # noqa: E402
from upskill.career.service import CareerService  # noqa: E402
from upskill.config.settings import Settings  # noqa: E402
from upskill.consistency.builders import ReadModelBuilders  # noqa: E402
from upskill.consistency.propagator import ConsistencyPropagator  # noqa: E402
from upskill.learning_paths.advisor import LearningPathAdvisor  # noqa: E402


USER_ID = 1

# Catalog ids
PYTHON, SQL, DOCKER, COMMUNICATION, KUBERNETES = 1, 2, 3, 4, 5
BACKEND_ROLE, PLATFORM_ROLE = 10, 20


@pytest.fixture
def settings() -> Settings:
    return Settings(DATABASE_URL="sqlite+aiosqlite:///:memory:", ENVIRONMENT="test")


@pytest.fixture
def store() -> InMemoryRecordStore:
    """A user with two tracked skills and a small catalog; no goal yet."""
    store = InMemoryRecordStore()
    store.add_user(USER_ID, "Ada Lovelace")
    store.add_user(2, "Grace Hopper")

    store.add_skill(PYTHON, "Python")
    store.add_skill(SQL, "SQL")
    store.add_skill(DOCKER, "Docker")
    store.add_skill(COMMUNICATION, "Communication", category="soft")
    store.add_skill(KUBERNETES, "Kubernetes")

    store.add_role(BACKEND_ROLE, "Backend Engineer", {PYTHON: 60, SQL: 50})
    store.add_role(PLATFORM_ROLE, "Platform Engineer", {DOCKER: 70, KUBERNETES: 60, PYTHON: 40})

    store.add_user_skill(USER_ID, PYTHON, 30, 60)
    store.add_user_skill(USER_ID, SQL, 50)

    store.add_resource(100, "course", [PYTHON], duration=120)
    store.add_resource(101, "course", [SQL], duration=90)
    store.add_resource(102, "course", [DOCKER], duration=180)
    store.add_resource(103, "workshop", [PYTHON], duration=60)
    store.add_resource(104, "assessment", [SQL], duration=30)
    store.add_resource(105, "workshop", [KUBERNETES], duration=240)
    store.add_resource(106, "video", [PYTHON], duration=15)
    return store


@pytest.fixture
def store_with_goal(store: InMemoryRecordStore) -> InMemoryRecordStore:
    store.add_goal(USER_ID, BACKEND_ROLE, title="Become a backend engineer", timeline_months=6, is_active=True)
    return store


@pytest.fixture
def advisor() -> LearningPathAdvisor:
    """Advisor without an external service: always the rule-based fallback."""
    return LearningPathAdvisor(None, timeout_seconds=0.5)


@pytest.fixture
def propagator(store: InMemoryRecordStore, advisor: LearningPathAdvisor, settings: Settings) -> ConsistencyPropagator:
    return ConsistencyPropagator(ReadModelBuilders(store, advisor, settings))


@pytest.fixture
def career(store: InMemoryRecordStore, propagator: ConsistencyPropagator, settings: Settings) -> CareerService:
    return CareerService(store, propagator, settings)


@pytest_asyncio.fixture
async def client(store: InMemoryRecordStore, settings: Settings) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for an app wired to the in-memory store."""
    from upskill.main import create_app

    app = create_app(store=store, settings=settings)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
