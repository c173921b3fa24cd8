import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv


# Load .env FIRST before any other imports that might need env vars
PROJECT_DIR = Path(__file__).parent.parent
load_dotenv(PROJECT_DIR / ".env")

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from sqlalchemy.exc import OperationalError

from .career.router import router as career_router
from .config.logging import setup_logging
from .config.settings import Settings, get_settings
from .consistency.builders import ReadModelBuilders
from .consistency.propagator import ConsistencyPropagator
from .dashboard.router import router as dashboard_router
from .database.base import create_all_tables
from .database.engine import engine
from .database.session import async_session_maker
from .learning_paths.advisor import ExternalAdvisor, LearningPathAdvisor
from .learning_paths.external import LiteLLMAdvisor
from .learning_paths.router import router as learning_paths_router
from .middleware.error_handlers import register_error_handlers
from .records import models  # noqa: F401 - register tables with Base.metadata
from .records.repository import SkillRecordStore, SqlSkillRecordStore


setup_logging()
logger = logging.getLogger(__name__)


def _register_routers(app: FastAPI) -> None:
    """Register all application routers."""
    app.include_router(dashboard_router)
    app.include_router(learning_paths_router)
    app.include_router(career_router)


def _default_external_advisor(settings: Settings) -> ExternalAdvisor | None:
    try:
        model = settings.primary_llm_model
    except ValueError:
        logger.info("PRIMARY_LLM_MODEL not set - learning paths use the rule-based fallback")
        return None
    logger.info("Learning path advisor using model %s", model)
    return LiteLLMAdvisor()


async def _startup_database() -> None:
    """Create tables with retry logic."""
    max_retries = 5
    retry_delay = 1  # seconds

    for attempt in range(max_retries):
        try:
            await create_all_tables()
            logger.info("Database initialization completed successfully")
            break
        except OperationalError:
            if attempt == max_retries - 1:
                logger.exception("Startup failed after %d attempts", max_retries)
                raise

            logger.warning(
                "Database connection attempt %d failed, retrying in %ds...",
                attempt + 1,
                retry_delay,
            )
            await asyncio.sleep(retry_delay)
            retry_delay *= 2  # Exponential backoff


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    await _startup_database()

    yield

    logger.info("Starting graceful shutdown...")
    await app.state.propagator.aclose()
    try:
        await engine.dispose()
        logger.info("Database engine disposed successfully")
    except Exception as e:
        logger.warning(f"Error disposing database engine: {e}")
    logger.info("Shutdown complete")


def create_app(
    store: SkillRecordStore | None = None,
    external_advisor: ExternalAdvisor | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    ``store`` and ``external_advisor`` default to the SQL record store and the
    litellm advisor (when a model is configured).
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="UpSkill Readiness API",
        description="Skill-gap readiness, dashboard and learning path read-models",
        version="0.1.0",
        debug=settings.DEBUG,
        lifespan=lifespan if settings.ENVIRONMENT != "test" else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    if store is None:
        store = SqlSkillRecordStore(async_session_maker)
    if external_advisor is None:
        external_advisor = _default_external_advisor(settings)
    advisor = LearningPathAdvisor.from_settings(settings, external_advisor)

    app.state.store = store
    app.state.advisor = advisor
    app.state.propagator = ConsistencyPropagator(
        ReadModelBuilders(store, advisor, settings),
        max_users=settings.READ_MODEL_MAX_USERS,
    )

    register_error_handlers(app)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Check application health status."""
        return {"status": "healthy"}

    _register_routers(app)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=get_settings().API_PORT)
