import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

# Environment is loaded by Pydantic Settings (see huddle.core.settings).
from huddle.api import register_routes
from huddle.core.database import build_engine, init_db, make_session_factory
from huddle.core.exceptions import register_exception_handlers
from huddle.core.logging import setup_logging
from huddle.core.settings import Settings, get_settings
from huddle.realtime.hub import RealtimeConfig, RealtimeHub

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    engine: Engine | None = None,
    hub: RealtimeHub | None = None,
) -> FastAPI:
    """Build the API with its own engine and realtime hub.

    Run with ``uvicorn huddle.main:create_app --factory``.
    """
    settings = settings or get_settings()
    # Initialize logging early so all modules inherit the handlers/level
    setup_logging(settings.log_level or settings.log_level_fallback)

    engine = engine or build_engine(settings.database_url)
    hub = hub or RealtimeHub(RealtimeConfig.from_settings(settings))

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        init_db(engine)
        await hub.start()
        try:
            yield
        finally:
            await hub.stop()

    app = FastAPI(title="Huddle API", lifespan=lifespan)
    app.state.settings = settings
    app.state.db_engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.realtime_hub = hub

    register_exception_handlers(app)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_routes(app, include_debug=settings.enable_debug_routes)

    logger.info("Huddle API initialized")
    return app
