from typing import Optional

from fastapi import FastAPI
from contextlib import asynccontextmanager
from app.core.config import Settings, settings as default_settings
from app.core.db.base import create_engine, create_session_maker
from app.core.errors import ClientError, register_error_handlers
from app.core.logging import setup_logging, get_logger
from app.apis.cards.main import router as cards_router
from app.apis.tags.main import router as tags_router

import uvicorn
from fastapi.middleware.cors import CORSMiddleware


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        yield
    finally:
        await app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings.app.log_level)

    app = FastAPI(
        title=settings.app.name, version=settings.app.version, lifespan=lifespan
    )

    # One engine (pool) per app; requests borrow sessions from it
    app.state.engine = create_engine(settings.database_dsn, echo=settings.app.sql_echo)
    app.state.session_maker = create_session_maker(app.state.engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    api_prefix = f"/{settings.app.version}"
    app.include_router(cards_router, prefix=api_prefix)
    app.include_router(tags_router, prefix=api_prefix)

    @app.get("/")
    async def root():
        return {
            "status": "ok",
            "app": settings.app.name,
            "version": settings.app.version,
        }

    # Registered last so it only sees paths no router matched
    @app.api_route(
        f"{api_prefix}/{{path:path}}",
        methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        include_in_schema=False,
    )
    async def unknown_endpoint(path: str):
        raise ClientError("Not a valid endpoint")

    logger.info(f"{settings.app.name} {settings.app.version} ready")
    return app


app = create_app()


if __name__ == "__main__":
    try:
        uvicorn.run(
            "main:app",
            host="0.0.0.0",
            port=default_settings.app.port,
            reload=not default_settings.app.is_production,
        )
    except Exception as e:
        print(f"An error occurred when starting the server: {e}.")
