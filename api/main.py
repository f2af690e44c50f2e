import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from core.config import Settings, load_settings, parse_app_addr
from core.store import DocumentStore, RealtimeDatabase
from hektar import router as hektar_router
from upload import router as upload_router

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def build_store(settings: Settings) -> DocumentStore:
    return RealtimeDatabase(
        base_url=settings.database_url,
        auth_token=settings.store_auth_token,
        timeout_s=settings.store_timeout_s,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    if not settings.database_url:
        logger.warning("DATABASE_URL is not set; store calls will fail with 502.")
    logger.info(
        "startup prefix=%s default_collection=%s relay=%s",
        settings.route_prefix or "/",
        settings.default_collection,
        bool(settings.features_url),
    )
    yield


def create_app(settings: Settings | None = None, store: DocumentStore | None = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store if store is not None else build_store(settings)

    app.include_router(hektar_router.router, prefix=settings.route_prefix, tags=["hektar"])
    app.include_router(upload_router.router, prefix=settings.route_prefix, tags=["upload"])

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/")
    def root() -> dict:
        return {"message": "urwaldpate api"}

    return app


app = create_app()


def run() -> None:
    host, port = parse_app_addr(app.state.settings.app_addr)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run()
