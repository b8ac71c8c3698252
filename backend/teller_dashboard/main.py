import logging
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
from fastapi import FastAPI
from fastapi.responses import FileResponse

from . import demo, manual_data, manual_fields, manual_summary, proxy, system
from .config import settings
from .errors import register_exception_handlers
from .middleware import RequestIdMiddleware
from .stores import ManualStores

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _log_flags() -> None:
    logger.info("Backend URL: %s", settings.backend_url)
    logger.info("FEATURE_MANUAL_DATA: %s", settings.feature_manual_data)
    logger.info("FEATURE_STATIC_DB: %s", settings.feature_static_db)
    if settings.feature_manual_data:
        logger.info("MANUAL_DATA_READONLY: %s", settings.manual_data_readonly)
        logger.info("MANUAL_DATA_DRY_RUN: %s", settings.manual_data_dry_run)


@asynccontextmanager
async def lifespan(app: FastAPI):
    _log_flags()
    stores: ManualStores = getattr(app.state, "stores", None) or ManualStores.from_settings(settings)
    app.state.stores = stores
    if getattr(app.state, "http_client", None) is None:
        app.state.http_client = httpx.AsyncClient(timeout=settings.proxy_timeout_seconds)

    # Proxy and demo routes keep serving when the database is down.
    try:
        await stores.init()
    except Exception:
        logger.exception("Manual data initialization failed")
    else:
        if settings.feature_manual_data:
            health = await stores.health_totals()
            if health["ok"]:
                logger.info("Manual data readiness totals: %s", health["totals"])
            else:
                logger.warning("Manual data readiness summary failed: %s", health["error"])

    yield

    await app.state.http_client.aclose()
    await stores.close()
    logger.info("Shutdown complete")


def _mount_frontend(app: FastAPI, static_dir: Path) -> None:
    index = static_dir / "index.html"
    if not index.is_file():
        logger.warning("Frontend not found at %s. Running in API-only mode.", static_dir)
        return

    root = static_dir.resolve()

    @app.get("/{full_path:path}", include_in_schema=False)
    async def serve_frontend(full_path: str):
        candidate = (root / full_path).resolve()
        if full_path and candidate.is_file() and candidate.is_relative_to(root):
            return FileResponse(candidate)
        return FileResponse(index)


def create_app(
    stores: ManualStores | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.stores = stores
    app.state.http_client = http_client

    app.add_middleware(RequestIdMiddleware)
    register_exception_handlers(app)

    app.include_router(system.router)
    if settings.manual_data_migration_secret:
        app.include_router(system.migrate_router)
    else:
        logger.info("Migration endpoint disabled (no MANUAL_DATA_MIGRATION_SECRET provided)")

    if settings.feature_static_db:
        app.include_router(demo.router)

    app.include_router(manual_data.router)
    app.include_router(manual_fields.router)
    app.include_router(manual_summary.router)

    # Registered after every local /api route.
    app.include_router(proxy.router)

    @app.get("/health", include_in_schema=False)
    def health() -> dict[str, str]:
        return {"status": "ok"}

    _mount_frontend(app, settings.static_dir)

    return app


app = create_app()
