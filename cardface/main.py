"""
Cardface FastAPI Entrypoint
============================

Startet den Host-Service mit:
  - Settings-DB Initialisierung
  - Root-Probe beim Start (nur geloggt, nicht fatal)
  - API-Router (Catalog, Settings, System)

Start:
    uvicorn cardface.main:app --host 127.0.0.1 --port 8000

Oder:
    python -m cardface.main
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cardface.config import API_HOST, API_PORT, API_TITLE, API_VERSION, BASE_DIR, DATABASE_PATH, EXECUTION_MODE
from cardface.database import db
from cardface.logs import configure_logging

# =============================================================================
# Logging Setup: MUSS vor allen anderen Modul-Imports passieren
# =============================================================================

configure_logging()
logger = logging.getLogger("cardface.main")

from cardface.api.deps import get_service  # noqa: E402
from cardface.api.system import log_buffer_handler  # noqa: E402

logging.getLogger("cardface").addHandler(log_buffer_handler)


# =============================================================================
# Lifespan (Startup / Shutdown)
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application Lifespan:
      - Startup:  Settings-DB öffnen, Root einmal prüfen
      - Shutdown: DB sauber schliessen
    """
    logger.info("=" * 60)
    logger.info("  Cardface v%s (Mode: %s)", API_VERSION, EXECUTION_MODE)
    logger.info("  Settings: %s", DATABASE_PATH)
    logger.info("  Basisverzeichnis: %s", BASE_DIR)
    logger.info("  API: http://%s:%d", API_HOST, API_PORT)
    logger.info("=" * 60)

    await db.initialize()

    if await get_service().root.ensure_root_available():
        logger.info("Root verfügbar")
    else:
        logger.warning("Root nicht verfügbar: Katalog gesperrt bis zum Retry (GET /api/root)")

    yield

    logger.info("Shutdown: Schliesse Datenbank...")
    await db.close()


# =============================================================================
# FastAPI App
# =============================================================================

app = FastAPI(
    title=API_TITLE,
    version=API_VERSION,
    description="Kartenbilder im privaten App-Cache ansehen, ersetzen, sichern und wiederherstellen (Root).",
    lifespan=lifespan,
)

from cardface.api.catalog import router as catalog_router  # noqa: E402
from cardface.api.settings import router as settings_router  # noqa: E402
from cardface.api.system import router as system_router  # noqa: E402

app.include_router(catalog_router)
app.include_router(settings_router)
app.include_router(system_router)


# =============================================================================
# Globaler Exception Handler
# =============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Fängt unbehandelte Exceptions und gibt ein sauberes JSON zurück."""
    logger.error("Unhandled exception on %s: %s", request.url, exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "detail": str(exc),
        },
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "cardface.main:app",
        host=API_HOST,
        port=API_PORT,
        log_level="info",
    )
