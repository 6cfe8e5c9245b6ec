"""
System API
===========

  GET /api/root    Root-Status (erneuter Aufruf = manueller Retry)
  GET /api/health  Channel verbunden? Root gecacht?
  GET /api/logs    Letzte Log-Einträge aus dem Ring-Buffer
"""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime

from fastapi import APIRouter, Depends

from cardface.api.deps import get_service
from cardface.config import LOCAL_TZ
from cardface.engine.service import CardService

logger = logging.getLogger("cardface.api.system")

router = APIRouter(prefix="/api", tags=["System"])


# =============================================================================
# Ring-Buffer Log-Handler
# =============================================================================

class LogBufferHandler(logging.Handler):
    """Hält die letzten N Log-Einträge für die UI vor."""

    def __init__(self, buffer_size: int = 500):
        super().__init__()
        self.buffer: deque[dict] = deque(maxlen=buffer_size)

    def emit(self, record: logging.LogRecord) -> None:
        self.buffer.append({
            "ts": datetime.fromtimestamp(record.created, tz=LOCAL_TZ).strftime("%H:%M:%S"),
            "level": record.levelname,
            "name": record.name,
            "msg": self.format(record),
        })

    def get_history(self) -> list[dict]:
        return list(self.buffer)


# Globale Instanz: wird in main.py an den "cardface"-Logger gehängt
log_buffer_handler = LogBufferHandler(buffer_size=500)
log_buffer_handler.setFormatter(logging.Formatter("%(message)s"))
log_buffer_handler.setLevel(logging.INFO)


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/root")
async def root_status(service: CardService = Depends(get_service)):
    """Prüft Root (gecacht sobald einmal gewährt)."""
    return {"granted": await service.root.ensure_root_available()}


@router.get("/health")
async def health_check(service: CardService = Depends(get_service)):
    return {
        "status": "healthy",
        "connected": await service.channel.is_connected(),
        "root_cached": service.root.granted,
        "catalog_size": len(service.catalog),
        "base_dir": service.store.base_dir,
    }


@router.get("/logs")
async def recent_logs(limit: int = 100):
    history = log_buffer_handler.get_history()
    return {"entries": history[-limit:] if limit > 0 else []}
