"""
Gemeinsame Abhängigkeiten der Router (FastAPI Depends).

Ein CardService pro Prozess: der Root-Cache und der Katalog-Snapshot
leben darin. Tests ersetzen get_service/get_settings via dependency_overrides.
"""

from __future__ import annotations

from typing import Optional

from cardface.config import create_adb_client
from cardface.database import SettingsDatabase, db
from cardface.engine.service import CardService

_service: Optional[CardService] = None


def get_settings() -> SettingsDatabase:
    return db


def get_service() -> CardService:
    global _service
    if _service is None:
        _service = CardService(create_adb_client(), settings=db)
    return _service
