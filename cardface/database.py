"""
SQLite Settings Store
======================

Persistenter Key/Value-Store für boolesche Benutzereinstellungen:

  show_all_images       Auflösungs-Filter im Katalog abschalten
  acknowledgement_read  Rechtshinweis beim ersten Start bestätigt

Features:
  - Async SQLite via aiosqlite (WAL-Mode)
  - Nur bekannte Keys (SettingKey) werden akzeptiert
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import aiosqlite

from cardface.config import DATABASE_PATH
from cardface.models.settings import SettingKey, SettingsRead

logger = logging.getLogger("cardface.database")


_SQL_CREATE_SETTINGS = """
CREATE TABLE IF NOT EXISTS settings (
    key         TEXT PRIMARY KEY,
    value       INTEGER NOT NULL CHECK (value IN (0, 1)),
    updated_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""


class SettingsDatabase:
    """
    Async SQLite Settings-Store.

    Usage:
        db = SettingsDatabase()
        await db.initialize()

        show_all = await db.get_bool(SettingKey.SHOW_ALL_IMAGES)
        await db.set_bool(SettingKey.SHOW_ALL_IMAGES, True)

        await db.close()
    """

    def __init__(self, db_path: str | None = None):
        self._db_path = str(db_path or DATABASE_PATH)
        self._connection: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Verbindung herstellen, WAL aktivieren, Tabelle anlegen."""
        logger.info("Initialisiere Settings-Datenbank: %s", self._db_path)

        self._connection = await aiosqlite.connect(self._db_path)
        self._connection.row_factory = aiosqlite.Row

        await self._connection.execute("PRAGMA journal_mode=WAL")
        await self._connection.execute("PRAGMA busy_timeout=5000")
        await self._connection.executescript(_SQL_CREATE_SETTINGS)
        await self._connection.commit()

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[aiosqlite.Connection, None]:
        """Context-Manager für die Datenbankverbindung."""
        if self._connection is None:
            raise RuntimeError("Datenbank nicht initialisiert: await db.initialize() zuerst!")
        yield self._connection

    async def close(self) -> None:
        """Schliesst die Datenbankverbindung."""
        if self._connection:
            await self._connection.close()
            self._connection = None
            logger.info("Settings-Datenbank geschlossen.")

    # =========================================================================
    # Key/Value
    # =========================================================================

    async def get_bool(self, key: SettingKey | str, default: bool = False) -> bool:
        key = SettingKey(key)
        async with self.connection() as conn:
            cursor = await conn.execute("SELECT value FROM settings WHERE key = ?", (key.value,))
            row = await cursor.fetchone()
        return bool(row["value"]) if row else default

    async def set_bool(self, key: SettingKey | str, value: bool) -> None:
        key = SettingKey(key)
        async with self.connection() as conn:
            await conn.execute(
                "INSERT INTO settings (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, "
                "updated_at = strftime('%Y-%m-%dT%H:%M:%SZ', 'now')",
                (key.value, int(bool(value))),
            )
            await conn.commit()
        logger.info("Setting %s = %s", key.value, value)

    async def all(self) -> SettingsRead:
        """Alle Settings, fehlende Keys mit Default False."""
        return SettingsRead(**{
            key.value: await self.get_bool(key) for key in SettingKey
        })


# =============================================================================
# Globale Singleton-Instanz
# =============================================================================

db = SettingsDatabase()
