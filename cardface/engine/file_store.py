"""
Privileged File Store
======================

Zustandslose Datei-Operationen auf genau einem Basisverzeichnis,
über den Root-Command-Channel. Root muss bereits gewährt sein
(RootAccessManager).

Namen sind reine Dateinamen; es gibt keinen Schutz gegen "../".
Aufrufer übergeben ausschließlich Namen aus list().

Fehler: FileNotFoundError für fehlende Quellen, OSError für alles
andere (auch Transport-Fehler des Channels, verkettet via `from`).
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from cardface.adb.client import ADBError
from cardface.config import BASE_DIR, SWAP_TEMP_PREFIX

logger = logging.getLogger("cardface.engine.store")


@asynccontextmanager
async def _io_errors(action: str, name: str) -> AsyncGenerator[None, None]:
    """Übersetzt ADBError (Timeout, Verbindung) in OSError."""
    try:
        yield
    except ADBError as e:
        raise OSError(f"{action} fehlgeschlagen: {name}: {e}") from e


class PrivilegedFileStore:
    """
    Datei-API über einem festen, privilegierten Verzeichnis.

    Usage:
        store = PrivilegedFileStore(channel)
        names = await store.list()
        header = await store.read("abc.0", limit=2048)
        await store.copy("abc.0", "abc.0.bak")
    """

    def __init__(self, channel, base_dir: str = BASE_DIR):
        self._channel = channel
        self._base_dir = base_dir.rstrip("/")

    @property
    def base_dir(self) -> str:
        return self._base_dir

    def path(self, name: str) -> str:
        return f"{self._base_dir}/{name}"

    # =========================================================================
    # Lesen
    # =========================================================================

    async def list(self) -> list[str]:
        """Direkte Kinder des Basisverzeichnisses; [] wenn es nicht existiert."""
        async with _io_errors("Auflisten", self._base_dir):
            if not await self._channel.path_exists(self._base_dir):
                logger.warning("Verzeichnis %s existiert nicht", self._base_dir)
                return []
            return await self._channel.list_directory(self._base_dir)

    async def exists(self, name: str) -> bool:
        async with _io_errors("Prüfen", name):
            return await self._channel.path_exists(self.path(name))

    async def read(self, name: str, limit: Optional[int] = None) -> bytes:
        """
        Liest eine Datei.

        Mit limit kommen immer exakt limit Bytes zurück: ein kürzerer
        Inhalt wird mit Nullbytes aufgefüllt. Nur für Format-Probes.
        """
        async with _io_errors("Lesen", name):
            data = await self._channel.read_file(self.path(name), limit=limit)
        if limit is None:
            return data
        buffer = bytearray(limit)
        chunk = data[:limit]
        buffer[:len(chunk)] = chunk
        return bytes(buffer)

    # =========================================================================
    # Schreiben
    # =========================================================================

    async def write(self, name: str, data: bytes) -> str:
        """Schreibt data vollständig nach name (anlegen/überschreiben). Kein fsync."""
        path = self.path(name)
        async with _io_errors("Schreiben", name):
            await self._channel.write_file(path, data)
        logger.debug("Geschrieben: %s (%d Bytes)", name, len(data))
        return path

    async def copy(self, source: str, dest: str) -> str:
        """Kopiert source nach dest. FileNotFoundError wenn source fehlt."""
        dest_path = self.path(dest)
        async with _io_errors("Kopieren", source):
            await self._channel.copy_file(self.path(source), dest_path)
        logger.debug("Kopiert: %s → %s", source, dest)
        return dest_path

    async def rename(self, source: str, dest: str) -> None:
        async with _io_errors("Umbenennen", source):
            ok = await self._channel.rename(self.path(source), self.path(dest))
        if not ok:
            raise OSError(f"Umbenennen fehlgeschlagen: {source} → {dest}")

    async def remove(self, name: str) -> None:
        async with _io_errors("Löschen", name):
            if not await self._channel.remove(self.path(name)):
                raise OSError(f"Löschen fehlgeschlagen: {name}")

    async def temp_name(self, prefix: str, name: str) -> str:
        """Freier Temp-Name aus prefix, aktueller Zeit (ms) und name."""
        while True:
            candidate = f"{prefix}{time.time_ns() // 1_000_000}_{name}"
            if not await self.exists(candidate):
                return candidate

    # =========================================================================
    # Swap
    # =========================================================================

    async def swap(self, name1: str, name2: str) -> bytes:
        """
        Tauscht die Inhalte zweier Dateien über drei Renames.

        Fehlt eine der Dateien: Warnung, b"" zurück, nichts wird angefasst.

        Returns:
            Inhalt von name1 nach dem Tausch (= ursprünglich name2)
        """
        for name in (name1, name2):
            if not await self.exists(name):
                logger.warning("Swap abgebrochen, Datei %s existiert nicht", self.path(name))
                return b""

        tmp_name = await self.temp_name(SWAP_TEMP_PREFIX, name1)
        await self.rename(name1, tmp_name)
        await self.rename(name2, name1)
        await self.rename(tmp_name, name2)

        logger.info("Swap %s und %s via %s", name1, name2, tmp_name)
        return await self.read(name1)
