"""
Backup / Replace / Restore Protocol
====================================

Zustände pro Datei: Clean (kein .bak) und Backed (.bak vorhanden).

Replace:
  1. (vorher, beim Aufrufer) Maße prüfen → DimensionMismatchError
  2. <name> → <name>.bak kopieren (überschreibt ein altes Backup)
  3. Neuen Inhalt nach .tmp_replace_<ms>_<name> schreiben
  4. Temp-Datei per Rename über <name> legen

Schritt 4 ist der einzige Schritt, der <name> verändert. Scheitert
Schritt 3 oder 4, bleibt <name> unverändert; das in Schritt 2 erneuerte
Backup wird nicht zurückgerollt.

Restore:
  Inhalt von <name>.bak über Schritt 3+4 nach <name>. Das Backup bleibt
  stehen, damit ein zweites Restore wieder denselben Stand liefert.
  Es gibt genau eine Generation Historie.
"""

from __future__ import annotations

import logging

from cardface.config import REPLACE_TEMP_PREFIX
from cardface.engine.catalog import ImageBounds, probe_bounds
from cardface.engine.file_store import PrivilegedFileStore
from cardface.models.managed_file import ManagedFile

logger = logging.getLogger("cardface.engine.replacer")


# =============================================================================
# Exceptions
# =============================================================================

class DimensionMismatchError(ValueError):
    """Ersatz-Bild hat andere Maße als das Ziel (oder ist kein Bild)."""

    def __init__(self, name: str, expected: tuple[int, int], actual: tuple[int, int] | None):
        self.name = name
        self.expected = expected
        self.actual = actual
        got = f"{actual[0]}x{actual[1]}" if actual else "kein Bild"
        super().__init__(
            f"Maße passen nicht für {name}: erwartet {expected[0]}x{expected[1]}, bekommen {got}"
        )


class BackupMissingError(FileNotFoundError):
    """Restore ohne Backup-Slot."""
    pass


def validate_replacement(entry: ManagedFile, content: bytes) -> ImageBounds:
    """
    Prüft, dass content ein Bild mit exakt den Maßen von entry ist.

    Raises:
        DimensionMismatchError: vor jeglichem Datei-I/O
    """
    bounds = probe_bounds(content)
    expected = (entry.width, entry.height)
    if bounds is None or bounds.resolution != expected:
        raise DimensionMismatchError(entry.name, expected, bounds.resolution if bounds else None)
    return bounds


# =============================================================================
# Protocol
# =============================================================================

class BackupReplaceProtocol:
    """
    Backup-dann-Schreiben auf einem PrivilegedFileStore.

    Usage:
        protocol = BackupReplaceProtocol(store)
        entry = await protocol.replace(entry, new_bytes)
        entry = await protocol.restore(entry)
    """

    def __init__(self, store: PrivilegedFileStore):
        self._store = store

    async def replace(self, entry: ManagedFile, content: bytes) -> ManagedFile:
        """
        Sichert den aktuellen Inhalt nach <name>.bak und ersetzt <name>.

        Returns:
            Neuer ManagedFile (content=content, has_backup=True)

        Raises:
            OSError: Backup, Schreiben oder Rename gescheitert
        """
        await self._store.copy(entry.name, entry.backup_name)
        logger.debug("Backup erstellt: %s", entry.backup_name)

        await self._commit(entry.name, content)
        logger.info("Replace %s erfolgreich (%d Bytes)", entry.name, len(content))
        return entry.superseded(content, has_backup=True)

    async def restore(self, entry: ManagedFile) -> ManagedFile:
        """
        Schreibt den Inhalt von <name>.bak zurück nach <name>.

        Raises:
            BackupMissingError: kein Backup-Slot vorhanden
            OSError:            Lesen/Schreiben/Rename gescheitert
        """
        if not await self._store.exists(entry.backup_name):
            raise BackupMissingError(f"Kein Backup für {entry.name}")

        content = await self._store.read(entry.backup_name)
        logger.info("Lade Bild für Restore aus %s", entry.backup_name)

        await self._commit(entry.name, content)
        logger.info("Restore %s erfolgreich (%d Bytes)", entry.name, len(content))
        return entry.superseded(content, has_backup=True)

    async def export(self, name: str) -> bytes:
        """Nur lesen, am Protokoll vorbei."""
        return await self._store.read(name)

    async def _commit(self, name: str, content: bytes) -> None:
        """Schreibt content in eine Temp-Datei und legt sie per Rename über name."""
        tmp_name = await self._store.temp_name(REPLACE_TEMP_PREFIX, name)
        try:
            await self._store.write(tmp_name, content)
            await self._store.rename(tmp_name, name)
        except OSError:
            await self._discard(tmp_name)
            raise

    async def _discard(self, tmp_name: str) -> None:
        try:
            if await self._store.exists(tmp_name):
                await self._store.remove(tmp_name)
        except OSError as e:
            logger.warning("Temp-Datei %s nicht entfernt: %s", tmp_name, e)
