"""
Card Service
=============

Fassade für API und CLI: verbindet RootAccessManager, PrivilegedFileStore,
ImageCatalogBuilder, BackupReplaceProtocol und den Settings-Store.

Hält den zuletzt gescannten Katalog im Speicher. Replace/Restore ersetzen
den betroffenen Eintrag durch einen neuen; bei Fehlern bleibt der alte.
Operationen auf demselben Namen laufen strikt nacheinander.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path

from cardface.engine.catalog import ImageCatalogBuilder
from cardface.engine.file_store import PrivilegedFileStore
from cardface.engine.replacer import BackupReplaceProtocol, validate_replacement
from cardface.engine.root_access import RootAccessManager
from cardface.engine.sources import resolve_source
from cardface.models.managed_file import (
    CatalogMessage, CatalogView, ExternalUri, InMemory, ManagedFile,
)
from cardface.models.settings import SettingKey

logger = logging.getLogger("cardface.engine.service")


class ManagedFileNotFoundError(LookupError):
    """Name ist nicht im aktuellen Katalog."""
    pass


class RootUnavailableError(RuntimeError):
    """Root fehlt; Katalog-abhängige Operationen sind gesperrt."""
    pass


@dataclass
class CatalogResult:
    root_available: bool
    entries: list[ManagedFile] = field(default_factory=list)

    def view(self) -> CatalogView:
        if not self.root_available:
            message = CatalogMessage.ROOT_UNAVAILABLE
        elif not self.entries:
            message = CatalogMessage.NO_MANAGED_FILES
        else:
            message = CatalogMessage.OK
        return CatalogView(root_available=self.root_available, message=message, entries=self.entries)


class CardService:
    """
    Usage:
        service = CardService(channel, settings=db)
        result = await service.scan()
        entry = await service.replace("abc.0", InMemory(data=png_bytes))
        entry = await service.restore("abc.0")
    """

    def __init__(self, channel, settings=None, store: PrivilegedFileStore | None = None):
        self.channel = channel
        self.root = RootAccessManager(channel)
        self.store = store or PrivilegedFileStore(channel)
        self.catalog_builder = ImageCatalogBuilder(self.store)
        self.protocol = BackupReplaceProtocol(self.store)
        self._settings = settings
        self._catalog: list[ManagedFile] = []
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @property
    def catalog(self) -> list[ManagedFile]:
        return list(self._catalog)

    # =========================================================================
    # Scan
    # =========================================================================

    async def scan(self, show_all: bool | None = None) -> CatalogResult:
        """
        Baut den Katalog neu auf.

        Ohne Root wird kein Scan versucht (root_available=False).
        show_all=None → Wert aus dem Settings-Store.
        """
        if not await self.root.ensure_root_available():
            return CatalogResult(root_available=False)

        if show_all is None:
            show_all = await self._show_all_setting()

        self._catalog = await self.catalog_builder.build(show_all=show_all)
        return CatalogResult(root_available=True, entries=self.catalog)

    async def _show_all_setting(self) -> bool:
        if self._settings is None:
            return False
        return await self._settings.get_bool(SettingKey.SHOW_ALL_IMAGES)

    def get(self, name: str) -> ManagedFile:
        for entry in self._catalog:
            if entry.name == name:
                return entry
        raise ManagedFileNotFoundError(f"Nicht im Katalog: {name}")

    def _supersede(self, entry: ManagedFile) -> None:
        self._catalog = [entry if e.name == entry.name else e for e in self._catalog]

    async def _require_root(self) -> None:
        if not await self.root.ensure_root_available():
            raise RootUnavailableError("Root nicht verfügbar")

    # =========================================================================
    # Replace / Restore / Export
    # =========================================================================

    async def replace(self, name: str, source: ExternalUri | InMemory) -> ManagedFile:
        """
        Ersetzt name durch die Quelle (mit Backup).

        Raises:
            ManagedFileNotFoundError, DimensionMismatchError, OSError, RootUnavailableError
        """
        await self._require_root()
        entry = self.get(name)
        content = await resolve_source(source)
        validate_replacement(entry, content)

        async with self._locks[name]:
            try:
                updated = await self.protocol.replace(self.get(name), content)
            except OSError as e:
                logger.error("Replace fehlgeschlagen: %s: %s", name, e)
                raise
            self._supersede(updated)
        return updated

    async def restore(self, name: str) -> ManagedFile:
        """Schreibt das Backup zurück. Raises BackupMissingError ohne .bak."""
        await self._require_root()
        self.get(name)

        async with self._locks[name]:
            try:
                updated = await self.protocol.restore(self.get(name))
            except OSError as e:
                logger.error("Restore fehlgeschlagen: %s: %s", name, e)
                raise
            self._supersede(updated)
        return updated

    async def export(self, name: str) -> bytes:
        await self._require_root()
        return await self.protocol.export(name)

    async def export_to(self, name: str, destination: str | Path) -> int:
        """Exportiert name in eine Datei auf dem Host. Returns Anzahl Bytes."""
        data = await self.export(name)
        path = Path(destination).expanduser()
        await asyncio.to_thread(path.write_bytes, data)
        logger.info("Export %s → %s (%d Bytes)", name, path, len(data))
        return len(data)

    async def swap(self, name1: str, name2: str) -> bytes:
        await self._require_root()
        return await self.store.swap(name1, name2)
