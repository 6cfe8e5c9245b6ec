"""
Image Catalog Builder
======================

Einmaliger Scan des Basisverzeichnisses → Liste von ManagedFile.

Ablauf pro Kandidat:
  1. `journal`, `*.bak` und `.tmp_swap_*`/`.tmp_replace_*` überspringen
  2. 2048-Byte-Präfix lesen, Bounds-Probe (nur Header, keine Pixel)
  3. Probe erfolglos → Probe auf dem vollen Inhalt
  4. Filter: show_all_images oder Maße ∈ TARGET_RESOLUTIONS
  5. Vollständig lesen, has_backup aus dem Listing ableiten

Eine Datei, die nicht gelesen oder erkannt werden kann, wird still
übersprungen: das Verzeichnis ist ein geteilter Glide-Cache mit
beliebigen Fremddateien.
"""

from __future__ import annotations

import io
import logging
import struct
from dataclasses import dataclass
from typing import Iterable, Optional

from PIL import Image, UnidentifiedImageError

from cardface.config import (
    BACKUP_SUFFIX,
    JOURNAL_NAME,
    PROBE_PREFIX_BYTES,
    REPLACE_TEMP_PREFIX,
    SWAP_TEMP_PREFIX,
    TARGET_RESOLUTIONS,
)
from cardface.engine.file_store import PrivilegedFileStore
from cardface.models.managed_file import ManagedFile

logger = logging.getLogger("cardface.engine.catalog")

# Pillow wirft je nach Plugin unterschiedliche Fehler bei kaputten Headern
_PROBE_ERRORS = (
    UnidentifiedImageError,
    Image.DecompressionBombError,
    OSError,
    SyntaxError,
    ValueError,
    EOFError,
    struct.error,
)


@dataclass(frozen=True)
class ImageBounds:
    """Ergebnis eines Bounds-Probes."""
    width: int
    height: int
    format: Optional[str] = None

    @property
    def resolution(self) -> tuple[int, int]:
        return (self.width, self.height)


def probe_bounds(data: bytes) -> Optional[ImageBounds]:
    """
    Liest Breite/Höhe aus dem Header, ohne Pixel zu dekodieren.

    Image.open() ist lazy: es parst nur den Header, load() wird nie
    aufgerufen. None wenn das Format nicht erkannt wird oder die Maße
    nicht im Präfix stehen.
    """
    if not data:
        return None
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            fmt = img.format
    except _PROBE_ERRORS:
        return None
    if width <= 0 or height <= 0:
        return None
    return ImageBounds(width=width, height=height, format=fmt)


def is_candidate(name: str) -> bool:
    """Journal, Backup-Slots und liegengebliebene Temp-Dateien sind nie Katalog-Einträge."""
    if name == JOURNAL_NAME or name.endswith(BACKUP_SUFFIX):
        return False
    return not name.startswith((SWAP_TEMP_PREFIX, REPLACE_TEMP_PREFIX))


def is_visible(
    bounds: ImageBounds,
    show_all: bool,
    resolutions: Iterable[tuple[int, int]] = TARGET_RESOLUTIONS,
) -> bool:
    return show_all or bounds.resolution in set(resolutions)


class ImageCatalogBuilder:
    """
    Baut den Katalog aus einem PrivilegedFileStore.

    Usage:
        builder = ImageCatalogBuilder(store)
        entries = await builder.build(show_all=False)
    """

    def __init__(
        self,
        store: PrivilegedFileStore,
        prefix_bytes: int = PROBE_PREFIX_BYTES,
        resolutions: Iterable[tuple[int, int]] = TARGET_RESOLUTIONS,
    ):
        self._store = store
        self._prefix_bytes = prefix_bytes
        self._resolutions = tuple(resolutions)

    async def probe(self, name: str) -> Optional[ImageBounds]:
        """Präfix-Probe, bei Misserfolg Probe auf dem vollen Inhalt."""
        bounds = probe_bounds(await self._store.read(name, limit=self._prefix_bytes))
        if bounds is None:
            logger.debug("Präfix reicht nicht für %s, lese vollständig", name)
            bounds = probe_bounds(await self._store.read(name))
        return bounds

    async def build(self, show_all: bool = False) -> list[ManagedFile]:
        """Vollständiger Scan. Reihenfolge = Reihenfolge des Listings."""
        names = await self._store.list()
        logger.info("Dateiliste gelesen: %d Einträge in %s", len(names), self._store.base_dir)
        listed = set(names)
        entries: list[ManagedFile] = []

        for name in names:
            if not is_candidate(name):
                continue
            try:
                bounds = await self.probe(name)
                if bounds is None:
                    continue
                if not is_visible(bounds, show_all, self._resolutions):
                    logger.debug("Ausgeblendet: %s (%dx%d)", name, bounds.width, bounds.height)
                    continue
                content = await self._store.read(name)
            except OSError as e:
                logger.debug("Übersprungen: %s: %s", name, e)
                continue

            entries.append(ManagedFile(
                name=name,
                content=content,
                width=bounds.width,
                height=bounds.height,
                has_backup=f"{name}{BACKUP_SUFFIX}" in listed,
                format=bounds.format,
            ))

        logger.info("Katalog: %d Bilder (show_all=%s)", len(entries), show_all)
        return entries
