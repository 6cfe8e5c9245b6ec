"""
Ersatz-Quellen auflösen
========================

ReplacementSource → Bytes, bevor irgendetwas auf dem Gerät passiert.

  InMemory(data)  → data
  ExternalUri     → http(s):// via httpx, file:// oder Pfad vom Host-Dateisystem
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx

from cardface.config import TIMING
from cardface.models.managed_file import ExternalUri, InMemory

logger = logging.getLogger("cardface.engine.sources")


async def resolve_source(source: ExternalUri | InMemory) -> bytes:
    """
    Liefert die Bytes einer Ersatz-Quelle.

    Raises:
        OSError: URI nicht lesbar (HTTP-Fehler, Datei fehlt, leerer Inhalt)
    """
    if isinstance(source, InMemory):
        data = source.data
    else:
        data = await _fetch_uri(source.uri)

    if not data:
        raise OSError("Ersatz-Bild ist leer")
    return data


async def _fetch_uri(uri: str) -> bytes:
    parsed = urlparse(uri)
    logger.info("Lade Ersatz-Bild von %s", uri)

    if parsed.scheme in ("http", "https"):
        try:
            async with httpx.AsyncClient(timeout=TIMING.URI_FETCH_TIMEOUT, follow_redirects=True) as client:
                response = await client.get(uri)
                response.raise_for_status()
                return response.content
        except httpx.HTTPError as e:
            raise OSError(f"Download fehlgeschlagen: {uri}: {e}") from e

    if parsed.scheme == "file":
        path = Path(unquote(parsed.path))
    elif parsed.scheme == "":
        path = Path(uri).expanduser()
    else:
        raise OSError(f"Nicht unterstütztes URI-Schema: {parsed.scheme}")

    return await asyncio.to_thread(path.read_bytes)
