"""
Catalog API
============

Endpoints:
  GET  /api/catalog                          Scan + Katalog (ohne Bild-Bytes)
  GET  /api/catalog/{name}                   Export: Bild-Bytes
  POST /api/catalog/{name}/replace           Ersetzen, Request-Body = Bild-Bytes
  POST /api/catalog/{name}/replace-from-uri  Ersetzen aus URI ({"uri": "..."})
  POST /api/catalog/{name}/restore           Backup zurückschreiben

Fehler-Mapping:
  Root fehlt            → 503 root_unavailable
  Name nicht im Katalog → 404 not_in_catalog
  Maße passen nicht     → 422 dimension_mismatch
  Kein Backup           → 404 backup_missing
  I/O                   → 502 io_error
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from PIL import Image

from cardface.api.deps import get_service
from cardface.engine.catalog import probe_bounds
from cardface.engine.replacer import BackupMissingError, DimensionMismatchError
from cardface.engine.service import CardService, ManagedFileNotFoundError, RootUnavailableError
from cardface.models.managed_file import CatalogView, ExternalUri, InMemory, ManagedFile

logger = logging.getLogger("cardface.api.catalog")

router = APIRouter(prefix="/api/catalog", tags=["Catalog"])


def _error(status_code: int, error: str, detail: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"error": error, "detail": detail})


async def _run_mutation(coro) -> ManagedFile:
    """Führt Replace/Restore aus und übersetzt die Fehler in HTTP-Status."""
    try:
        return await coro
    except RootUnavailableError as e:
        raise _error(503, "root_unavailable", str(e))
    except ManagedFileNotFoundError as e:
        raise _error(404, "not_in_catalog", str(e))
    except DimensionMismatchError as e:
        raise _error(422, "dimension_mismatch", str(e))
    except BackupMissingError as e:
        raise _error(404, "backup_missing", str(e))
    except OSError as e:
        raise _error(502, "io_error", str(e))


# =============================================================================
# GET /api/catalog
# =============================================================================

@router.get("", response_model=CatalogView)
async def get_catalog(
    show_all: Optional[bool] = None,
    service: CardService = Depends(get_service),
):
    """
    Scannt das Basisverzeichnis neu und liefert den Katalog.

    show_all überschreibt das gespeicherte Setting für diesen Aufruf.
    """
    result = await service.scan(show_all=show_all)
    view = result.view()
    if not result.root_available:
        return JSONResponse(status_code=503, content=view.model_dump(mode="json"))
    return view


# =============================================================================
# GET /api/catalog/{name}: Export
# =============================================================================

@router.get("/{name}")
async def export_image(name: str, service: CardService = Depends(get_service)):
    """Liefert die Bild-Bytes (read-only, am Backup-Protokoll vorbei)."""
    try:
        data = await service.export(name)
    except RootUnavailableError as e:
        raise _error(503, "root_unavailable", str(e))
    except FileNotFoundError as e:
        raise _error(404, "not_found", str(e))
    except OSError as e:
        raise _error(502, "io_error", str(e))

    bounds = probe_bounds(data)
    media_type = Image.MIME.get(bounds.format, "application/octet-stream") if bounds else (
        "application/octet-stream"
    )
    return Response(
        content=data,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{name}"'},
    )


# =============================================================================
# POST Replace / Restore
# =============================================================================

@router.post("/{name}/replace", response_model=ManagedFile)
async def replace_image(name: str, request: Request, service: CardService = Depends(get_service)):
    """Ersetzt das Bild durch den rohen Request-Body."""
    body = await request.body()
    if not body:
        raise _error(400, "empty_body", "Request-Body enthält kein Bild")
    logger.info("Replace angefordert: %s (%d Bytes)", name, len(body))
    return await _run_mutation(service.replace(name, InMemory(data=body)))


@router.post("/{name}/replace-from-uri", response_model=ManagedFile)
async def replace_image_from_uri(
    name: str,
    source: ExternalUri,
    service: CardService = Depends(get_service),
):
    """Ersetzt das Bild durch den Inhalt einer URI."""
    logger.info("Replace angefordert: %s ← %s", name, source.uri)
    return await _run_mutation(service.replace(name, source))


@router.post("/{name}/restore", response_model=ManagedFile)
async def restore_image(name: str, service: CardService = Depends(get_service)):
    """Schreibt <name>.bak zurück nach <name>."""
    logger.info("Restore angefordert: %s", name)
    return await _run_mutation(service.restore(name))
