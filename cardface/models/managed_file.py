"""
Managed-File Models
====================

Pydantic-Modelle für den Bildkatalog.

  1. ManagedFile        Ein Katalog-Eintrag (Name, Bytes, Maße, Backup-Flag)
  2. CatalogView        Katalog-Snapshot für die API (ohne Bild-Bytes)
  3. ReplacementSource  Herkunft der Ersatz-Bytes: ExternalUri | InMemory

ManagedFile ist frozen: nach Replace/Restore wird ein neuer Eintrag
erzeugt, der alte nie verändert.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

from cardface.config import BACKUP_SUFFIX


class ManagedFile(BaseModel):
    """Ein als Kartenbild erkanntes File im Basisverzeichnis."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Dateiname im Basisverzeichnis (Katalog-Key)")
    content: bytes = Field(default=b"", exclude=True, repr=False)
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    has_backup: bool = Field(default=False, description="True wenn <name>.bak existiert")
    format: Optional[str] = Field(default=None, description="Pillow-Format, z.B. PNG, JPEG, WEBP")

    @computed_field
    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def backup_name(self) -> str:
        return f"{self.name}{BACKUP_SUFFIX}"

    def superseded(self, content: bytes, has_backup: bool = True) -> "ManagedFile":
        """Neuer Eintrag mit neuem Inhalt; Maße und Format bleiben."""
        return self.model_copy(update={"content": content, "has_backup": has_backup})


class CatalogMessage(str, Enum):
    """Status-Meldung eines Katalog-Scans für die UI."""
    OK = "ok"
    ROOT_UNAVAILABLE = "root_unavailable"
    NO_MANAGED_FILES = "no_managed_files"


class CatalogView(BaseModel):
    """Katalog-Snapshot wie ihn die API ausliefert."""
    root_available: bool
    message: CatalogMessage
    entries: list[ManagedFile] = Field(default_factory=list)


# =============================================================================
# ReplacementSource: getaggte Variante
# =============================================================================

class ExternalUri(BaseModel):
    """Ersatz-Bild aus einer URI (http(s)://, file:// oder lokaler Pfad)."""
    kind: Literal["uri"] = "uri"
    uri: str = Field(..., min_length=1)


class InMemory(BaseModel):
    """Ersatz-Bild als Bytes (Upload, Backup-Inhalt)."""
    kind: Literal["bytes"] = "bytes"
    data: bytes = Field(..., repr=False)


ReplacementSource = Annotated[Union[ExternalUri, InMemory], Field(discriminator="kind")]
