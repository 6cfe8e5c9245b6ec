"""
Settings Models
================

Boolesche Benutzereinstellungen (persistiert in cardface.database).
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class SettingKey(str, Enum):
    """Bekannte Settings-Keys. Andere Keys werden abgelehnt."""
    SHOW_ALL_IMAGES = "show_all_images"             # Auflösungs-Filter abschalten
    ACKNOWLEDGEMENT_READ = "acknowledgement_read"   # Rechtshinweis bestätigt


class SettingsRead(BaseModel):
    show_all_images: bool = False
    acknowledgement_read: bool = False


class SettingsUpdate(BaseModel):
    """Partielles Update: nur gesetzte Felder werden geschrieben."""
    show_all_images: Optional[bool] = None
    acknowledgement_read: Optional[bool] = None
