from .managed_file import (
    CatalogMessage, CatalogView, ExternalUri, InMemory,
    ManagedFile, ReplacementSource,
)
from .settings import SettingKey, SettingsRead, SettingsUpdate

__all__ = [
    # Katalog
    "ManagedFile",
    "CatalogMessage",
    "CatalogView",
    # Ersatz-Quellen
    "ExternalUri",
    "InMemory",
    "ReplacementSource",
    # Settings
    "SettingKey",
    "SettingsRead",
    "SettingsUpdate",
]
