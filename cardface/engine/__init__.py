from .catalog import ImageBounds, ImageCatalogBuilder, probe_bounds
from .file_store import PrivilegedFileStore
from .replacer import BackupMissingError, BackupReplaceProtocol, DimensionMismatchError
from .root_access import RootAccessManager
from .service import CardService, ManagedFileNotFoundError, RootUnavailableError

__all__ = [
    "RootAccessManager",
    "PrivilegedFileStore",
    "ImageCatalogBuilder",
    "ImageBounds",
    "probe_bounds",
    "BackupReplaceProtocol",
    "BackupMissingError",
    "DimensionMismatchError",
    "CardService",
    "ManagedFileNotFoundError",
    "RootUnavailableError",
]
