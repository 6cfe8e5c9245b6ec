from .client import ADBClient, ADBConnectionError, ADBError, ADBResult, ADBTimeoutError
from .local_client import LocalShellClient
from .su_files import SuFileOps

__all__ = [
    "ADBClient",
    "ADBConnectionError",
    "ADBError",
    "ADBResult",
    "ADBTimeoutError",
    "LocalShellClient",
    "SuFileOps",
]
