"""
Cardface: Zentrale Konfiguration
=================================

Single Source of Truth für alle Konstanten, Pfade und Katalog-Regeln.
Umgebungsvariablen werden genau einmal beim Import gelesen.
"""

import os
from pathlib import Path
from zoneinfo import ZoneInfo

# =============================================================================
# 0. Zeitzone (nur für Log-Zeitstempel)
# =============================================================================

LOCAL_TZ = ZoneInfo(os.environ.get("CARDFACE_TZ", "Asia/Shanghai"))

# =============================================================================
# 0b. Execution Mode: ADB (Laptop+USB) oder Local (On-Device/Termux)
# =============================================================================
# "adb"   = Host steuert das Gerät über USB-/TCP-ADB
# "local" = Server läuft direkt auf dem Gerät (Termux), su -c ohne adb
EXECUTION_MODE: str = os.environ.get("CARDFACE_MODE", "adb")


def create_adb_client(mode: str | None = None):
    """Factory: Erstellt den richtigen Client basierend auf EXECUTION_MODE.

    Verwendung überall statt direktem `ADBClient()` Aufruf:
        from cardface.config import create_adb_client
        channel = create_adb_client()
    """
    if (mode or EXECUTION_MODE) == "local":
        from cardface.adb.local_client import LocalShellClient
        return LocalShellClient()
    else:
        from cardface.adb.client import ADBClient
        return ADBClient()


# =============================================================================
# 1. Projekt-Pfade (Host-Seite)
# =============================================================================

PROJECT_ROOT = Path(__file__).resolve().parent.parent

# SQLite Settings-Store (show_all_images, acknowledgement_read)
DATABASE_PATH = Path(os.environ.get("CARDFACE_DB", PROJECT_ROOT / "cardface_settings.db"))

LOG_FILE = PROJECT_ROOT / "cardface.log"

# =============================================================================
# 2. Geräte-Pfade (Android-Seite, nur mit Root erreichbar)
# =============================================================================

# Glide Disk-Cache der Wallet-App: enthält die Kartenbilder neben fremden Cache-Dateien
BASE_DIR: str = os.environ.get(
    "CARDFACE_BASE_DIR",
    "/data/data/com.miui.tsmclient/cache/image_manager_disk_cache",
).rstrip("/")

# =============================================================================
# 3. Katalog-Regeln
# =============================================================================

JOURNAL_NAME = "journal"                 # DiskLruCache-Journal, nie ein Bild
BACKUP_SUFFIX = ".bak"                   # Ein Backup-Slot pro Datei
PROBE_PREFIX_BYTES = 2048                # Header-Präfix für den Bounds-Probe

# Auflösungen der Kartenbilder (Breite, Höhe); alles andere nur mit show_all_images
TARGET_RESOLUTIONS: tuple[tuple[int, int], ...] = (
    (960, 606),
    (1280, 807),
)

SWAP_TEMP_PREFIX = ".tmp_swap_"
REPLACE_TEMP_PREFIX = ".tmp_replace_"

# =============================================================================
# 4. Root-Erkennung
# =============================================================================

# Mount-Namespace-erhaltendes su (KernelSU / APatch / Magisk)
ROOT_ELEVATION_ARGV: tuple[str, ...] = ("su", "-M", "-c", "true")
ROOT_ELEVATION_COMMAND = " ".join(ROOT_ELEVATION_ARGV)


class TIMING:
    """Timeouts für Shell- und Transfer-Befehle (Sekunden)."""
    ADB_COMMAND_TIMEOUT = 30            # Einzelner Shell-Befehl
    ROOT_PROBE_TIMEOUT = 15             # su-Probe (wartet evtl. auf Grant-Dialog)
    TRANSFER_TIMEOUT = 120              # Binärtransfer (exec_out / exec_in)
    URI_FETCH_TIMEOUT = 30              # HTTP-Download einer Ersatz-Datei


# =============================================================================
# 5. API
# =============================================================================

API_HOST: str = os.environ.get("CARDFACE_API_HOST", "127.0.0.1")
API_PORT: int = int(os.environ.get("CARDFACE_API_PORT", "8000"))
API_TITLE = "Cardface"
API_VERSION = "1.0.0"
