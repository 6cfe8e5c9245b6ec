"""
Gemeinsame Fixtures: In-Memory Command Channel + Bild-Generator.

FakeChannel bildet die Datei-API von SuFileOps auf ein dict ab
(Pfad → Bytes) und zählt die Root-Probes pro Stufe.
"""

from __future__ import annotations

import io
from typing import Optional, Sequence

import pytest
from PIL import Image

from cardface.adb.client import ADBError

BASE = "/data/data/com.example/cache/image_manager_disk_cache"


def make_image(width: int, height: int, fmt: str = "PNG", color=(200, 30, 30)) -> bytes:
    """Erzeugt ein echtes Bild mit exakten Maßen."""
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color=color).save(buf, format=fmt)
    return buf.getvalue()


class FakeChannel:
    """In-Memory Ersatz für ADBClient/LocalShellClient."""

    def __init__(
        self,
        granted: bool = True,
        shell_grant: bool = False,
        spawn_exit: int = 1,
        spawn_error: Optional[Exception] = None,
    ):
        self.files: dict[str, bytes] = {}
        self.dirs: set[str] = {BASE}
        self.granted = granted
        self.shell_grant = shell_grant
        self.spawn_exit = spawn_exit
        self.spawn_error = spawn_error
        self.calls: dict[str, int] = {}
        self.fail_read: set[str] = set()
        self.fail_writes = False
        self.fail_rename: set[str] = set()
        self.writes: list[str] = []

    def _count(self, op: str) -> None:
        self.calls[op] = self.calls.get(op, 0) + 1

    def put(self, name: str, data: bytes) -> None:
        self.files[f"{BASE}/{name}"] = data

    def get(self, name: str) -> bytes:
        return self.files[f"{BASE}/{name}"]

    def names(self) -> list[str]:
        return [p.rsplit("/", 1)[1] for p in self.files]

    # --- Root ----------------------------------------------------------------

    async def has_root(self) -> bool:
        self._count("has_root")
        return self.granted

    async def run_as_root(self, command: str, timeout: Optional[int] = None) -> bool:
        self._count("run_as_root")
        return self.shell_grant

    async def spawn(self, argv: Sequence[str], timeout: Optional[int] = None) -> int:
        self._count("spawn")
        if self.spawn_error is not None:
            raise self.spawn_error
        return self.spawn_exit

    async def is_connected(self) -> bool:
        return True

    # --- Dateien -------------------------------------------------------------

    async def path_exists(self, path: str) -> bool:
        return path in self.files or path in self.dirs

    async def list_directory(self, path: str) -> list[str]:
        self._count("list_directory")
        if path not in self.dirs:
            return []
        prefix = f"{path}/"
        return [p[len(prefix):] for p in self.files if p.startswith(prefix)]

    async def read_file(self, path: str, limit: Optional[int] = None) -> bytes:
        self._count("read_file")
        if path in self.fail_read:
            raise ADBError(f"simulierter Lesefehler: {path}")
        if path not in self.files:
            raise FileNotFoundError(path)
        data = self.files[path]
        return data[:limit] if limit is not None else data

    async def write_file(self, path: str, data: bytes) -> None:
        self._count("write_file")
        if self.fail_writes:
            raise OSError(f"simulierter Schreibfehler: {path}")
        self.writes.append(path)
        self.files[path] = bytes(data)

    async def copy_file(self, source: str, dest: str) -> None:
        self._count("copy_file")
        if source not in self.files:
            raise FileNotFoundError(source)
        self.writes.append(dest)
        self.files[dest] = self.files[source]

    async def rename(self, source: str, dest: str) -> bool:
        self._count("rename")
        if source not in self.files or dest.rsplit("/", 1)[1] in self.fail_rename:
            return False
        data = self.files.pop(source)
        self.files[dest] = data
        return True

    async def remove(self, path: str) -> bool:
        self.files.pop(path, None)
        return True


class FakeSettings:
    """Settings-Store ohne SQLite."""

    def __init__(self, **values: bool):
        self.values = dict(values)

    async def get_bool(self, key, default: bool = False) -> bool:
        return self.values.get(getattr(key, "value", key), default)

    async def set_bool(self, key, value: bool) -> None:
        self.values[getattr(key, "value", key)] = bool(value)

    async def all(self):
        from cardface.models.settings import SettingsRead
        return SettingsRead(**self.values)


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def card_png() -> bytes:
    return make_image(960, 606)
