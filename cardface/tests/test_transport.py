"""
Transport Tests: ADBClient und LocalShellClient
================================================

Echte Subprozesse gegen Minimal-Skripte auf dem PATH:
  - `adb`  führt `adb shell [-T] <cmd>` lokal per `sh -c` aus und reicht
           den Exit-Code durch (wie das Shell-Protokoll); optional
           "error: device offline" für Retry-Tests
  - `su`   führt `su [-M] -c <cmd>` ohne Rechtewechsel per `sh -c` aus

Die "Geräte-Dateien" liegen in tmp_path.
"""

import os
import sys

import pytest

from cardface.adb.client import (
    ADBClient, ADBConnectionError, ADBTimeoutError, su_wrap,
)
from cardface.adb.local_client import LocalShellClient
from cardface.engine.file_store import PrivilegedFileStore
from cardface.engine.root_access import RootAccessManager

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="benötigt /bin/sh")

FAKE_ADB = """#!/bin/sh
if [ -n "$FAKE_ADB_ALWAYS_OFFLINE" ]; then
    echo "error: device offline" >&2
    exit 1
fi
if [ -n "$FAKE_ADB_OFFLINE_ONCE" ] && [ ! -e "$FAKE_ADB_OFFLINE_ONCE" ]; then
    : > "$FAKE_ADB_OFFLINE_ONCE"
    echo "error: device offline" >&2
    exit 1
fi
case "$1" in
    shell)
        shift
        if [ "$1" = "-T" ]; then shift; fi
        exec sh -c "$*"
        ;;
    get-state)
        echo device
        ;;
    *)
        echo "unbekanntes Kommando: $1" >&2
        exit 1
        ;;
esac
"""

FAKE_SU = """#!/bin/sh
if [ "$1" = "-M" ]; then shift; fi
if [ "$1" = "-c" ]; then shift; fi
exec sh -c "$1"
"""

# Alle Bytewerte, inkl. \\r\\n und Nullbytes
PAYLOAD = bytes(range(256)) * 64


def _install(bin_dir, name: str, script: str) -> None:
    path = bin_dir / name
    path.write_text(script)
    os.chmod(path, 0o755)


@pytest.fixture
def device(tmp_path, monkeypatch):
    """Verzeichnis für Geräte-Dateien; adb und su liegen vorn im PATH."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    _install(bin_dir, "adb", FAKE_ADB)
    _install(bin_dir, "su", FAKE_SU)
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")

    data_dir = tmp_path / "device"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def empty_path(tmp_path, monkeypatch):
    """PATH ohne adb und su."""
    empty = tmp_path / "empty"
    empty.mkdir()
    monkeypatch.setenv("PATH", str(empty))


class TestSuWrap:

    def test_plain(self):
        assert su_wrap("id") == 'su -c "id"'

    def test_escapes_shell_specials(self):
        assert su_wrap('echo "$HOME" `id` \\n') == 'su -c "echo \\"\\$HOME\\" \\`id\\` \\\\n"'


@posix_only
class TestADBClient:

    @pytest.mark.asyncio
    async def test_exit_code_passthrough(self, device):
        adb = ADBClient(retry_delay=0)
        result = await adb.shell("exit 3", root=True)
        assert result.returncode == 3
        assert await adb.run_as_root("true") is True
        assert await adb.run_as_root("false") is False

    @pytest.mark.asyncio
    async def test_shell_stdout(self, device):
        result = await ADBClient().shell("echo hallo", root=True)
        assert result.success
        assert result.stdout == "hallo\n"

    @pytest.mark.asyncio
    async def test_no_double_su(self, device):
        result = await ADBClient().shell("su -M -c true", root=True)
        assert result.success
        assert result.command == "adb shell su -M -c true"

    @pytest.mark.asyncio
    async def test_binary_round_trip(self, device):
        adb = ADBClient()
        path = device / "card.0"

        await adb.write_file(str(path), PAYLOAD)

        assert path.read_bytes() == PAYLOAD
        assert await adb.read_file(str(path)) == PAYLOAD
        assert await adb.read_file(str(path), limit=10) == PAYLOAD[:10]

    @pytest.mark.asyncio
    async def test_quoted_names(self, device):
        """Namen mit ', ", $ und Backtick werden weder zerlegt noch expandiert."""
        adb = ADBClient()
        path = device / "it's \"q\" $HOME `id`.0"

        await adb.write_file(str(path), b"card")

        assert path.read_bytes() == b"card"
        assert await adb.path_exists(str(path)) is True
        assert await adb.list_directory(str(device)) == [path.name]

    @pytest.mark.asyncio
    async def test_write_into_missing_directory_raises(self, device):
        with pytest.raises(OSError):
            await ADBClient().write_file(str(device / "missing" / "x.0"), b"data")

    @pytest.mark.asyncio
    async def test_read_directory_raises(self, device):
        (device / "sub").mkdir()
        with pytest.raises(OSError):
            await ADBClient().read_file(str(device / "sub"))

    @pytest.mark.asyncio
    async def test_store_over_adb(self, device):
        """PrivilegedFileStore mit echtem Transport: Fehler kommen als OSError an."""
        store = PrivilegedFileStore(ADBClient(), base_dir=str(device))
        await store.write("a.0", PAYLOAD)
        await store.copy("a.0", "a.0.bak")
        await store.rename("a.0.bak", "b.0")

        assert sorted(await store.list()) == ["a.0", "b.0"]
        assert await store.read("b.0") == PAYLOAD

        with pytest.raises(OSError):
            await store.write("missing_dir/x.0", b"data")
        with pytest.raises(FileNotFoundError):
            await store.read("nope.0")

    @pytest.mark.asyncio
    async def test_retry_after_offline(self, device, tmp_path, monkeypatch):
        monkeypatch.setenv("FAKE_ADB_OFFLINE_ONCE", str(tmp_path / "offline-once"))
        result = await ADBClient(retry_delay=0).shell("echo ok")
        assert result.stdout == "ok\n"
        assert result.attempts == 2

    @pytest.mark.asyncio
    async def test_offline_gives_up(self, device, monkeypatch):
        monkeypatch.setenv("FAKE_ADB_ALWAYS_OFFLINE", "1")
        with pytest.raises(ADBConnectionError):
            await ADBClient(max_retries=2, retry_delay=0).shell("echo ok")

    @pytest.mark.asyncio
    async def test_timeout(self, device):
        with pytest.raises(ADBTimeoutError):
            await ADBClient().shell("exec sleep 5", timeout=1)

    @pytest.mark.asyncio
    async def test_spawn_exit_codes(self, device):
        adb = ADBClient()
        assert await adb.spawn(("su", "-M", "-c", "true")) == 0
        assert await adb.spawn(("false",)) == 1

    @pytest.mark.asyncio
    async def test_is_connected(self, device):
        assert await ADBClient().is_connected() is True


@posix_only
class TestADBClientWithoutAdb:

    @pytest.mark.asyncio
    async def test_spawn_missing_adb(self, empty_path):
        with pytest.raises(OSError):
            await ADBClient().spawn(("su", "-M", "-c", "true"))

    @pytest.mark.asyncio
    async def test_root_check_without_adb(self, empty_path):
        """Kein adb: alle Stufen scheitern, aber ohne Exception."""
        manager = RootAccessManager(ADBClient(max_retries=1, retry_delay=0))
        assert await manager.ensure_root_available() is False


@posix_only
class TestLocalShellClient:

    @pytest.mark.asyncio
    async def test_binary_round_trip(self, device):
        local = LocalShellClient()
        path = device / "it's \"q\".0"

        await local.write_file(str(path), PAYLOAD)

        assert path.read_bytes() == PAYLOAD
        assert await local.read_file(str(path)) == PAYLOAD

    @pytest.mark.asyncio
    async def test_exit_code_passthrough(self, device):
        local = LocalShellClient()
        assert (await local.shell("exit 4", root=True)).returncode == 4
        assert (await local.shell("exit 5")).returncode == 5

    @pytest.mark.asyncio
    async def test_write_into_missing_directory_raises(self, device):
        with pytest.raises(OSError):
            await LocalShellClient().write_file(str(device / "missing" / "x.0"), b"data")

    @pytest.mark.asyncio
    async def test_spawn(self, device):
        local = LocalShellClient()
        assert await local.spawn(("su", "-M", "-c", "true")) == 0
        with pytest.raises(OSError):
            await local.spawn(("cardface-nicht-vorhanden",))

    @pytest.mark.asyncio
    async def test_missing_su(self, empty_path):
        from cardface.adb.client import ADBError

        with pytest.raises(ADBError):
            await LocalShellClient(retry_delay=0).shell("id", root=True)
