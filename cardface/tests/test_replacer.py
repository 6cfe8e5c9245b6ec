"""
Unit Tests: Backup / Replace / Restore
=======================================

Prüfungen:
  - Replace: altes Bild landet in .bak, neues in <name>
  - Replace → Restore → Original; zweites Restore bleibt beim Original
  - Zweites Replace überschreibt das Backup (eine Generation)
  - Maß-Prüfung vor jeglichem I/O
  - Schreib-/Rename-Fehler: <name> unverändert, keine Temp-Reste
"""

import pytest

from conftest import BASE, FakeChannel, make_image

from cardface.config import REPLACE_TEMP_PREFIX
from cardface.engine.file_store import PrivilegedFileStore
from cardface.engine.replacer import (
    BackupMissingError, BackupReplaceProtocol, DimensionMismatchError, validate_replacement,
)
from cardface.models.managed_file import ManagedFile

ORIGINAL = make_image(960, 606, color=(10, 10, 10))
REPLACEMENT = make_image(960, 606, color=(250, 250, 250))
THIRD = make_image(960, 606, color=(0, 128, 0))


def _entry(content: bytes = ORIGINAL, has_backup: bool = False) -> ManagedFile:
    return ManagedFile(name="a.0", content=content, width=960, height=606, has_backup=has_backup)


@pytest.fixture
def protocol(channel: FakeChannel) -> BackupReplaceProtocol:
    channel.put("a.0", ORIGINAL)
    return BackupReplaceProtocol(PrivilegedFileStore(channel, base_dir=BASE))


def _leftovers(channel: FakeChannel) -> list[str]:
    return [n for n in channel.names() if n.startswith(REPLACE_TEMP_PREFIX)]


class TestValidate:

    def test_matching_dimensions(self):
        bounds = validate_replacement(_entry(), REPLACEMENT)
        assert bounds.resolution == (960, 606)

    def test_wrong_dimensions(self):
        with pytest.raises(DimensionMismatchError) as exc:
            validate_replacement(_entry(), make_image(1280, 807))
        assert exc.value.expected == (960, 606)
        assert exc.value.actual == (1280, 807)

    def test_not_an_image(self):
        with pytest.raises(DimensionMismatchError) as exc:
            validate_replacement(_entry(), b"plain text")
        assert exc.value.actual is None

    def test_mismatch_is_value_error(self):
        with pytest.raises(ValueError):
            validate_replacement(_entry(), make_image(10, 10))


class TestReplace:

    @pytest.mark.asyncio
    async def test_backup_then_write(self, channel, protocol):
        updated = await protocol.replace(_entry(), REPLACEMENT)

        assert channel.get("a.0") == REPLACEMENT
        assert channel.get("a.0.bak") == ORIGINAL
        assert updated.content == REPLACEMENT
        assert updated.has_backup is True
        assert _leftovers(channel) == []

    @pytest.mark.asyncio
    async def test_entry_is_not_mutated(self, protocol):
        entry = _entry()
        await protocol.replace(entry, REPLACEMENT)
        assert entry.content == ORIGINAL
        assert entry.has_backup is False

    @pytest.mark.asyncio
    async def test_second_replace_overwrites_backup(self, channel, protocol):
        entry = await protocol.replace(_entry(), REPLACEMENT)
        await protocol.replace(entry, THIRD)

        assert channel.get("a.0") == THIRD
        assert channel.get("a.0.bak") == REPLACEMENT

    @pytest.mark.asyncio
    async def test_write_failure_leaves_target(self, channel, protocol):
        channel.fail_writes = True
        with pytest.raises(OSError):
            await protocol.replace(_entry(), REPLACEMENT)

        assert channel.get("a.0") == ORIGINAL
        assert _leftovers(channel) == []

    @pytest.mark.asyncio
    async def test_rename_failure_cleans_temp(self, channel, protocol):
        channel.fail_rename.add("a.0")
        with pytest.raises(OSError):
            await protocol.replace(_entry(), REPLACEMENT)

        assert channel.get("a.0") == ORIGINAL
        assert _leftovers(channel) == []

    @pytest.mark.asyncio
    async def test_missing_target(self, channel, protocol):
        del channel.files[f"{BASE}/a.0"]
        with pytest.raises(FileNotFoundError):
            await protocol.replace(_entry(), REPLACEMENT)
        assert "a.0" not in channel.names()


class TestRestore:

    @pytest.mark.asyncio
    async def test_replace_then_restore(self, channel, protocol):
        entry = await protocol.replace(_entry(), REPLACEMENT)
        restored = await protocol.restore(entry)

        assert channel.get("a.0") == ORIGINAL
        assert restored.content == ORIGINAL
        assert restored.has_backup is True

    @pytest.mark.asyncio
    async def test_double_restore_is_stable(self, channel, protocol):
        entry = await protocol.replace(_entry(), REPLACEMENT)
        entry = await protocol.restore(entry)
        entry = await protocol.restore(entry)

        assert channel.get("a.0") == ORIGINAL
        assert channel.get("a.0.bak") == ORIGINAL
        assert entry.content == ORIGINAL

    @pytest.mark.asyncio
    async def test_without_backup(self, channel, protocol):
        with pytest.raises(BackupMissingError):
            await protocol.restore(_entry())
        assert channel.get("a.0") == ORIGINAL
        assert "write_file" not in channel.calls

    @pytest.mark.asyncio
    async def test_backup_missing_is_file_not_found(self, protocol):
        with pytest.raises(FileNotFoundError):
            await protocol.restore(_entry())

    @pytest.mark.asyncio
    async def test_export_reads_current(self, protocol):
        assert await protocol.export("a.0") == ORIGINAL
