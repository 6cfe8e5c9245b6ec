"""
Privilegierte Datei-Operationen über eine Root-Shell
=====================================================

Mixin für ADBClient und LocalShellClient. Setzt nur voraus, dass die
Klasse shell(), exec_out() und exec_in() anbietet; alles andere wird
in reine Shell-Befehle übersetzt (test, ls, cat, head, mv).

Pfade werden grundsätzlich mit shlex.quote() gequotet, da die Befehle
einmal durch `su -c "..."` und ggf. durch `adb shell` laufen.
"""

from __future__ import annotations

import logging
import shlex
from typing import Optional

logger = logging.getLogger("cardface.adb.files")


class SuFileOps:
    """Datei-API (read/write/list/rename) über su-Shell-Befehle."""

    async def run_as_root(self, command: str, timeout: Optional[int] = None) -> bool:
        """Führt einen Befehl als Superuser aus. True bei Exit-Code 0."""
        result = await self.shell(command, root=True, timeout=timeout)
        return result.success

    async def has_root(self) -> bool:
        """Prüft ob Root via su bereits gewährt ist (`id` meldet uid=0)."""
        result = await self.shell("id", root=True, timeout=5)
        return result.success and "uid=0" in result.stdout

    async def path_exists(self, path: str) -> bool:
        result = await self.shell(f"test -e {shlex.quote(path)}", root=True)
        return result.success

    async def list_directory(self, path: str) -> list[str]:
        """
        Listet die direkten Kinder eines Verzeichnisses (inkl. Dotfiles).

        Existiert das Verzeichnis nicht, kommt eine leere Liste zurück.
        """
        quoted = shlex.quote(path)
        result = await self.shell(f"test -d {quoted} && ls -1A {quoted}", root=True)
        if not result.success:
            logger.debug("Verzeichnis nicht lesbar: %s (exit %d)", path, result.returncode)
            return []
        return [line for line in result.stdout.splitlines() if line.strip()]

    async def read_file(self, path: str, limit: Optional[int] = None) -> bytes:
        """
        Liest eine Datei binär. Mit limit höchstens limit Bytes (`head -c`).

        Raises:
            FileNotFoundError: Datei existiert nicht
            OSError:           cat/head mit Exit != 0
        """
        if not await self.path_exists(path):
            raise FileNotFoundError(f"Datei nicht gefunden: {path}")
        quoted = shlex.quote(path)
        command = f"head -c {int(limit)} {quoted}" if limit is not None else f"cat {quoted}"
        result = await self.exec_out(command)
        if not result.success:
            raise OSError(f"Lesen fehlgeschlagen (exit {result.returncode}): {path}")
        return result.data

    async def write_file(self, path: str, data: bytes) -> None:
        """
        Schreibt data nach path (anlegen oder truncaten).

        Nach dem Schreiben wird die Dateigröße auf dem Gerät mit len(data)
        verglichen; ein abgeschnittener Transfer gilt als Fehler.

        Raises:
            OSError: Schreiben fehlgeschlagen oder Größe stimmt nicht
        """
        result = await self.exec_in(f"cat > {shlex.quote(path)}", data)
        if not result.success:
            raise OSError(
                f"Schreiben fehlgeschlagen (exit {result.returncode}): {path}: "
                f"{result.stderr.strip()[:200]}"
            )
        written = await self.file_size(path)
        if written != len(data):
            raise OSError(f"Unvollständig geschrieben: {path} ({written} von {len(data)} Bytes)")

    async def file_size(self, path: str) -> Optional[int]:
        """Größe in Bytes (`stat -c %s`), None wenn nicht ermittelbar."""
        result = await self.shell(f"stat -c %s {shlex.quote(path)}", root=True)
        if not result.success:
            return None
        try:
            return int(result.stdout.strip())
        except ValueError:
            return None

    async def copy_file(self, source: str, dest: str) -> None:
        """
        Kopiert source nach dest komplett geräteseitig (`cat src > dst`).

        Raises:
            FileNotFoundError: source existiert nicht (dest bleibt unberührt)
            OSError:           Kopieren fehlgeschlagen
        """
        if not await self.path_exists(source):
            raise FileNotFoundError(f"Quelle nicht gefunden: {source}")
        result = await self.shell(
            f"cat {shlex.quote(source)} > {shlex.quote(dest)}", root=True,
        )
        if not result.success:
            raise OSError(
                f"Kopieren fehlgeschlagen (exit {result.returncode}): {source} → {dest}"
            )

    async def rename(self, source: str, dest: str) -> bool:
        result = await self.shell(
            f"mv -f {shlex.quote(source)} {shlex.quote(dest)}", root=True,
        )
        return result.success

    async def remove(self, path: str) -> bool:
        result = await self.shell(f"rm -f {shlex.quote(path)}", root=True)
        return result.success
