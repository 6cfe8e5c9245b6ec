"""
Cardface: Async ADB Client
============================

Robuster, asynchroner Wrapper um das `adb` CLI-Tool.

Features:
  - Vollständig async (asyncio.create_subprocess_exec)
  - Automatische Retry-Logik (3 Versuche, exponential backoff)
  - Strukturierte Ergebnisse (ADBResult)
  - Root-Shell via `su -c` (KernelSU / Magisk / APatch)
  - Binär-Transfer via `adb shell -T` (kein pty, Exit-Code des Geräts bleibt erhalten)
  - Timeout-Protection für jeden Befehl

Die privilegierten Datei-Operationen (read/write/list/rename) kommen
aus SuFileOps und laufen alle über shell()/exec_out()/exec_in().
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from cardface.adb.su_files import SuFileOps
from cardface.config import TIMING

logger = logging.getLogger("cardface.adb")


# =============================================================================
# Exceptions
# =============================================================================

class ADBError(Exception):
    """Basis-Exception für ADB-Fehler."""

    def __init__(self, message: str, returncode: int = -1, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class ADBConnectionError(ADBError):
    """Gerät nicht verbunden oder ADB-Daemon nicht erreichbar."""
    pass


class ADBTimeoutError(ADBError):
    """Befehl hat das Timeout überschritten."""
    pass


# =============================================================================
# Result
# =============================================================================

@dataclass
class ADBResult:
    """Strukturiertes Ergebnis eines ADB-Befehls."""
    returncode: int
    stdout: str = ""
    stderr: str = ""
    command: str = ""
    attempts: int = 1
    data: bytes = b""           # Roh-stdout bei Binär-Befehlen (exec_out)

    @property
    def success(self) -> bool:
        return self.returncode == 0


# adb-eigene Meldungen (lowercase), bei denen ein neuer Versuch sinnvoll ist
_RETRYABLE_STDERR = (
    "error: device not found",
    "error: no devices",
    "error: device offline",
    "error: closed",
    "cannot connect to daemon",
    "failed to get feature set",
    "protocol fault",
)


def su_wrap(command: str) -> str:
    """
    Verpackt einen Befehl als `su -c "..."`.

    Innerhalb der doppelten Anführungszeichen expandiert die Geräte-Shell
    \\, ", $ und Backticks; alle vier werden escaped.
    """
    escaped = command
    for char in ("\\", '"', "$", "`"):
        escaped = escaped.replace(char, "\\" + char)
    return f'su -c "{escaped}"'


# =============================================================================
# ADB Client
# =============================================================================

class ADBClient(SuFileOps):
    """
    Asynchroner ADB-Client mit Retry-Logik.

    Usage:
        adb = ADBClient()

        # Einfacher Shell-Befehl
        result = await adb.shell("id")

        # Root-Shell (via su -c)
        result = await adb.shell("ls -1A /data/data", root=True)

        # Privilegierte Datei lesen (binär)
        data = await adb.read_file("/data/data/pkg/cache/file")
    """

    def __init__(
        self,
        max_retries: int = 3,
        retry_delay: float = 2.0,
        timeout: int = TIMING.ADB_COMMAND_TIMEOUT,
    ):
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._timeout = timeout

    # =========================================================================
    # Core: Befehl ausführen mit Retry
    # =========================================================================

    async def _exec(
        self,
        args: list[str],
        timeout: Optional[int] = None,
        retries: Optional[int] = None,
        binary: bool = False,
        stdin: Optional[bytes] = None,
    ) -> ADBResult:
        """
        Führt `adb <args>` asynchron aus mit automatischem Retry.

        Args:
            args:    Argumente für adb (z.B. ["shell", "id"])
            timeout: Timeout in Sekunden (None = Default)
            retries: Anzahl Retries (None = Default)
            binary:  True = stdout als bytes in ADBResult.data
            stdin:   Optionale Bytes für stdin (exec-in)

        Returns:
            ADBResult mit returncode, stdout, stderr

        Raises:
            ADBTimeoutError:     nach Timeout
            ADBConnectionError:  nach allen Retries gescheitert
            ADBError:            sonstiger Fehler
        """
        effective_timeout = timeout or self._timeout
        effective_retries = retries if retries is not None else self._max_retries
        cmd_str = f"adb {' '.join(args)}"
        last_error: Optional[Exception] = None

        for attempt in range(1, effective_retries + 1):
            try:
                logger.debug("ADB [%d/%d]: %s", attempt, effective_retries, cmd_str)

                proc = await asyncio.create_subprocess_exec(
                    "adb", *args,
                    stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )

                try:
                    stdout_raw, stderr_raw = await asyncio.wait_for(
                        proc.communicate(input=stdin),
                        timeout=effective_timeout,
                    )
                except asyncio.TimeoutError:
                    proc.kill()
                    await proc.wait()
                    raise ADBTimeoutError(
                        f"Timeout ({effective_timeout}s) bei: {cmd_str}",
                        returncode=-1,
                    )

                stdout_str = "" if binary else stdout_raw.decode("utf-8", errors="replace")
                stderr_str = stderr_raw.decode("utf-8", errors="replace")

                result = ADBResult(
                    returncode=proc.returncode or 0,
                    stdout=stdout_str,
                    stderr=stderr_str,
                    command=cmd_str,
                    attempts=attempt,
                    data=stdout_raw if binary else b"",
                )

                # Prüfe auf ADB-Verbindungsfehler (retry-worthy)
                if self._is_connection_error(stderr_str):
                    raise ADBConnectionError(
                        f"ADB Verbindungsfehler: {stderr_str.strip()}",
                        returncode=proc.returncode or -1,
                        stderr=stderr_str,
                    )

                if result.success:
                    if attempt > 1:
                        logger.info("ADB Erfolg nach %d Versuchen: %s", attempt, cmd_str)
                    return result

                # Nicht-Null Exit, aber kein Verbindungsfehler → kein Retry
                logger.debug(
                    "ADB exit=%d: %s | stderr: %s",
                    result.returncode, cmd_str, stderr_str.strip()[:200],
                )
                return result

            except ADBTimeoutError:
                raise  # Timeouts nicht retrien

            except ADBConnectionError as e:
                last_error = e
                if attempt < effective_retries:
                    delay = self._retry_delay * (2 ** (attempt - 1))  # Exponential backoff
                    logger.warning(
                        "ADB Verbindungsfehler (Versuch %d/%d), Retry in %.1fs: %s",
                        attempt, effective_retries, delay, e,
                    )
                    await asyncio.sleep(delay)
                    continue
                raise

            except OSError as e:
                # adb binary nicht gefunden
                raise ADBError(f"ADB nicht gefunden: {e}") from e

        raise last_error or ADBError(f"ADB fehlgeschlagen nach {effective_retries} Versuchen")

    @staticmethod
    def _is_connection_error(stderr: str) -> bool:
        """Erkennt ADB-Verbindungsfehler die einen Retry rechtfertigen."""
        stderr_lower = stderr.lower()
        return any(marker in stderr_lower for marker in _RETRYABLE_STDERR)

    # =========================================================================
    # Public API: Shell
    # =========================================================================

    async def shell(
        self,
        command: str,
        root: bool = False,
        timeout: Optional[int] = None,
    ) -> ADBResult:
        """
        Führt einen Shell-Befehl auf dem Gerät aus.

        Args:
            command: Shell-Befehl (z.B. "id", "ls -1A /data")
            root:    True = via `su -c "..."` ausführen
            timeout: Optionales Timeout (Sekunden)
        """
        # ANTI-DOUBLE-SU: 'su -M -c ...' darf nicht nochmal in su -c landen
        if root and command.lstrip().startswith("su "):
            logger.debug("Anti-Double-SU: root=True → False: %s", command[:60])
            root = False

        shell_cmd = su_wrap(command) if root else command
        return await self._exec(["shell", shell_cmd], timeout=timeout)

    # =========================================================================
    # Public API: Binär-Streams
    # =========================================================================
    # Beide laufen über `adb shell -T` statt `exec-out`/`exec-in`:
    # nur das Shell-Protokoll liefert den Exit-Code des Geräts zurück und
    # trennt stderr von stdout. -T verhindert ein pty (keine CRLF-Umsetzung).

    async def exec_out(
        self,
        command: str,
        root: bool = True,
        timeout: Optional[int] = None,
    ) -> ADBResult:
        """Führt einen (Root-)Befehl ohne pty aus und liefert stdout als Bytes."""
        shell_cmd = su_wrap(command) if root else command
        return await self._exec(
            ["shell", "-T", shell_cmd],
            timeout=timeout or TIMING.TRANSFER_TIMEOUT,
            binary=True,
        )

    async def exec_in(
        self,
        command: str,
        data: bytes,
        root: bool = True,
        timeout: Optional[int] = None,
    ) -> ADBResult:
        """Streamt Bytes via stdin an einen (Root-)Befehl, Exit-Code inklusive."""
        shell_cmd = su_wrap(command) if root else command
        logger.debug("Exec-In: %d Bytes → %s", len(data), command)
        return await self._exec(
            ["shell", "-T", shell_cmd],
            timeout=timeout or TIMING.TRANSFER_TIMEOUT,
            stdin=data,
        )

    async def spawn(self, argv: Sequence[str], timeout: Optional[int] = None) -> int:
        """
        Startet `adb shell <argv>` direkt, ohne Retry- und su-Wrapper.

        Zweiter, unabhängiger Ausführungspfad für die Root-Erkennung.

        Returns:
            Exit-Code des Prozesses

        Raises:
            OSError: adb nicht startbar
        """
        effective_timeout = timeout or TIMING.ROOT_PROBE_TIMEOUT
        proc = await asyncio.create_subprocess_exec(
            "adb", "shell", *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        try:
            return await asyncio.wait_for(proc.wait(), timeout=effective_timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise ADBTimeoutError(f"Spawn Timeout ({effective_timeout}s): {' '.join(argv)}")

    # =========================================================================
    # Public API: Device State
    # =========================================================================

    async def is_connected(self) -> bool:
        """Prüft ob ein Gerät verbunden und online ist."""
        try:
            result = await self._exec(["get-state"], timeout=5, retries=1)
            return result.success and "device" in result.stdout
        except ADBError:
            return False
