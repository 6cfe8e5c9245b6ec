"""
Local Shell Client: On-Device Ersatz für ADBClient
====================================================

Drop-in-Ersatz für ADBClient, der Befehle direkt auf dem Gerät
ausführt statt über USB-ADB. Für den Einsatz in Termux auf dem
Gerät selbst.

Alle Methoden haben die identische Signatur wie ADBClient und
geben ADBResult zurück. Der Rest des Codes merkt keinen Unterschied.

Unterschiede zu ADBClient:
  - shell()      → su -c "..." bzw. sh -c via asyncio subprocess (kein adb)
  - exec_out()   → su -c, stdout als Bytes
  - exec_in()    → su -c, Bytes via stdin
  - spawn()      → argv direkt ausführen (z.B. su -M -c true)
  - is_connected → immer True (wir SIND das Gerät)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from cardface.adb.client import ADBError, ADBResult, ADBTimeoutError
from cardface.adb.su_files import SuFileOps
from cardface.config import TIMING

logger = logging.getLogger("cardface.adb.local")


class LocalShellClient(SuFileOps):
    """
    On-Device Shell Client: Drop-in-Ersatz für ADBClient.

    Benötigt Root-Zugriff via KernelSU/Magisk/APatch `su`.
    """

    def __init__(
        self,
        max_retries: int = 2,
        retry_delay: float = 1.0,
        timeout: int = TIMING.ADB_COMMAND_TIMEOUT,
    ):
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._timeout = timeout

    async def is_connected(self) -> bool:
        """Immer True: wir SIND das Gerät."""
        return True

    # =========================================================================
    # Core: Prozess ausführen
    # =========================================================================

    async def _run(
        self,
        args: list[str],
        timeout: Optional[int] = None,
        binary: bool = False,
        stdin: Optional[bytes] = None,
    ) -> ADBResult:
        """
        Führt argv lokal aus, mit Retry bei Prozess-Startfehlern.

        Raises:
            ADBTimeoutError: nach Timeout (kein Retry)
            ADBError:        Prozess nach allen Retries nicht startbar
        """
        effective_timeout = timeout or self._timeout
        cmd_str = f"local:{args[0]} {' '.join(args[1:])[:80]}"
        last_error: Optional[Exception] = None

        for attempt in range(1, self._max_retries + 1):
            try:
                logger.debug("[%d/%d] %s", attempt, self._max_retries, cmd_str)

                proc = await asyncio.create_subprocess_exec(
                    *args,
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
                        f"Timeout ({effective_timeout}s): {cmd_str}",
                        returncode=-1,
                    )

                result = ADBResult(
                    returncode=proc.returncode or 0,
                    stdout="" if binary else stdout_raw.decode("utf-8", errors="replace"),
                    stderr=stderr_raw.decode("utf-8", errors="replace"),
                    command=cmd_str,
                    attempts=attempt,
                    data=stdout_raw if binary else b"",
                )

                if result.success and attempt > 1:
                    logger.info("Erfolg nach %d Versuchen: %s", attempt, cmd_str)

                return result

            except ADBTimeoutError:
                raise

            except OSError as e:
                last_error = ADBError(f"Prozess-Fehler: {e}")
                if attempt < self._max_retries:
                    await asyncio.sleep(self._retry_delay)
                    continue
                raise last_error from e

        raise last_error or ADBError("Shell fehlgeschlagen nach Retries")

    # =========================================================================
    # Public API
    # =========================================================================

    async def shell(
        self,
        command: str,
        root: bool = False,
        timeout: Optional[int] = None,
    ) -> ADBResult:
        """
        Führt einen Shell-Befehl direkt auf dem Gerät aus.

        Args:
            command: Shell-Befehl
            root:    True = via su -c ausführen
            timeout: Timeout in Sekunden
        """
        if root and command.lstrip().startswith("su "):
            root = False

        args = ["su", "-c", command] if root else ["sh", "-c", command]
        return await self._run(args, timeout=timeout)

    async def exec_out(
        self,
        command: str,
        root: bool = True,
        timeout: Optional[int] = None,
    ) -> ADBResult:
        """Führt einen (Root-)Befehl aus und liefert stdout als Bytes."""
        args = ["su", "-c", command] if root else ["sh", "-c", command]
        return await self._run(args, timeout=timeout or TIMING.TRANSFER_TIMEOUT, binary=True)

    async def exec_in(
        self,
        command: str,
        data: bytes,
        root: bool = True,
        timeout: Optional[int] = None,
    ) -> ADBResult:
        """Streamt Bytes via stdin an einen (Root-)Befehl."""
        args = ["su", "-c", command] if root else ["sh", "-c", command]
        logger.debug("Exec-In: %d Bytes → %s", len(data), command)
        return await self._run(args, timeout=timeout or TIMING.TRANSFER_TIMEOUT, stdin=data)

    async def spawn(self, argv: Sequence[str], timeout: Optional[int] = None) -> int:
        """
        Startet argv direkt (ohne Retry, ohne sh/su-Wrapper) und liefert den Exit-Code.

        Raises:
            OSError: Binary nicht vorhanden (z.B. su ist kein echtes File)
        """
        effective_timeout = timeout or TIMING.ROOT_PROBE_TIMEOUT
        proc = await asyncio.create_subprocess_exec(
            *argv,
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
