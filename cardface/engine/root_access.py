"""
Root Access Manager
====================

Stellt fest, ob Root verfügbar ist, und merkt sich ein positives Ergebnis
für die gesamte Prozess-Laufzeit.

Stufen (jede nur, wenn die vorherige gescheitert ist):
  1. Cache          bereits gewährt → sofort True
  2. has_root()     su ist dieser App schon gewährt (leichtgewichtig)
  3. run_as_root()  `su -M -c true` über die primäre Shell
  4. spawn()        dasselbe über einen unabhängigen Prozess-Start.
                    KernelSU und APatch liefern in Stufe 2 immer False,
                    weil dort kein echtes su-File existiert.

Ein negatives Ergebnis wird NICHT gecacht: der Nutzer kann Root
nachträglich im Manager freigeben und es erneut versuchen.
"""

from __future__ import annotations

import asyncio
import logging

from cardface.adb.client import ADBError
from cardface.config import ROOT_ELEVATION_ARGV, ROOT_ELEVATION_COMMAND, TIMING

logger = logging.getLogger("cardface.engine.root")


class RootAccessManager:
    """
    Gecachter Root-Status über einem Command Channel.

    Usage:
        root = RootAccessManager(create_adb_client())
        if not await root.ensure_root_available():
            ...  # Leer-Zustand anzeigen, Retry anbieten
    """

    def __init__(self, channel):
        self._channel = channel
        self._granted = False
        self._lock = asyncio.Lock()

    @property
    def granted(self) -> bool:
        return self._granted

    async def ensure_root_available(self) -> bool:
        """Idempotent; gleichzeitige Aufrufer teilen sich eine Probe-Sequenz."""
        if self._granted:
            return True

        async with self._lock:
            if self._granted:
                return True

            if await self._probe_granted():
                logger.info("Root bereits gewährt (has_root)")
            elif await self._request_via_shell():
                logger.info("Root angefordert via Shell: %s", ROOT_ELEVATION_COMMAND)
            elif await self._request_via_spawn():
                logger.info("Root angefordert via Prozess-Start: %s", ROOT_ELEVATION_COMMAND)
            else:
                logger.warning("Root nicht verfügbar (alle Stufen gescheitert)")
                return False

            self._granted = True
            return True

    async def _probe_granted(self) -> bool:
        try:
            return await self._channel.has_root()
        except ADBError as e:
            logger.debug("has_root fehlgeschlagen: %s", e)
            return False

    async def _request_via_shell(self) -> bool:
        try:
            return await self._channel.run_as_root(
                ROOT_ELEVATION_COMMAND, timeout=TIMING.ROOT_PROBE_TIMEOUT,
            )
        except ADBError as e:
            logger.debug("Shell-Root-Anfrage fehlgeschlagen: %s", e)
            return False

    async def _request_via_spawn(self) -> bool:
        try:
            exit_value = await self._channel.spawn(
                ROOT_ELEVATION_ARGV, timeout=TIMING.ROOT_PROBE_TIMEOUT,
            )
        except (OSError, ADBError) as e:
            logger.error("Root nicht verfügbar: %s", e)
            return False

        if exit_value != 0:
            logger.error("Root nicht verfügbar: Exit-Code von su ist nicht 0 (%d)", exit_value)
            return False
        return True
