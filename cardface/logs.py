"""
Logging Setup
==============

Console-Handler + rotierender File-Handler, Zeitstempel in LOCAL_TZ.
Wird von main.py (API) und cli.py einmal beim Start aufgerufen.
"""

from __future__ import annotations

import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from cardface.config import LOCAL_TZ, LOG_FILE

_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
_configured = False


class LocalTimeFormatter(logging.Formatter):
    """Log-Formatter mit expliziter Zeitzone (LOCAL_TZ)."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        ct = datetime.fromtimestamp(record.created, tz=LOCAL_TZ)
        if datefmt:
            return ct.strftime(datefmt)
        return ct.strftime("%Y-%m-%d %H:%M:%S")


def configure_logging(verbose: bool = False, log_file: Path | None = LOG_FILE) -> None:
    """
    Hängt Console- und File-Handler an den Root-Logger.

    File-Handler: 10 MB pro Datei, 3 alte Dateien, immer DEBUG.
    Ein zweiter Aufruf (CLI serve → main) ist ein No-Op.
    """
    global _configured
    if _configured:
        return
    _configured = True

    console = logging.StreamHandler()
    console.setFormatter(LocalTimeFormatter(fmt=_FORMAT, datefmt="%H:%M:%S"))
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    logging.root.addHandler(console)
    logging.root.setLevel(logging.DEBUG)

    if log_file is not None:
        file_handler = RotatingFileHandler(
            str(log_file),
            maxBytes=10_000_000,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setFormatter(LocalTimeFormatter(fmt=_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        file_handler.setLevel(logging.DEBUG)
        logging.root.addHandler(file_handler)
