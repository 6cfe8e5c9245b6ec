#!/usr/bin/env python3
"""
Cardface CLI
=============

Kommandozeile für dieselben Operationen wie die API.

Verwendung:
    python -m cardface.cli root
    python -m cardface.cli scan [--all]
    python -m cardface.cli export <name> <ziel>
    python -m cardface.cli replace <name> <datei|url>
    python -m cardface.cli restore <name>
    python -m cardface.cli swap <name1> <name2>
    python -m cardface.cli serve

Exit-Codes: 0 = OK, 1 = Fehler, 2 = Root nicht verfügbar
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from cardface.config import API_HOST, API_PORT, create_adb_client
from cardface.database import SettingsDatabase
from cardface.engine.replacer import DimensionMismatchError
from cardface.engine.service import CardService, ManagedFileNotFoundError, RootUnavailableError
from cardface.logs import configure_logging
from cardface.models.managed_file import ExternalUri

logger = logging.getLogger("cardface.cli")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_NO_ROOT = 2

# Kommandos, die auf dem gescannten Katalog arbeiten
_NEEDS_CATALOG = ("scan", "replace", "restore")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cardface",
        description="Cardface - Kartenbilder im privaten App-Cache verwalten (Root)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Beispiele:
  cardface scan --all
  cardface replace 3f2a9c.0 ~/Bilder/karte.png
  cardface restore 3f2a9c.0
""",
    )
    parser.add_argument("--mode", choices=["adb", "local"], default=None,
                        help="Überschreibt CARDFACE_MODE")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Ausführliche Ausgabe (DEBUG)")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("root", help="Root-Verfügbarkeit prüfen")

    scan = sub.add_parser("scan", help="Katalog anzeigen")
    scan.add_argument("--all", action="store_true", dest="show_all",
                      help="Alle Bilder, ohne Auflösungs-Filter")

    export = sub.add_parser("export", help="Bild auf den Host kopieren")
    export.add_argument("name")
    export.add_argument("destination")

    replace = sub.add_parser("replace", help="Bild ersetzen (mit Backup)")
    replace.add_argument("name")
    replace.add_argument("source", help="Lokaler Pfad, file:// oder http(s):// URI")

    restore = sub.add_parser("restore", help="Backup zurückschreiben")
    restore.add_argument("name")

    swap = sub.add_parser("swap", help="Inhalte zweier Dateien tauschen")
    swap.add_argument("name1")
    swap.add_argument("name2")

    sub.add_parser("serve", help="HTTP-API starten")
    return parser


async def run(args: argparse.Namespace, service: CardService) -> int:
    """Führt ein Kommando aus. scan/replace/restore scannen vorher den Katalog."""
    if args.command == "root":
        granted = await service.root.ensure_root_available()
        print("Root verfügbar" if granted else "Root nicht verfügbar")
        return EXIT_OK if granted else EXIT_NO_ROOT

    try:
        if args.command in _NEEDS_CATALOG:
            show_all = getattr(args, "show_all", None) or None
            result = await service.scan(show_all=show_all)
            if not result.root_available:
                print("Root nicht verfügbar", file=sys.stderr)
                return EXIT_NO_ROOT

        if args.command == "scan":
            if not result.entries:
                print("Keine Kartenbilder gefunden")
            for entry in result.entries:
                backup = "bak" if entry.has_backup else "-"
                print(f"{entry.name}\t{entry.width}x{entry.height}\t{entry.size}\t{backup}")

        elif args.command == "export":
            size = await service.export_to(args.name, args.destination)
            print(f"{args.name} → {args.destination} ({size} Bytes)")

        elif args.command == "replace":
            entry = await service.replace(args.name, ExternalUri(uri=args.source))
            print(f"Ersetzt: {entry.name} ({entry.size} Bytes, Backup vorhanden)")

        elif args.command == "restore":
            entry = await service.restore(args.name)
            print(f"Wiederhergestellt: {entry.name} ({entry.size} Bytes)")

        elif args.command == "swap":
            data = await service.swap(args.name1, args.name2)
            if not data:
                print("Swap nicht durchgeführt (Datei fehlt)", file=sys.stderr)
                return EXIT_FAILED
            print(f"Getauscht: {args.name1} ↔ {args.name2}")

    except RootUnavailableError as e:
        print(str(e), file=sys.stderr)
        return EXIT_NO_ROOT
    except (ManagedFileNotFoundError, DimensionMismatchError, OSError) as e:
        print(f"Fehler: {e}", file=sys.stderr)
        return EXIT_FAILED

    return EXIT_OK


async def _main_async(args: argparse.Namespace) -> int:
    settings = SettingsDatabase()
    await settings.initialize()
    try:
        service = CardService(create_adb_client(args.mode), settings=settings)
        return await run(args, service)
    finally:
        await settings.close()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose)

    if args.command == "serve":
        import uvicorn

        from cardface import config
        if args.mode:
            config.EXECUTION_MODE = args.mode
        uvicorn.run("cardface.main:app", host=API_HOST, port=API_PORT, log_level="info")
        return EXIT_OK

    return asyncio.run(_main_async(args))


if __name__ == "__main__":
    sys.exit(main())
