"""Cardface: Kartenbilder im privaten App-Cache verwalten (Root)."""

__version__ = "1.0.0"
