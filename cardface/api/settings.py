"""
Settings API
=============

  GET /api/settings  Alle booleschen Settings
  PUT /api/settings  Partielles Update (nur gesetzte Felder)
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from cardface.api.deps import get_settings
from cardface.database import SettingsDatabase
from cardface.models.settings import SettingsRead, SettingsUpdate

logger = logging.getLogger("cardface.api.settings")

router = APIRouter(prefix="/api/settings", tags=["Settings"])


@router.get("", response_model=SettingsRead)
async def read_settings(settings: SettingsDatabase = Depends(get_settings)):
    return await settings.all()


@router.put("", response_model=SettingsRead)
async def update_settings(
    update: SettingsUpdate,
    settings: SettingsDatabase = Depends(get_settings),
):
    for key, value in update.model_dump(exclude_none=True).items():
        await settings.set_bool(key, value)
    return await settings.all()
