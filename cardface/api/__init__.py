from .catalog import router as catalog_router
from .settings import router as settings_router
from .system import router as system_router

__all__ = ["catalog_router", "settings_router", "system_router"]
