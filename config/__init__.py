from __future__ import annotations

import os
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]

# MODE wins over APP_ENV; unknown modes run with local settings
MODE = (os.environ.get("MODE") or os.environ.get("APP_ENV") or "local").lower()


from .base import AppSettings
from .local import LocalSettings
from .stage import StageSettings
from .prod import ProdSettings
from .test import TestSettings


_MAPPING: dict[str, type[AppSettings]] = {
    "local": LocalSettings,
    "dev": LocalSettings,
    "stage": StageSettings,
    "staging": StageSettings,
    "prod": ProdSettings,
    "production": ProdSettings,
    "test": TestSettings,
}


def _choose_settings_class(mode: str) -> type[AppSettings]:
    return _MAPPING.get(mode, LocalSettings)


SettingsClass = _choose_settings_class(MODE)
settings: AppSettings = SettingsClass()

__all__ = ["settings", "SettingsClass", "AppSettings", "MODE", "ROOT"]
