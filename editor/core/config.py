"""Editor configuration loaded from the environment or a ``.env`` file."""

from __future__ import annotations

import logging
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class EditorSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="POPMAKER_", env_file=".env", case_sensitive=True, extra="ignore")

    # History
    MAX_HISTORY_SIZE: int = 50
    ENABLE_MERGING: bool = True
    MERGE_WINDOW_MS: int = 1000

    # Auto-save
    AUTOSAVE_DELAY_MS: int = 1000
    AUTOSAVE_MAX_AGE_HOURS: float = 24.0
    STORAGE_DIR: str = "storage"

    # Print
    PRINT_DPI: int = 300
    PAGE_MARGIN_MM: float = 0.0

    # Logging
    LOG_LEVEL: str = "INFO"


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a stream handler to the application loggers once."""
    root = logging.getLogger()
    if not any(getattr(handler, "_popmaker", False) for handler in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
        handler._popmaker = True
        root.addHandler(handler)
    root.setLevel((level or EditorSettings().LOG_LEVEL).upper())
    return root
