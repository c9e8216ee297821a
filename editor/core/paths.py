from __future__ import annotations

import os
import sys
from pathlib import Path


def application_base_dir() -> Path:
    """Project root, or the folder of the executable in a frozen build."""
    if hasattr(sys, "_MEIPASS"):
        return Path(sys.argv[0]).resolve().parent
    return Path(__file__).resolve().parent.parent.parent


def ABSOLUTE_PATH(relative_path: str) -> str:
    """Resolve ``relative_path`` against the project root; absolute paths pass through."""
    if os.path.isabs(relative_path):
        return relative_path
    return str(application_base_dir().joinpath(relative_path))
