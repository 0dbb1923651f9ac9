# src/rankmint/env.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

_LOADED = False


def load_dotenv_if_present(dotenv_path: Optional[str] = None, *, force: bool = False) -> bool:
    """Load RANKMINT_* settings from a .env file, once per process.

    Lookup order: explicit `dotenv_path`, then RANKMINT_DOTENV_PATH, then
    ".env" in the working directory. Variables already present in the
    environment win over the file.

    Returns True only when a file was found and loaded.
    """
    global _LOADED
    if _LOADED and not force:
        return False
    _LOADED = True

    path = Path(dotenv_path or os.getenv("RANKMINT_DOTENV_PATH", ".env")).expanduser()
    if not path.is_file():
        return False

    return bool(load_dotenv(dotenv_path=str(path), override=False))
