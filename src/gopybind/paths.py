from __future__ import annotations

import logging
import os
from pathlib import Path


def default_output_dir() -> Path:
    """Return the default directory generated sources are written to.

    Override with `GOPYBIND_OUT_DIR`.
    """
    override = os.environ.get("GOPYBIND_OUT_DIR")
    if override:
        return Path(override)
    return Path.cwd()


def default_log_level() -> int:
    """Return the default log level. Override with `GOPYBIND_LOG_LEVEL`."""
    override = os.environ.get("GOPYBIND_LOG_LEVEL")
    if override:
        level = logging.getLevelName(override.strip().upper())
        if isinstance(level, int):
            return level
    return logging.WARNING
