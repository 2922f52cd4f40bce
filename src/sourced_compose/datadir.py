"""Persistent data directory used for downloaded artifacts and workdir state."""

from __future__ import annotations

from pathlib import Path

from sourced_compose.config import Settings
from sourced_compose.errors import DataDirError

DEFAULT_DIRNAME = ".sourced"


def data_dir_path(settings: Settings | None = None) -> Path:
    """Return the absolute data directory, creating it if needed.

    ``SOURCED_DIR`` (via ``Settings.data_dir``) wins over ``~/.sourced``.
    """

    configured = settings.data_dir if settings is not None else Settings.from_env().data_dir
    try:
        path = configured if configured is not None else Path.home() / DEFAULT_DIRNAME
        path = path.expanduser().absolute()
        path.mkdir(parents=True, exist_ok=True)
    except (OSError, RuntimeError) as error:
        raise DataDirError(f"could not create data directory: {error}") from error
    return path
