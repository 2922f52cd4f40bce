"""Active project working directory: selection and validation."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from sourced_compose.errors import MalformedWorkdirError, NoActiveWorkdirError, WorkdirError

logger = logging.getLogger(__name__)

ACTIVE_LINK_NAME = "__active__"
REQUIRED_FILES = ("docker-compose.yml", ".env")


@dataclass(frozen=True, slots=True)
class Workdir:
    """Project directory a compose command runs against."""

    path: Path
    name: str


class WorkdirProvider(Protocol):
    """Interface the compose runner needs from the workdir manager."""

    def active(self) -> Workdir:
        """Return the active working directory."""

    def validate(self, workdir: Workdir) -> None:
        """Raise if ``workdir`` cannot host a compose command."""


class WorkdirManager:
    """Keeps the active workdir as a symlink under ``<data-dir>/workdirs``."""

    def __init__(self, data_dir: Path) -> None:
        self.workdirs_dir = data_dir / "workdirs"

    @property
    def active_link(self) -> Path:
        return self.workdirs_dir / ACTIVE_LINK_NAME

    def active(self) -> Workdir:
        link = self.active_link
        if not link.is_symlink():
            raise NoActiveWorkdirError()
        try:
            target = link.resolve(strict=True)
        except (OSError, RuntimeError) as error:
            raise WorkdirError(f"active workdir link {link} is broken: {error}") from error
        return Workdir(path=target, name=target.name)

    def validate(self, workdir: Workdir) -> None:
        if not workdir.path.is_dir():
            raise MalformedWorkdirError(workdir.path, "not a directory")
        for filename in REQUIRED_FILES:
            if not (workdir.path / filename).is_file():
                raise MalformedWorkdirError(workdir.path, f"{filename} not found")

    def set_active(self, path: Path) -> Workdir:
        """Validate ``path`` and make it the active workdir."""

        target = path.expanduser().resolve()
        workdir = Workdir(path=target, name=target.name)
        self.validate(workdir)

        self.workdirs_dir.mkdir(parents=True, exist_ok=True)
        tmp_link = self.workdirs_dir / f".{ACTIVE_LINK_NAME}.{os.getpid()}"
        tmp_link.unlink(missing_ok=True)
        tmp_link.symlink_to(target, target_is_directory=True)
        os.replace(tmp_link, self.active_link)
        logger.info("Active workdir set to %s", target)
        return workdir
