"""Locate docker-compose, installing the container alternative when missing."""

from __future__ import annotations

import logging
import os
import shutil
import stat
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from sourced_compose.compose.cancellation import CancelContext
from sourced_compose.compose.lock import install_lock
from sourced_compose.config import Settings
from sourced_compose.datadir import data_dir_path
from sourced_compose.errors import (
    ArtifactNotRunnableError,
    ComposeAlternativeError,
    PermissionChangeError,
    SourcedComposeError,
    UnsupportedPlatformError,
)
from sourced_compose.http.downloader import ArtifactDownloader

logger = logging.getLogger(__name__)

READ_EXEC_MODE = stat.S_IRUSR | stat.S_IXUSR
_EXEC_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


@dataclass(frozen=True, slots=True)
class ExecutableHandle:
    """Runnable docker-compose path.

    ``version`` is set only when the path is the installed container alternative.
    """

    path: Path
    version: str | None = None

    @property
    def installed(self) -> bool:
        return self.version is not None


class Downloader(Protocol):
    """Artifact fetcher used by the container alternative."""

    def download(
        self,
        url: str,
        dest: Path,
        *,
        context: CancelContext | None = None,
        sha256: str | None = None,
    ) -> Path:
        """Fetch ``url`` into ``dest``."""


class ResolutionStrategy(Protocol):
    """One way of obtaining docker-compose; ``None`` means not applicable."""

    def resolve(self) -> ExecutableHandle | None:
        """Return a handle, ``None``, or raise when the strategy fails outright."""


class SearchPathStrategy:
    """Use a docker-compose already on ``PATH``."""

    def __init__(
        self,
        binary_name: str = "docker-compose",
        *,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self._binary_name = binary_name
        self._which = which

    def resolve(self) -> ExecutableHandle | None:
        found = self._which(self._binary_name)
        if found is None:
            return None
        binary = found.strip()
        if not binary:
            return None
        logger.debug("Using %s from search path: %s", self._binary_name, binary)
        return ExecutableHandle(path=Path(binary))


class ContainerAlternativeStrategy:
    """Install docker-compose's ``run.sh`` container wrapper into the data directory."""

    def __init__(  # noqa: PLR0913
        self,
        settings: Settings,
        *,
        data_dir: Callable[[], Path] | None = None,
        downloader: Downloader | None = None,
        os_name: str | None = None,
        context: CancelContext | None = None,
    ) -> None:
        self._settings = settings
        self._data_dir = data_dir or (lambda: data_dir_path(settings))
        self._downloader = downloader
        self._os_name = os_name or os.name
        self._context = context

    def install_path(self) -> Path:
        return self._data_dir() / "bin" / self._settings.compose.alternative_filename

    def resolve(self) -> ExecutableHandle:
        try:
            path = self._get_or_install()
        except ComposeAlternativeError:
            raise
        except (SourcedComposeError, OSError, ValueError) as error:
            raise ComposeAlternativeError() from error
        return ExecutableHandle(path=path, version=self._settings.compose.version)

    def _get_or_install(self) -> Path:
        path = self.install_path()
        if _existing_runnable(path):
            return path

        if self._os_name == "nt":
            raise UnsupportedPlatformError("Windows")

        compose = self._settings.compose
        with install_lock(
            path.with_name(f"{path.name}.lock"),
            timeout_seconds=compose.install_lock_timeout_seconds,
            context=self._context,
        ):
            # Another process may have finished the install while we waited.
            if _existing_runnable(path):
                return path
            logger.info("docker-compose not found, installing container alternative to %s", path)
            # Readers outside the lock must only ever see a runnable file at ``path``.
            staging = path.with_name(f".{path.name}.download")
            try:
                self._download(compose.alternative_url, staging)
                try:
                    staging.chmod(staging.stat().st_mode | READ_EXEC_MODE | _EXEC_BITS)
                except OSError as error:
                    raise PermissionChangeError(path) from error
                os.replace(staging, path)
            finally:
                staging.unlink(missing_ok=True)
        return path

    def _download(self, url: str, path: Path) -> None:
        sha256 = self._settings.compose.sha256
        if self._downloader is not None:
            self._downloader.download(url, path, context=self._context, sha256=sha256)
            return
        with ArtifactDownloader(
            timeout_seconds=self._settings.download.timeout_seconds,
            max_retries=self._settings.download.max_retries,
        ) as downloader:
            downloader.download(url, path, context=self._context, sha256=sha256)


def _existing_runnable(path: Path) -> bool:
    """True if installed and runnable, False if absent; raises if present but not runnable."""
    try:
        mode = path.stat().st_mode
    except FileNotFoundError:
        return False
    if mode & READ_EXEC_MODE != READ_EXEC_MODE:
        raise ArtifactNotRunnableError(path)
    return True


class BinaryResolver:
    """Evaluates strategies in order; the first handle wins."""

    def __init__(self, strategies: Sequence[ResolutionStrategy]) -> None:
        self._strategies = tuple(strategies)

    def resolve(self) -> ExecutableHandle:
        for strategy in self._strategies:
            handle = strategy.resolve()
            if handle is not None:
                return handle
        raise ComposeAlternativeError("docker-compose could not be found")


def default_resolver(
    settings: Settings | None = None,
    *,
    context: CancelContext | None = None,
) -> BinaryResolver:
    """Search path first, then the container alternative."""

    settings = settings or Settings.from_env()
    return BinaryResolver(
        [
            SearchPathStrategy(settings.compose.binary_name),
            ContainerAlternativeStrategy(settings, context=context),
        ],
    )


def resolve(
    settings: Settings | None = None,
    *,
    context: CancelContext | None = None,
) -> ExecutableHandle:
    return default_resolver(settings, context=context).resolve()
