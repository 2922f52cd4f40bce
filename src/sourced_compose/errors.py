"""Error taxonomy shared by the compose runner and its collaborators."""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from pathlib import Path


class SourcedComposeError(RuntimeError):
    """Base class for every error raised by this package."""


class DataDirError(SourcedComposeError):
    """Persistent data directory could not be determined or created."""


class WorkdirError(SourcedComposeError):
    """Active working directory could not be resolved."""


class NoActiveWorkdirError(WorkdirError):
    """No working directory has been selected yet."""

    def __init__(self) -> None:
        super().__init__("there is no active working directory")


class MalformedWorkdirError(WorkdirError):
    """Working directory exists but does not hold a runnable compose project."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"workdir {path} is not valid: {reason}")
        self.path = path
        self.reason = reason


class DownloadError(SourcedComposeError):
    """Artifact could not be fetched to its destination."""

    def __init__(self, message: str, *, url: str, dest: Path) -> None:
        super().__init__(message)
        self.url = url
        self.dest = dest


class DownloadCanceledError(DownloadError):
    """Artifact transfer stopped because the caller canceled."""


class ComposeAlternativeError(SourcedComposeError):
    """docker-compose is not installed and the container alternative could not be set up.

    Lower-level failures are chained through ``__cause__``.
    """

    def __init__(
        self,
        message: str = "error while trying docker-compose container alternative",
    ) -> None:
        super().__init__(message)


class ArtifactNotRunnableError(ComposeAlternativeError):
    """Previously installed artifact lacks owner read+execute permission."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"{path} can not be run")
        self.path = path


class UnsupportedPlatformError(ComposeAlternativeError):
    """Container alternative does not work on this operating system."""

    def __init__(self, platform: str) -> None:
        super().__init__(f"compose in container is not compatible with {platform}")
        self.platform = platform


class PermissionChangeError(ComposeAlternativeError):
    """Downloaded artifact could not be made executable."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"cannot change permission to {path}")
        self.path = path


class InstallLockError(ComposeAlternativeError):
    """Another process holds the install lock for too long."""

    def __init__(self, lock_path: Path, holder_pid: int | None) -> None:
        holder = f"pid {holder_pid}" if holder_pid is not None else "another process"
        super().__init__(
            f"install in progress by {holder}. If this is stale, delete {lock_path}",
        )
        self.lock_path = lock_path
        self.holder_pid = holder_pid


class CommandError(SourcedComposeError):
    """Compose process could not be run to a clean exit."""

    def __init__(self, message: str, *, argv: Sequence[str]) -> None:
        super().__init__(message)
        self.argv = list(argv)

    @property
    def command_line(self) -> str:
        return subprocess.list2cmdline(self.argv)


class CommandStartError(CommandError):
    """Compose process could not be spawned."""


class CommandFailedError(CommandError):
    """Compose process exited with a non-zero status."""

    def __init__(self, *, argv: Sequence[str], cwd: Path, exit_code: int) -> None:
        super().__init__(
            f"command {subprocess.list2cmdline(list(argv))!r} in {cwd} "
            f"exited with status {exit_code}",
            argv=argv,
        )
        self.cwd = cwd
        self.exit_code = exit_code


class CommandCanceledError(CommandError):
    """Compose process was terminated because its context was canceled."""

    def __init__(self, *, argv: Sequence[str], reason: str) -> None:
        super().__init__(
            f"command {subprocess.list2cmdline(list(argv))!r} {reason}",
            argv=argv,
        )
        self.reason = reason
