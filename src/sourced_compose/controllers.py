"""Controllers for sourced-compose CLI commands."""

from __future__ import annotations

import signal
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from types import FrameType

from sourced_compose.compose.cancellation import CancelContext
from sourced_compose.compose.facade import run
from sourced_compose.compose.resolver import ContainerAlternativeStrategy, default_resolver
from sourced_compose.config import Settings
from sourced_compose.datadir import data_dir_path
from sourced_compose.workdir import WorkdirManager


@dataclass(slots=True)
class ComposeCommand:
    """CLI input for docker-compose passthrough."""

    args: tuple[str, ...]
    timeout_seconds: float | None = None


@dataclass(slots=True)
class WorkdirUseCommand:
    """CLI input for selecting the active workdir."""

    path: Path


class ComposeCliController:
    """Builds settings per command and returns printable lines."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings

    @property
    def settings(self) -> Settings:
        settings = self._settings or Settings.from_env()
        settings.validate()
        return settings

    def compose(self, command: ComposeCommand) -> None:
        context = CancelContext.background()
        if command.timeout_seconds is not None:
            context = context.with_timeout(command.timeout_seconds)
        with _cancel_on_signals(context):
            run(*command.args, context=context, settings=self.settings)

    def which(self) -> list[str]:
        handle = default_resolver(self.settings).resolve()
        if handle.installed:
            return [f"{handle.path} (container alternative {handle.version})"]
        return [str(handle.path)]

    def install(self) -> list[str]:
        settings = self.settings
        context = CancelContext.background()
        with _cancel_on_signals(context):
            handle = ContainerAlternativeStrategy(settings, context=context).resolve()
        return [f"docker-compose {handle.version} container alternative: {handle.path}"]

    def workdir_active(self) -> list[str]:
        workdir = self._workdirs().active()
        return [str(workdir.path)]

    def workdir_use(self, command: WorkdirUseCommand) -> list[str]:
        workdir = self._workdirs().set_active(command.path)
        return [f"Active workdir: {workdir.path}"]

    def _workdirs(self) -> WorkdirManager:
        return WorkdirManager(data_dir_path(self.settings))


@contextmanager
def _cancel_on_signals(context: CancelContext) -> Iterator[None]:
    """Turn SIGINT/SIGTERM into context cancellation for the duration of the block."""

    def _handler(signum: int, frame: FrameType | None) -> None:  # noqa: ARG001
        context.cancel()

    previous = {
        signum: signal.signal(signum, _handler) for signum in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)
