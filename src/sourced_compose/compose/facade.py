"""Entry points the rest of the application uses to run docker-compose."""

from __future__ import annotations

from typing import IO, Any

from sourced_compose.compose.cancellation import CancelContext
from sourced_compose.compose.executor import execute
from sourced_compose.compose.resolver import ExecutableHandle, default_resolver
from sourced_compose.config import Settings
from sourced_compose.datadir import data_dir_path
from sourced_compose.workdir import WorkdirManager, WorkdirProvider


class Compose:
    """docker-compose bound to a resolved binary and a workdir provider."""

    def __init__(
        self,
        binary: ExecutableHandle,
        workdirs: WorkdirProvider,
        settings: Settings | None = None,
    ) -> None:
        self.binary = binary
        self.workdirs = workdirs
        self._settings = settings or Settings()

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        *,
        context: CancelContext | None = None,
    ) -> Compose:
        """Resolve (or install) docker-compose and bind it to the data-dir workdirs."""

        settings = settings or Settings.from_env()
        workdirs = WorkdirManager(data_dir_path(settings))
        binary = default_resolver(settings, context=context).resolve()
        return cls(binary, workdirs, settings)

    def run(self, *args: str, context: CancelContext | None = None) -> None:
        self.run_with_io(None, None, None, *args, context=context)

    def run_with_io(
        self,
        stdin: IO[Any] | None,
        stdout: IO[Any] | None,
        stderr: IO[Any] | None,
        *args: str,
        context: CancelContext | None = None,
    ) -> None:
        execute(
            context,
            self.binary.path,
            stdin,
            stdout,
            stderr,
            *args,
            workdirs=self.workdirs,
            settings=self._settings.execution,
        )


def run(
    *args: str,
    context: CancelContext | None = None,
    settings: Settings | None = None,
) -> None:
    """Run ``docker-compose *args`` with this process's stdio."""
    Compose.create(settings, context=context).run(*args, context=context)


def run_with_io(  # noqa: PLR0913
    stdin: IO[Any] | None,
    stdout: IO[Any] | None,
    stderr: IO[Any] | None,
    *args: str,
    context: CancelContext | None = None,
    settings: Settings | None = None,
) -> None:
    """Run ``docker-compose *args`` with caller-supplied streams."""
    Compose.create(settings, context=context).run_with_io(
        stdin,
        stdout,
        stderr,
        *args,
        context=context,
    )

