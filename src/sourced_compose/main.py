"""CLI entrypoint for sourced-compose."""

import logging
import os
from pathlib import Path

import rich_click as click

from sourced_compose import __version__
from sourced_compose.controllers import ComposeCliController, ComposeCommand, WorkdirUseCommand
from sourced_compose.errors import (
    CommandCanceledError,
    CommandFailedError,
    ComposeAlternativeError,
    SourcedComposeError,
)

click.rich_click.USE_MARKDOWN = True
CONTROLLER = ComposeCliController()

_INSTALL_HINT = (
    "docker-compose is not installed and its container alternative could not be set up. "
    "Install docker-compose manually: https://docs.docker.com/compose/install/"
)
_CANCELED_EXIT_CODE = 130
_CLI_ERRORS = (SourcedComposeError, ValueError)


@click.group()
@click.version_option(version=__version__, prog_name="sourced-compose")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=lambda: os.getenv("SOURCED_LOG_LEVEL", "WARNING"),
    show_default="WARNING",
    help="Logging verbosity (SOURCED_LOG_LEVEL).",
)
def sourced_compose(log_level: str) -> None:
    """Run docker-compose against the active sourced workdir."""

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(levelname)s %(name)s: %(message)s",
    )


@sourced_compose.command(
    "compose",
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
    add_help_option=False,
)
@click.option(
    "--timeout",
    "timeout_seconds",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Terminate docker-compose after this many seconds.",
)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def compose(timeout_seconds: float | None, args: tuple[str, ...]) -> None:
    """Run `docker-compose --compatibility ARGS...` in the active workdir.

    Arguments are forwarded verbatim; the exit status of docker-compose is
    returned as the exit status of this command.
    """

    try:
        CONTROLLER.compose(ComposeCommand(args=args, timeout_seconds=timeout_seconds))
    except CommandFailedError as error:
        raise SystemExit(error.exit_code) from error
    except CommandCanceledError as error:
        click.echo(f"Error: {error}", err=True)
        raise SystemExit(_CANCELED_EXIT_CODE) from error
    except _CLI_ERRORS as error:
        raise _to_click_error(error) from error


@sourced_compose.command("which")
def which() -> None:
    """Print the docker-compose that would be used, installing it if needed."""

    try:
        _emit_lines(CONTROLLER.which())
    except _CLI_ERRORS as error:
        raise _to_click_error(error) from error


@sourced_compose.command("install")
def install() -> None:
    """Install the pinned docker-compose container alternative."""

    try:
        _emit_lines(CONTROLLER.install())
    except _CLI_ERRORS as error:
        raise _to_click_error(error) from error


@sourced_compose.group()
def workdir() -> None:
    """Active workdir commands."""


@workdir.command("active")
def workdir_active() -> None:
    """Print the active workdir."""

    try:
        _emit_lines(CONTROLLER.workdir_active())
    except _CLI_ERRORS as error:
        raise _to_click_error(error) from error


@workdir.command("use")
@click.argument(
    "path",
    type=click.Path(path_type=Path, exists=True, file_okay=False),
)
def workdir_use(path: Path) -> None:
    """Make PATH the active workdir. It must hold docker-compose.yml and .env."""

    try:
        _emit_lines(CONTROLLER.workdir_use(WorkdirUseCommand(path=path)))
    except _CLI_ERRORS as error:
        raise _to_click_error(error) from error


def _to_click_error(error: Exception) -> click.ClickException:
    if isinstance(error, ComposeAlternativeError):
        cause = f" ({error.__cause__})" if error.__cause__ is not None else ""
        return click.ClickException(f"{error}{cause}\n{_INSTALL_HINT}")
    return click.ClickException(str(error))


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    sourced_compose()
