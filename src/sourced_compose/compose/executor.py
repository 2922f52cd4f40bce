"""Run docker-compose against the active workdir with stdio passthrough."""

from __future__ import annotations

import codecs
import io
import logging
import subprocess
import threading
from pathlib import Path
from typing import IO, Any

from sourced_compose.compose.cancellation import CancelContext
from sourced_compose.config import ExecutionSettings
from sourced_compose.errors import CommandCanceledError, CommandFailedError, CommandStartError
from sourced_compose.workdir import WorkdirProvider

logger = logging.getLogger(__name__)

COMPATIBILITY_FLAG = "--compatibility"
_CHUNK_SIZE = 64 * 1024
_COPIER_JOIN_SECONDS = 5.0


def execute(  # noqa: PLR0913
    context: CancelContext | None,
    binary: str | Path,
    stdin: IO[Any] | None,
    stdout: IO[Any] | None,
    stderr: IO[Any] | None,
    *args: str,
    workdirs: WorkdirProvider,
    settings: ExecutionSettings | None = None,
) -> None:
    """Run ``binary --compatibility *args`` in the active workdir.

    ``None`` streams are inherited from this process. Streams backed by a file
    descriptor go straight to the child; in-memory streams are pumped through
    pipes. Raises ``CommandFailedError`` on non-zero exit and
    ``CommandCanceledError`` when ``context`` ends first, in which case the
    child is terminated before returning.
    """

    settings = settings or ExecutionSettings()
    context = context or CancelContext.background()
    argv = [str(binary), COMPATIBILITY_FLAG, *args]

    workdir = workdirs.active()
    workdirs.validate(workdir)
    if context.reason is not None:
        raise CommandCanceledError(argv=argv, reason=context.reason)

    stdin_arg, stdin_pump = _bind(stdin)
    stdout_arg, stdout_pump = _bind(stdout)
    stderr_arg, stderr_pump = _bind(stderr)

    logger.debug("Running %s in %s", subprocess.list2cmdline(argv), workdir.path)
    try:
        process = subprocess.Popen(  # noqa: S603
            argv,
            cwd=workdir.path,
            stdin=stdin_arg,
            stdout=stdout_arg,
            stderr=stderr_arg,
        )
    except OSError as error:
        raise CommandStartError(
            f"cannot start {subprocess.list2cmdline(argv)!r}: {error}",
            argv=argv,
        ) from error

    copiers: list[threading.Thread] = []
    if stdin_pump:
        copiers.append(_start_copier(stdin, process.stdin, close_dst=True))
    if stdout_pump:
        copiers.append(_start_copier(process.stdout, stdout))
    if stderr_pump:
        copiers.append(_start_copier(process.stderr, stderr))

    try:
        returncode = _wait(process, context, settings, argv)
    finally:
        if process.poll() is None:
            _terminate_process(process, settings.terminate_grace_seconds)
        for copier in copiers:
            copier.join(_COPIER_JOIN_SECONDS)

    if returncode != 0:
        raise CommandFailedError(argv=argv, cwd=workdir.path, exit_code=returncode)


def _wait(
    process: subprocess.Popen[bytes],
    context: CancelContext,
    settings: ExecutionSettings,
    argv: list[str],
) -> int:
    while True:
        returncode = process.poll()
        if returncode is not None:
            return returncode

        reason = context.reason
        if reason is not None:
            logger.info("Terminating %s: %s", subprocess.list2cmdline(argv), reason)
            _terminate_process(process, settings.terminate_grace_seconds)
            raise CommandCanceledError(argv=argv, reason=reason)

        context.wait(settings.poll_interval_seconds)


def _terminate_process(process: subprocess.Popen[bytes], grace_seconds: float) -> None:
    try:
        process.terminate()
    except OSError:
        return
    try:
        process.wait(timeout=grace_seconds)
    except subprocess.TimeoutExpired:
        try:
            process.kill()
        except OSError:
            return
        process.wait()


def _bind(stream: IO[Any] | None) -> tuple[IO[Any] | int | None, bool]:
    """Return the Popen argument for ``stream`` and whether it needs pumping."""
    if stream is None:
        return None, False
    try:
        stream.fileno()
    except (OSError, ValueError, AttributeError):
        return subprocess.PIPE, True
    return stream, False


def _start_copier(
    src: IO[Any] | None,
    dst: IO[Any] | None,
    *,
    close_dst: bool = False,
) -> threading.Thread:
    thread = threading.Thread(
        target=_copy,
        args=(src, dst, close_dst),
        name="compose-stdio",
        daemon=True,
    )
    thread.start()
    return thread


def _copy(src: IO[Any], dst: IO[Any], close_dst: bool) -> None:
    src_is_text = isinstance(src, io.TextIOBase)
    dst_is_text = isinstance(dst, io.TextIOBase)
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    try:
        while True:
            chunk = src.read(_CHUNK_SIZE) if src_is_text else _read_bytes(src)
            if not chunk:
                break
            if dst_is_text and isinstance(chunk, bytes):
                chunk = decoder.decode(chunk)
            elif not dst_is_text and isinstance(chunk, str):
                chunk = chunk.encode()
            dst.write(chunk)
            dst.flush()
        if dst_is_text and not src_is_text:
            tail = decoder.decode(b"", final=True)
            if tail:
                dst.write(tail)
                dst.flush()
    except (BrokenPipeError, ValueError):
        # Child exited or the pipe was closed under us.
        pass
    finally:
        if close_dst:
            try:
                dst.close()
            except OSError:
                pass


def _read_bytes(src: IO[bytes]) -> bytes:
    read1 = getattr(src, "read1", None)
    if read1 is not None:
        return read1(_CHUNK_SIZE)
    return src.read(_CHUNK_SIZE)
