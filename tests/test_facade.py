from __future__ import annotations

import io
import os
import stat

import allure
import httpx
import pytest

from sourced_compose import run, run_with_io
from sourced_compose.compose import resolver
from sourced_compose.compose.facade import Compose
from sourced_compose.compose.resolver import ExecutableHandle
from sourced_compose.errors import ComposeAlternativeError, NoActiveWorkdirError
from sourced_compose.http.downloader import ArtifactDownloader

pytestmark = [
    allure.epic("Compose Runner"),
    allure.feature("Facade"),
    pytest.mark.skipif(os.name == "nt", reason="POSIX executables only"),
]

COMPOSE_URL = "https://github.com/docker/compose/releases/download/1.24.0/run.sh"
RUN_SH = """#!/bin/sh
: > "$FAKE_COMPOSE_LOG/args"
for arg in "$@"; do printf '%s\\n' "$arg" >> "$FAKE_COMPOSE_LOG/args"; done
echo "alt:$*"
"""


@pytest.fixture()
def mock_releases(monkeypatch):
    """Serve RUN_SH for the pinned release URL and record requested URLs."""
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        return httpx.Response(200, content=RUN_SH.encode())

    transport = httpx.MockTransport(handler)
    monkeypatch.setattr(
        resolver,
        "ArtifactDownloader",
        lambda **kwargs: ArtifactDownloader(transport=transport, **kwargs),
    )
    return requested


def test_run_with_io_uses_binary_on_path(settings, active_workdir, compose_on_path, compose_args):
    stdout = io.StringIO()
    stderr = io.StringIO()

    run_with_io(None, stdout, stderr, "logs", "-f", settings=settings)

    assert stdout.getvalue() == "out:--compatibility logs -f\n"
    assert stderr.getvalue() == "err:--compatibility\n"
    assert compose_args() == ["--compatibility", "logs", "-f"]


def test_run_binds_process_stdio(settings, active_workdir, compose_on_path, capfd) -> None:
    run("ps", settings=settings)

    captured = capfd.readouterr()
    assert "out:--compatibility ps\n" in captured.out
    assert "err:--compatibility\n" in captured.err


def test_end_to_end_installs_alternative_then_reuses_it(
    settings,
    data_dir,
    active_workdir,
    compose_not_on_path,
    compose_args,
    mock_releases,
) -> None:
    stdout = io.StringIO()

    run_with_io(None, stdout, io.StringIO(), "up", "-d", settings=settings)
    run_with_io(None, stdout, io.StringIO(), "ps", settings=settings)

    installed = data_dir / "bin" / "docker-compose-1.24.0.sh"
    assert mock_releases == [COMPOSE_URL]
    assert installed.stat().st_mode & (stat.S_IRUSR | stat.S_IXUSR) == stat.S_IRUSR | stat.S_IXUSR
    assert stdout.getvalue() == "alt:--compatibility up -d\nalt:--compatibility ps\n"
    assert compose_args() == ["--compatibility", "ps"]


def test_binary_is_resolved_on_every_call(
    settings,
    active_workdir,
    compose_on_path,
    mock_releases,
    monkeypatch,
) -> None:
    monkeypatch.setenv("PATH", str(compose_on_path.parent))

    run_with_io(None, io.StringIO(), io.StringIO(), "ps", settings=settings)
    assert mock_releases == []

    compose_on_path.unlink()
    run_with_io(None, io.StringIO(), io.StringIO(), "ps", settings=settings)

    assert mock_releases == [COMPOSE_URL]


def test_resolution_failure_surfaces_alternative_error(
    settings,
    active_workdir,
    compose_not_on_path,
    monkeypatch,
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    transport = httpx.MockTransport(handler)
    monkeypatch.setattr(
        resolver,
        "ArtifactDownloader",
        lambda **kwargs: ArtifactDownloader(transport=transport, **kwargs),
    )

    with pytest.raises(ComposeAlternativeError) as excinfo:
        run_with_io(None, io.StringIO(), io.StringIO(), "ps", settings=settings)

    assert "HTTP status 500" in str(excinfo.value.__cause__)


def test_missing_workdir_is_reported(settings, compose_on_path, compose_log) -> None:
    with pytest.raises(NoActiveWorkdirError):
        run_with_io(None, io.StringIO(), io.StringIO(), "ps", settings=settings)

    assert not (compose_log / "args").exists()


def test_compose_object_runs_bound_binary(fake_compose, workdirs, active_workdir, compose_args):
    compose = Compose(ExecutableHandle(path=fake_compose), workdirs)
    stdout = io.StringIO()

    compose.run_with_io(None, stdout, io.StringIO(), "config")

    assert stdout.getvalue() == "out:--compatibility config\n"
    assert compose_args() == ["--compatibility", "config"]
