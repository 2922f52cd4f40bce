"""Shared test fixtures."""

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from sourced_compose.config import Settings
from sourced_compose.workdir import Workdir, WorkdirManager

FAKE_COMPOSE_SCRIPT = """#!/bin/sh
pwd -P > "$FAKE_COMPOSE_LOG/cwd"
: > "$FAKE_COMPOSE_LOG/args"
for arg in "$@"; do printf '%s\\n' "$arg" >> "$FAKE_COMPOSE_LOG/args"; done
echo "out:$*"
echo "err:$1" >&2
exit "${FAKE_COMPOSE_EXIT:-0}"
"""


def write_executable(path: Path, body: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body, "utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IRUSR)
    return path


class FakeDownloader:
    """Records downloads and writes ``content`` to the destination."""

    def __init__(self, content: bytes = b"#!/bin/sh\n", error: Exception | None = None) -> None:
        self.content = content
        self.error = error
        self.calls: list[tuple[str, Path]] = []

    def download(self, url, dest, *, context=None, sha256=None):  # noqa: ARG002
        self.calls.append((url, dest))
        if self.error is not None:
            raise self.error
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(self.content)
        return dest


@pytest.fixture()
def data_dir(tmp_path: Path) -> Path:
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture()
def settings(data_dir: Path) -> Settings:
    return Settings(data_dir=data_dir)


@pytest.fixture()
def project_dir(tmp_path: Path) -> Path:
    path = tmp_path / "project"
    path.mkdir()
    (path / "docker-compose.yml").write_text("version: '3.4'\nservices: {}\n", "utf-8")
    (path / ".env").write_text("", "utf-8")
    return path


@pytest.fixture()
def workdirs(data_dir: Path) -> WorkdirManager:
    return WorkdirManager(data_dir)


@pytest.fixture()
def active_workdir(workdirs: WorkdirManager, project_dir: Path) -> Workdir:
    return workdirs.set_active(project_dir)


@pytest.fixture()
def compose_log(tmp_path: Path, monkeypatch) -> Path:
    path = tmp_path / "compose-log"
    path.mkdir()
    monkeypatch.setenv("FAKE_COMPOSE_LOG", str(path))
    return path


@pytest.fixture()
def fake_compose(tmp_path: Path, compose_log: Path) -> Path:  # noqa: ARG001
    return write_executable(tmp_path / "bin" / "docker-compose", FAKE_COMPOSE_SCRIPT)


@pytest.fixture()
def compose_on_path(fake_compose: Path, monkeypatch) -> Path:
    monkeypatch.setenv("PATH", f"{fake_compose.parent}{os.pathsep}{os.environ.get('PATH', '')}")
    return fake_compose


@pytest.fixture()
def compose_not_on_path(tmp_path: Path, monkeypatch) -> None:
    empty = tmp_path / "empty-bin"
    empty.mkdir()
    monkeypatch.setenv("PATH", str(empty))


def read_args(compose_log: Path) -> list[str]:
    return (compose_log / "args").read_text("utf-8").splitlines()


@pytest.fixture()
def downloader_factory():
    return FakeDownloader


@pytest.fixture()
def executable_writer():
    return write_executable


@pytest.fixture()
def compose_args(compose_log: Path):
    return lambda: read_args(compose_log)
