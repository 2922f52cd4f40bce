"""Runtime configuration for docker-compose resolution and execution."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

DEFAULT_COMPOSE_VERSION = "1.24.0"
DEFAULT_COMPOSE_URL_TEMPLATE = (
    "https://github.com/docker/compose/releases/download/{version}/run.sh"
)


@dataclass(slots=True)
class ComposeSettings:
    """docker-compose binary and container alternative settings."""

    binary_name: str = "docker-compose"
    version: str = DEFAULT_COMPOSE_VERSION
    url_template: str = DEFAULT_COMPOSE_URL_TEMPLATE
    sha256: str | None = None
    install_lock_timeout_seconds: float = 300.0

    @property
    def alternative_url(self) -> str:
        try:
            return self.url_template.format(version=self.version)
        except (KeyError, IndexError, ValueError) as error:
            raise ValueError(
                f"Invalid SOURCED_COMPOSE_URL: {self.url_template!r}. "
                "Only the {version} placeholder is supported.",
            ) from error

    @property
    def alternative_filename(self) -> str:
        return f"{self.binary_name}-{self.version}.sh"


@dataclass(slots=True)
class DownloadSettings:
    """HTTP settings for artifact downloads."""

    timeout_seconds: float = 60.0
    max_retries: int = 3


@dataclass(slots=True)
class ExecutionSettings:
    """Child process settings."""

    terminate_grace_seconds: float = 10.0
    poll_interval_seconds: float = 0.1


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    data_dir: Path | None = None
    compose: ComposeSettings = field(default_factory=ComposeSettings)
    download: DownloadSettings = field(default_factory=DownloadSettings)
    execution: ExecutionSettings = field(default_factory=ExecutionSettings)

    @classmethod
    def from_env(cls, data_dir: Path | None = None) -> Settings:
        """Load settings from environment; unset variables keep pinned defaults."""

        env_data_dir = os.getenv("SOURCED_DIR", "").strip()
        sha256 = os.getenv("SOURCED_COMPOSE_SHA256", "").strip().lower()
        return cls(
            data_dir=data_dir or (Path(env_data_dir) if env_data_dir else None),
            compose=ComposeSettings(
                version=os.getenv("SOURCED_COMPOSE_VERSION", DEFAULT_COMPOSE_VERSION).strip(),
                url_template=os.getenv("SOURCED_COMPOSE_URL", DEFAULT_COMPOSE_URL_TEMPLATE).strip(),
                sha256=sha256 or None,
                install_lock_timeout_seconds=float(
                    os.getenv("SOURCED_INSTALL_LOCK_TIMEOUT_SECONDS", "300"),
                ),
            ),
            download=DownloadSettings(
                timeout_seconds=float(os.getenv("SOURCED_DOWNLOAD_TIMEOUT_SECONDS", "60")),
                max_retries=int(os.getenv("SOURCED_DOWNLOAD_MAX_RETRIES", "3")),
            ),
            execution=ExecutionSettings(
                terminate_grace_seconds=float(
                    os.getenv("SOURCED_TERMINATE_GRACE_SECONDS", "10"),
                ),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error if any value is out of range."""

        if not self.compose.version:
            raise ValueError("SOURCED_COMPOSE_VERSION must not be empty.")
        if "{version}" not in self.compose.url_template:
            raise ValueError("SOURCED_COMPOSE_URL must include the {version} placeholder.")
        parsed = urlparse(self.compose.alternative_url)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(
                "Invalid SOURCED_COMPOSE_URL: "
                f"{self.compose.url_template!r}. Expected an absolute http(s) URL.",
            )
        if self.compose.sha256 is not None and not _is_sha256(self.compose.sha256):
            raise ValueError("SOURCED_COMPOSE_SHA256 must be 64 hex characters.")
        if self.compose.install_lock_timeout_seconds <= 0:
            raise ValueError("SOURCED_INSTALL_LOCK_TIMEOUT_SECONDS must be > 0.")
        if self.download.timeout_seconds <= 0:
            raise ValueError("SOURCED_DOWNLOAD_TIMEOUT_SECONDS must be > 0.")
        if self.download.max_retries < 0:
            raise ValueError("SOURCED_DOWNLOAD_MAX_RETRIES must be >= 0.")
        if self.execution.terminate_grace_seconds < 0:
            raise ValueError("SOURCED_TERMINATE_GRACE_SECONDS must be >= 0.")


def _is_sha256(value: str) -> bool:
    return len(value) == 64 and all(char in "0123456789abcdef" for char in value)
