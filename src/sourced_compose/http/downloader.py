"""HTTP artifact downloader with retries, timeout and atomic placement."""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from pathlib import Path

import httpx

from sourced_compose import __version__
from sourced_compose.compose.cancellation import CancelContext
from sourced_compose.errors import DownloadCanceledError, DownloadError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_USER_AGENT = f"sourced-compose/{__version__}"
_CHUNK_SIZE = 64 * 1024


class ArtifactDownloader:
    """Fetches a URL into a local file.

    Bytes are streamed into a temporary file beside ``dest`` which is renamed
    over ``dest`` only once complete, so readers never see a partial file.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._timeout = httpx.Timeout(timeout_seconds, connect=10.0)
        self._client = httpx.Client(
            timeout=self._timeout,
            headers={"User-Agent": user_agent},
            transport=transport or httpx.HTTPTransport(retries=max_retries),
            follow_redirects=True,
        )

    def download(
        self,
        url: str,
        dest: Path,
        *,
        context: CancelContext | None = None,
        sha256: str | None = None,
    ) -> Path:
        """Download ``url`` to ``dest`` and return ``dest``."""

        dest.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".part", dir=dest.parent)
        tmp_path = Path(tmp_name)
        logger.info("Downloading %s to %s", url, dest)
        try:
            with os.fdopen(fd, "wb") as handle:
                digest = self._stream_to(url, dest, handle, context)
                handle.flush()
                os.fsync(handle.fileno())
            if sha256 is not None and digest != sha256.lower():
                raise DownloadError(
                    f"checksum mismatch for {url}: expected {sha256}, got {digest}",
                    url=url,
                    dest=dest,
                )
            os.replace(tmp_path, dest)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
        return dest

    def _stream_to(self, url: str, dest: Path, handle, context: CancelContext | None) -> str:
        digest = hashlib.sha256()
        try:
            with self._client.stream("GET", url) as response:
                if not response.is_success:
                    raise DownloadError(
                        f"HTTP status {response.status_code} downloading {url}",
                        url=url,
                        dest=dest,
                    )
                for chunk in response.iter_bytes(_CHUNK_SIZE):
                    if context is not None and context.cancelled():
                        raise DownloadCanceledError(
                            f"download of {url} {context.reason}",
                            url=url,
                            dest=dest,
                        )
                    handle.write(chunk)
                    digest.update(chunk)
        except httpx.TimeoutException as error:
            raise DownloadError(f"timeout downloading {url}", url=url, dest=dest) from error
        except httpx.InvalidURL as error:
            raise DownloadError(f"invalid URL {url!r}: {error}", url=url, dest=dest) from error
        except httpx.HTTPError as error:
            raise DownloadError(f"error downloading {url}: {error}", url=url, dest=dest) from error
        except OSError as error:
            raise DownloadError(f"cannot write {dest}: {error}", url=url, dest=dest) from error
        return digest.hexdigest()

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ArtifactDownloader:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
