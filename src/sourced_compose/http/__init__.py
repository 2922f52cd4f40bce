"""HTTP helpers."""

from sourced_compose.http.downloader import ArtifactDownloader

__all__ = ["ArtifactDownloader"]
