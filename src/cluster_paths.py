"""Helpers for slash-separated paths on the cluster filesystem."""

import posixpath
from urllib.parse import urlparse, urlsplit

from constants import DEFAULT_FS


def join(path: str, *parts: str) -> str:
    """Join path segments with forward slashes regardless of the local OS."""
    return posixpath.join(path, *(part.strip("/") for part in parts))


def base_name(path: str) -> str:
    return posixpath.basename(disqualify_path(path).rstrip("/"))


def disqualify_path(path: str) -> str:
    """
    Remove the scheme, host, authentication and query portion of a URI.

    A path without a scheme is returned unchanged, so ";", "?" and "#" in
    plain file names are kept.

    Args:
        path: Path or URI to cleanse

    Returns:
        Path relative to the root of the filesystem
    """
    path = str(path)
    parts = urlsplit(path)
    if not parts.scheme:
        return path
    return parts.path


def qualify_path(path: str, default_fs: str = DEFAULT_FS) -> str:
    """
    Build a fully qualified URI for a path using the default filesystem URI.

    Paths that already carry a scheme are returned unchanged.
    """
    path = str(path)
    if urlparse(path).scheme:
        return path
    default = urlparse(default_fs)
    scheme = default.scheme or "file"
    if not path.startswith("/"):
        path = "/" + path
    return f"{scheme}://{default.netloc}{path}"
