"""Locator classification: remote URL vs on-device capture handle."""

from gearsync.config import REMOTE_SCHEMES


def is_remote(locator: str) -> bool:
    """Whether locator is an already-uploaded http(s) URL."""
    return locator.lower().startswith(REMOTE_SCHEMES)


def is_local(locator: str) -> bool:
    """
    Whether locator still points at the device.

    Anything that is not http(s) counts as local: file://, content://,
    ph://, or a bare filesystem path.
    """
    return bool(locator) and not is_remote(locator)


def local_path(locator: str) -> str:
    """Filesystem path for a file:// locator or bare path."""
    if locator.startswith("file://"):
        return locator[len("file://"):]
    return locator


def filename_of(locator: str, default: str) -> str:
    """Last path segment, query string stripped."""
    name = locator.split("?", 1)[0].rstrip("/").split("/")[-1]
    return name or default
