"""
Hadoop-style cluster configuration and distributed cache registration.

ClusterConfiguration is a string key/value map like Hadoop's Configuration.
The module-level functions register files with the distributed cache the way
Hadoop's DistributedCache does: by appending URIs to configuration keys that
the job submitter reads later.
"""

import logging
from typing import Dict, List, Optional

from constants import (
    CACHE_FILES_KEY,
    CREATE_SYMLINK_KEY,
    DEFAULT_FS,
    DEFAULT_FS_KEY,
)

logger = logging.getLogger(__name__)


class ClusterConfiguration:
    """Mutable cluster configuration."""

    def __init__(self, values: Optional[Dict[str, str]] = None) -> None:
        self._values: Dict[str, str] = {}
        for key, value in (values or {}).items():
            self.set(key, value)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._values.get(key, default)

    def get_int(self, key: str, default: int) -> int:
        """
        Read an integer value.

        Args:
            key: Configuration key
            default: Value returned when the key is unset or blank

        Raises:
            ValueError: If the stored value is not an integer
        """
        value = self._values.get(key)
        if value is None or not value.strip():
            return default
        try:
            return int(value.strip())
        except ValueError as e:
            raise ValueError(f"configuration value for {key} is not an integer: {value!r}") from e

    def set(self, key: str, value) -> None:
        self._values[key] = str(value)

    def unset(self, key: str) -> None:
        self._values.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def as_dict(self) -> Dict[str, str]:
        return dict(self._values)

    @property
    def default_fs(self) -> str:
        return self.get(DEFAULT_FS_KEY, DEFAULT_FS) or DEFAULT_FS


def create_symlink(conf: ClusterConfiguration) -> None:
    """Ask the cache to create symlinks to cached files in the task working directory."""
    conf.set(CREATE_SYMLINK_KEY, "yes")


def get_symlink(conf: ClusterConfiguration) -> bool:
    return conf.get(CREATE_SYMLINK_KEY) == "yes"


def add_cache_file(uri: str, conf: ClusterConfiguration) -> None:
    """Add a URI to the files localized on every node executing the job."""
    files = conf.get(CACHE_FILES_KEY)
    conf.set(CACHE_FILES_KEY, uri if files is None else f"{files},{uri}")
    logger.debug(f"Registered cache file {uri}")


def get_cache_files(conf: ClusterConfiguration) -> List[str]:
    files = conf.get(CACHE_FILES_KEY)
    if not files:
        return []
    return files.split(",")
