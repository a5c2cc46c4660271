"""
Distributed filesystem access for staging.

Storage operations (exists, create, delete, listing, copying) go through an
fsspec filesystem. Permission and replication are cluster concepts that fsspec
does not model, so each concrete filesystem implements them itself: on local
disk through os.chmod, on HDFS through the `hdfs dfs` shell.
"""

import logging
import os
import posixpath
import stat
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Union
from urllib.parse import urlparse

import fsspec
from fsspec.spec import AbstractFileSystem

from cluster_config import ClusterConfiguration
from cluster_paths import disqualify_path, qualify_path
from constants import HDFS_CLI, HDFS_COMMAND_TIMEOUT, NAMESPACE
from exceptions import InvalidArgumentError
from subprocess_utils import run_logged_subprocess


class ClusterFileSystem(ABC):
    """A filesystem staged files are written to, together with its configuration."""

    def __init__(
        self,
        filesystem: AbstractFileSystem,
        configuration: Optional[ClusterConfiguration] = None,
    ) -> None:
        self.logger = logging.getLogger(f"{NAMESPACE}.{__name__.split('.')[-1]}")
        self._fs = filesystem
        self.configuration = configuration or ClusterConfiguration()

    def _path(self, path: str) -> str:
        return disqualify_path(path)

    def make_qualified(self, path: str) -> str:
        return qualify_path(self._path(path), self.configuration.default_fs)

    def exists(self, path: str) -> bool:
        return self._fs.exists(self._path(path))

    def is_dir(self, path: str) -> bool:
        return self._fs.isdir(self._path(path))

    def create(self, path: str, overwrite: bool = True):
        """
        Open a file for binary writing, creating parent directories.

        Args:
            path: File to create
            overwrite: Truncate an existing file instead of failing

        Raises:
            FileExistsError: If the file exists and overwrite is False
        """
        target = self._path(path)
        if not overwrite and self._fs.exists(target):
            raise FileExistsError(f"{target} already exists")
        parent = posixpath.dirname(target)
        if parent:
            self._fs.makedirs(parent, exist_ok=True)
        return self._fs.open(target, "wb")

    def delete(self, path: str, recursive: bool = True) -> bool:
        """Delete a file or directory. Returns False if nothing was there."""
        target = self._path(path)
        if not self._fs.exists(target):
            return False
        self._fs.rm(target, recursive=recursive)
        return True

    def mkdirs(self, path: str) -> None:
        self._fs.makedirs(self._path(path), exist_ok=True)

    def list_status(self, path: str) -> List[str]:
        """List the direct children of a directory, sorted by path."""
        return sorted(self._fs.ls(self._path(path), detail=False))

    def copy_from_local(self, local_path: Union[str, Path], path: str) -> None:
        """
        Copy a local file or directory tree to the filesystem.

        A file is written to exactly `path`. A directory's contents are copied
        into `path`, including empty subdirectories. Symlinked directories are
        followed and copied as real directories.
        """
        local_path = Path(local_path)
        target = self._path(path)

        if local_path.is_dir():
            for dirpath, _dirnames, filenames in os.walk(local_path, followlinks=True):
                relative = Path(dirpath).relative_to(local_path).as_posix()
                remote_dir = target if relative == "." else posixpath.join(target, relative)
                self._fs.makedirs(remote_dir, exist_ok=True)
                for name in filenames:
                    self._fs.put_file(
                        os.path.join(dirpath, name), posixpath.join(remote_dir, name)
                    )
        else:
            parent = posixpath.dirname(target)
            if parent:
                self._fs.makedirs(parent, exist_ok=True)
            self._fs.put_file(str(local_path), target)

        self.logger.debug(f"Copied {local_path} to {target}")

    @abstractmethod
    def set_permission(self, path: str, mode: int) -> None:
        """Set the Unix permission bits of a file or directory."""

    @abstractmethod
    def get_permission(self, path: str) -> int:
        pass

    @abstractmethod
    def set_replication(self, path: str, replication: int) -> None:
        """Set the number of block replicas kept for a file."""

    @abstractmethod
    def get_replication(self, path: str) -> int:
        pass


class LocalClusterFileSystem(ClusterFileSystem):
    """
    Local disk acting as the cluster filesystem (local job runner, tests).

    Local files have no replicas; requested replication is recorded so that
    callers observe the same values they would on a real cluster.
    """

    def __init__(
        self,
        configuration: Optional[ClusterConfiguration] = None,
        filesystem: Optional[AbstractFileSystem] = None,
    ) -> None:
        super().__init__(filesystem or fsspec.filesystem("file"), configuration)
        self._replication: Dict[str, int] = {}

    def delete(self, path: str, recursive: bool = True) -> bool:
        target = self._path(path)
        deleted = super().delete(path, recursive)
        if deleted:
            for key in list(self._replication):
                if key == target or key.startswith(target.rstrip("/") + "/"):
                    del self._replication[key]
        return deleted

    def set_permission(self, path: str, mode: int) -> None:
        os.chmod(self._path(path), mode)

    def get_permission(self, path: str) -> int:
        return stat.S_IMODE(os.stat(self._path(path)).st_mode)

    def set_replication(self, path: str, replication: int) -> None:
        target = self._path(path)
        if not os.path.exists(target):
            raise FileNotFoundError(f"{target} does not exist")
        self._replication[target] = replication

    def get_replication(self, path: str) -> int:
        return self._replication.get(self._path(path), 1)


class HdfsClusterFileSystem(ClusterFileSystem):
    """HDFS reached through fsspec (pyarrow) with the `hdfs` CLI for metadata."""

    def __init__(
        self,
        configuration: ClusterConfiguration,
        filesystem: Optional[AbstractFileSystem] = None,
    ) -> None:
        if filesystem is None:
            default_fs = urlparse(configuration.default_fs)
            filesystem = fsspec.filesystem(
                "hdfs", host=default_fs.hostname or "default", port=default_fs.port or 8020
            )
        super().__init__(filesystem, configuration)

    def _hdfs_dfs(self, operation_name: str, *args: str) -> str:
        result = run_logged_subprocess(
            [HDFS_CLI, "dfs", *args],
            logger=self.logger,
            operation_name=operation_name,
            timeout=HDFS_COMMAND_TIMEOUT,
        )
        if not result.success:
            raise OSError(f"{operation_name} failed: {result.error}")
        return result.stdout or ""

    def set_permission(self, path: str, mode: int) -> None:
        self._hdfs_dfs("Setting permission", "-chmod", format(mode, "o"), self.make_qualified(path))

    def get_permission(self, path: str) -> int:
        output = self._hdfs_dfs("Reading permission", "-stat", "%a", self.make_qualified(path))
        return int(output.strip(), 8)

    def set_replication(self, path: str, replication: int) -> None:
        self._hdfs_dfs(
            "Setting replication", "-setrep", str(replication), self.make_qualified(path)
        )

    def get_replication(self, path: str) -> int:
        output = self._hdfs_dfs("Reading replication", "-stat", "%r", self.make_qualified(path))
        return int(output.strip())


def get_file_system(configuration: ClusterConfiguration) -> ClusterFileSystem:
    """
    Return the filesystem named by the configuration's fs.defaultFS.

    Raises:
        InvalidArgumentError: If the scheme is not supported
    """
    scheme = urlparse(configuration.default_fs).scheme or "file"
    if scheme == "file":
        return LocalClusterFileSystem(configuration)
    if scheme == "hdfs":
        return HdfsClusterFileSystem(configuration)
    raise InvalidArgumentError(f"unsupported cluster filesystem scheme: {scheme}")
