"""
Staging of local files and folders onto the cluster filesystem.

Staged entries get the permission and replication the distributed cache
expects: 0755 (0777 when public) and the job-submission replication factor.
"""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel

from cluster_filesystem import ClusterFileSystem
from constants import (
    AUTH_PREFIX,
    CACHED_FILE_PERMISSION,
    CONFIG_PROPERTIES,
    DEFAULT_SUBMIT_REPLICATION,
    NAMESPACE,
    PUBLIC_CACHED_FILE_PERMISSION,
    SUBMIT_REPLICATION_KEY,
)
from exceptions import DestinationExistsError, SourceNotFoundError, StagingFailedError
from exclusion_filter import parse_prefixes, remove_excluded_files
from staging_settings import StagingSettings


class StagedEntry(BaseModel):
    """A local source and where it is staged to."""

    source: Path
    destination: str
    exclude_plugin_file_names: str = ""
    overwrite: bool = False
    is_public: bool = False

    @property
    def permission(self) -> int:
        return PUBLIC_CACHED_FILE_PERMISSION if self.is_public else CACHED_FILE_PERMISSION


class CacheStager:
    """Copies local files and folders to a cluster filesystem for the distributed cache."""

    def __init__(self, settings: Optional[StagingSettings] = None) -> None:
        self.logger = logging.getLogger(f"{NAMESPACE}.{__name__.split('.')[-1]}")
        self.settings = settings or StagingSettings()

    def stage_for_cache(
        self,
        source: Union[str, Path],
        fs: ClusterFileSystem,
        destination: str,
        exclude_plugin_file_names: str = "",
        overwrite: bool = False,
        is_public: bool = False,
    ) -> StagedEntry:
        """
        Stage a file or folder to the cluster filesystem.

        WARNING: with overwrite enabled an existing destination is deleted
        before staging; contents are never merged.

        Args:
            source: Local file or folder. A folder's contents are copied into destination.
            fs: Cluster filesystem to write to
            destination: Remote path. A file source is written to exactly this path.
            exclude_plugin_file_names: Comma-separated library name prefixes to leave out of a folder
            overwrite: Replace an existing destination instead of failing
            is_public: Make the staged entry world-writable (0777) instead of 0755

        Returns:
            The staged entry

        Raises:
            SourceNotFoundError: If the source does not exist
            DestinationExistsError: If the destination exists and overwrite is False
            StagingFailedError: If copying or setting permission/replication failed
        """
        entry = StagedEntry(
            source=Path(source),
            destination=destination,
            exclude_plugin_file_names=exclude_plugin_file_names or "",
            overwrite=overwrite,
            is_public=is_public,
        )

        if not entry.source.exists():
            raise SourceNotFoundError(f"source does not exist: {entry.source}")

        if fs.exists(destination):
            if not overwrite:
                raise DestinationExistsError(f"destination already exists: {destination}")
            try:
                fs.delete(destination, recursive=True)
            except OSError as e:
                raise StagingFailedError(f"could not remove existing {destination}") from e

        # Use the same replication we'd use for submitting jobs
        replication = fs.configuration.get_int(SUBMIT_REPLICATION_KEY, DEFAULT_SUBMIT_REPLICATION)

        try:
            if entry.source.name == CONFIG_PROPERTIES and entry.source.is_file():
                self.copy_config_properties(entry.source, fs, destination)
            elif entry.source.is_dir() and parse_prefixes(entry.exclude_plugin_file_names):
                self._copy_filtered_folder(entry, fs)
            else:
                fs.copy_from_local(entry.source, destination)

            fs.set_permission(destination, entry.permission)
            fs.set_replication(destination, replication)
        except OSError as e:
            raise StagingFailedError(f"error staging {entry.source} to {destination}: {e}") from e

        self.logger.debug(
            f"Staged {entry.source} to {destination} "
            f"(mode {entry.permission:o}, replication {replication})"
        )
        return entry

    def _copy_filtered_folder(self, entry: StagedEntry, fs: ClusterFileSystem) -> None:
        temp_dir = Path(tempfile.mkdtemp(prefix=".staging-", dir=self.settings.temp_dir))
        try:
            filtered = temp_dir / entry.source.name
            shutil.copytree(entry.source, filtered)
            remove_excluded_files(filtered, entry.exclude_plugin_file_names)
            fs.copy_from_local(filtered, entry.destination)
        finally:
            shutil.rmtree(temp_dir, ignore_errors=True)

    def copy_config_properties(
        self, source: Union[str, Path], fs: ClusterFileSystem, destination: str
    ) -> None:
        """
        Copy a shim config.properties, omitting authentication properties.

        Properties files are ISO-8859-1 by convention, so lines are filtered as
        bytes and every other byte is copied through unchanged.
        """
        auth_prefix = AUTH_PREFIX.encode("latin-1")
        try:
            with open(source, "rb") as input_file, fs.create(
                destination, overwrite=True
            ) as output:
                for line in input_file:
                    line = line.rstrip(b"\r\n")
                    if not line.startswith(auth_prefix):
                        output.write(line + b"\n")
        except OSError as e:
            raise StagingFailedError(
                f"Error copying modified version of {CONFIG_PROPERTIES} to {destination}"
            ) from e
