"""
Installation of a Kettle environment onto a cluster filesystem.

An installation root holds the extracted pmr archive, the shim drivers, the
Big Data plugin, the pmr libraries merged into lib/, and any additional plugins.
A `.lock` marker sits in the root while the installation runs and is removed
only when every step succeeded. A failed installation keeps its marker so the
partial state is visible; reinstalling with overwrite is the recovery path.
"""

import asyncio
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Union

import archive_extractor
from cache_stager import CacheStager
from cluster_filesystem import ClusterFileSystem
from cluster_paths import base_name, join
from constants import (
    CACHED_FILE_PERMISSION,
    HADOOP_CONFIGURATIONS_DIR_NAME,
    LOCK_FILE_NAME,
    NAMESPACE,
    PATH_DRIVERS,
    PATH_LIB,
    PATH_PLUGINS,
    PMR_LIBRARIES_ARCHIVE_NAME,
    PMR_LIBS_DIR_NAME,
)
from exceptions import (
    InvalidArgumentError,
    MissingArgumentError,
    PluginFolderNotFoundError,
    SourceNotFoundError,
    StagingError,
    StagingFailedError,
)
from plugin_resolver import PluginFolderResolver
from staging_settings import StagingSettings


class InstallState(str, Enum):
    NOT_STARTED = "NotStarted"
    EXTRACTING = "Extracting"
    LOCK_ACQUIRED = "LockAcquired"
    STAGING_DRIVERS = "StagingDrivers"
    STAGING_PLUGIN = "StagingPlugin"
    STAGING_ADDITIONAL_PLUGINS = "StagingAdditionalPlugins"
    LOCK_RELEASED = "LockReleased"


class EnvironmentInstaller:
    """Installs and detects Kettle environments on a cluster filesystem."""

    def __init__(
        self,
        settings: Optional[StagingSettings] = None,
        stager: Optional[CacheStager] = None,
        resolver: Optional[PluginFolderResolver] = None,
    ) -> None:
        self.logger = logging.getLogger(f"{NAMESPACE}.{__name__.split('.')[-1]}")
        self.settings = settings or StagingSettings()
        self.stager = stager or CacheStager(self.settings)
        self.resolver = resolver or PluginFolderResolver(self.settings)
        self.state = InstallState.NOT_STARTED

    def _transition(self, state: InstallState) -> None:
        self.logger.debug(f"Install state {self.state.value} -> {state.value}")
        self.state = state

    def get_lock_file_at(self, root: str) -> str:
        """Path of the lock marker within an installation root."""
        return join(root, LOCK_FILE_NAME)

    def is_kettle_environment_installed_at(self, fs: ClusterFileSystem, root: str) -> bool:
        """
        Check whether a Kettle environment is installed at `root`.

        Only the absence of the lock marker is checked. This is advisory: two
        installers may both observe "not installed" and race.
        """
        return not fs.exists(self.get_lock_file_at(root))

    def install_kettle_environment(
        self,
        pmr_archive: Optional[Union[str, Path]],
        fs: ClusterFileSystem,
        destination: Optional[str],
        big_data_plugin: Optional[Union[str, Path]],
        additional_plugins: Optional[str] = "",
        exclude_plugin_file_names: Optional[str] = "",
        shim_identifier: str = "",
    ) -> None:
        """
        Install a Kettle environment into `destination`.

        Any previous installation at `destination` is replaced.

        Args:
            pmr_archive: Zip archive holding the Kettle engine and libraries
            fs: Cluster filesystem to install into
            destination: Installation root
            big_data_plugin: Local Big Data plugin folder
            additional_plugins: Comma-separated plugin folders to stage as well
            exclude_plugin_file_names: Comma-separated library prefixes to leave
                out of the additional plugins
            shim_identifier: Shim whose pmr libraries are merged into lib/

        Raises:
            MissingArgumentError: If the archive, destination or plugin folder is missing
            StagingError: The first failing step; the lock marker stays in place
        """
        if pmr_archive is None:
            raise MissingArgumentError("pmr_archive is required")
        if destination is None:
            raise MissingArgumentError("destination is required")
        if big_data_plugin is None:
            raise MissingArgumentError("big data plugin required")

        self.state = InstallState.NOT_STARTED
        self.logger.info(f"Installing Kettle environment at {destination}")

        self._transition(InstallState.EXTRACTING)
        extracted = archive_extractor.extract_to_temp(pmr_archive, self.settings.temp_dir)

        try:
            lock_file = self._acquire_lock(fs, destination)
            self._transition(InstallState.LOCK_ACQUIRED)
            self._clear_previous_install(fs, destination)

            for child in sorted(extracted.iterdir()):
                self.stager.stage_for_cache(
                    child, fs, join(destination, child.name), "", True, False
                )

            self._transition(InstallState.STAGING_DRIVERS)
            self.stage_pentaho_hadoop_shims(
                fs, destination, Path(self.settings.shim_driver_deployment_location)
            )

            self._transition(InstallState.STAGING_PLUGIN)
            self.stage_big_data_plugin(fs, destination, Path(big_data_plugin), shim_identifier)

            if additional_plugins:
                self._transition(InstallState.STAGING_ADDITIONAL_PLUGINS)
                self.stage_plugins_for_cache(
                    fs,
                    join(destination, PATH_PLUGINS),
                    additional_plugins,
                    exclude_plugin_file_names or "",
                )

            # Only a complete installation releases its lock
            fs.delete(lock_file, recursive=False)
            self._transition(InstallState.LOCK_RELEASED)
        except StagingError:
            if self.state == InstallState.EXTRACTING:
                outcome = "lock marker was not written; any previous installation is unchanged"
            else:
                outcome = "lock marker left in place"
            self.logger.error(
                f"Kettle environment installation at {destination} failed during "
                f"{self.state.value}; {outcome}"
            )
            raise
        finally:
            self._cleanup_extracted(extracted)

        self.logger.info(f"Kettle environment installed at {destination}")

    def _cleanup_extracted(self, extracted: Path) -> None:
        try:
            removed = archive_extractor.delete_directory(extracted)
        except OSError as e:
            self.logger.warning(f"Failed to clean up extracted archive at {extracted}: {e}")
            return
        if not removed:
            self.logger.warning(f"Extracted archive still present at {extracted}")

    async def install_kettle_environment_async(self, *args, **kwargs) -> None:
        """Async wrapper running install_kettle_environment in a worker thread."""
        return await asyncio.to_thread(self.install_kettle_environment, *args, **kwargs)

    def _acquire_lock(self, fs: ClusterFileSystem, destination: str) -> str:
        lock_file = self.get_lock_file_at(destination)
        try:
            fs.mkdirs(destination)
            with fs.create(lock_file, overwrite=True):
                pass
        except OSError as e:
            raise StagingFailedError(f"could not write lock file {lock_file}") from e
        return lock_file

    def _clear_previous_install(self, fs: ClusterFileSystem, destination: str) -> None:
        # Everything but the marker goes; the marker already guards the root
        try:
            for child in fs.list_status(destination):
                if base_name(child) != LOCK_FILE_NAME:
                    fs.delete(child, recursive=True)
            fs.set_permission(destination, CACHED_FILE_PERMISSION)
        except OSError as e:
            raise StagingFailedError(
                f"could not clear previous installation at {destination}: {e}"
            ) from e

    def _find_drivers(self, directory: Path) -> Dict[Path, str]:
        files: Dict[Path, str] = {}
        if directory.exists():
            for dirpath, _dirnames, filenames in os.walk(directory, followlinks=True):
                for name in filenames:
                    path = Path(dirpath) / name
                    files[path] = path.relative_to(directory).as_posix()
        return files

    def stage_pentaho_hadoop_shims(
        self, fs: ClusterFileSystem, destination: str, shim_driver_directory: Path
    ) -> None:
        """
        Stage every file of the shim driver directory under drivers/.

        Failures are logged per file and do not abort the installation.
        """
        for local_path, relative_path in sorted(self._find_drivers(shim_driver_directory).items()):
            try:
                self.stager.stage_for_cache(
                    local_path, fs, join(destination, PATH_DRIVERS, relative_path), "", True, False
                )
            except (StagingError, OSError) as e:
                self.logger.warning(f"Failed to stage shim driver {local_path}: {e}")

    def stage_big_data_plugin(
        self,
        fs: ClusterFileSystem,
        destination: str,
        plugin_folder: Path,
        shim_identifier: str,
    ) -> None:
        """
        Stage the Big Data plugin and merge the shim's pmr libraries into lib/.

        Everything except hadoop-configurations and the pmr libraries archive is
        staged under plugins/<plugin folder name>/.
        """
        if not plugin_folder.is_dir():
            raise SourceNotFoundError(f"big data plugin folder does not exist: {plugin_folder}")

        big_data_plugin_dir = join(destination, PATH_PLUGINS, plugin_folder.name)

        # Stage everything except the hadoop-configurations and pmr libraries
        for child in sorted(plugin_folder.iterdir()):
            if child.name in (HADOOP_CONFIGURATIONS_DIR_NAME, PMR_LIBRARIES_ARCHIVE_NAME):
                continue
            self.stager.stage_for_cache(
                child, fs, join(big_data_plugin_dir, child.name), "", True, False
            )

        if not shim_identifier:
            return

        pmr_libs_dir = (
            plugin_folder / HADOOP_CONFIGURATIONS_DIR_NAME / shim_identifier / PATH_LIB / PMR_LIBS_DIR_NAME
        )
        if pmr_libs_dir.is_dir():
            lib_dir = join(destination, PATH_LIB)
            for child in sorted(pmr_libs_dir.iterdir()):
                self.stager.stage_for_cache(child, fs, join(lib_dir, child.name), "", True, False)

    def stage_plugins_for_cache(
        self,
        fs: ClusterFileSystem,
        plugins_dir: str,
        plugin_folder_names: Optional[str],
        exclude_plugin_file_names: str = "",
    ) -> None:
        """
        Stage a comma-separated list of plugin folders into a remote directory.

        Args:
            fs: Cluster filesystem to write to
            plugins_dir: Remote plugins directory to copy folders into
            plugin_folder_names: Plugin folders, relative to a plugin root
            exclude_plugin_file_names: Library prefixes to leave out of each folder

        Raises:
            InvalidArgumentError: If plugin_folder_names is None
            PluginFolderNotFoundError: If a folder is in none of the plugin roots
        """
        if plugin_folder_names is None:
            raise InvalidArgumentError("plugin_folder_names required")

        if not fs.exists(plugins_dir):
            fs.mkdirs(plugins_dir)

        for name in plugin_folder_names.split(","):
            name = name.strip()
            if not name:
                continue
            match = self.resolver.find_plugin_folder(name)
            if match is None or not match.folder.exists():
                raise PluginFolderNotFoundError(f"plugin directory not found: {name}")
            self.stager.stage_for_cache(
                match.folder,
                fs,
                join(plugins_dir, match.relative_path),
                exclude_plugin_file_names,
                True,
                False,
            )
