"""
Registration of staged files with the distributed cache.

Libraries of an installed Kettle environment are added to the job classpath;
every other top-level entry is shipped as a plain cached file.
"""

import logging
import posixpath
import re
from typing import List, Optional, Pattern

import cluster_config
from cluster_config import ClusterConfiguration
from cluster_filesystem import ClusterFileSystem
from cluster_paths import base_name, disqualify_path, join, qualify_path
from constants import CLASSPATH_FILES_KEY, NAMESPACE, PATH_LIB
from staging_settings import StagingSettings

NOT_LIB_FILES = re.compile(r"^((?!/lib).)*$")
"""Matches any path that does not contain a /lib segment."""


class ClasspathRegistrar:
    """Adds staged files to a cluster configuration's cache and classpath."""

    def __init__(self, settings: Optional[StagingSettings] = None) -> None:
        self.logger = logging.getLogger(f"{NAMESPACE}.{__name__.split('.')[-1]}")
        self.settings = settings or StagingSettings()

    def get_cluster_path_separator(self) -> str:
        """
        Separator between classpath entries on the cluster.

        The remote cluster's separator cannot be detected, so it comes from
        configuration (HADOOP_CLUSTER_PATH_SEPARATOR), defaulting to ",".
        """
        return self.settings.cluster_path_separator

    def disqualify_path(self, path: str) -> str:
        return disqualify_path(path)

    def add_file_to_classpath(self, file: str, conf: ClusterConfiguration) -> None:
        """
        Add a file to the job classpath and to the distributed cache.

        The classpath entry is the bare filesystem path; older cache
        implementations cannot resolve qualified URIs on the classpath.
        """
        path = self.disqualify_path(file)
        classpath = conf.get(CLASSPATH_FILES_KEY)
        conf.set(
            CLASSPATH_FILES_KEY,
            path if classpath is None else classpath + self.get_cluster_path_separator() + path,
        )
        cluster_config.create_symlink(conf)
        cluster_config.add_cache_file(qualify_path(path, conf.default_fs), conf)

    def add_cached_files_to_classpath(self, files: List[str], conf: ClusterConfiguration) -> None:
        cluster_config.create_symlink(conf)
        for file in files:
            self.add_file_to_classpath(file, conf)

    def add_cached_files(self, paths: List[str], conf: ClusterConfiguration) -> None:
        """
        Register paths with the distributed cache without touching the classpath.

        Each URI carries the path's base name as fragment so the file keeps its
        short name on the executing node.
        """
        cluster_config.create_symlink(conf)
        for path in paths:
            uri = qualify_path(path, conf.default_fs)
            cluster_config.add_cache_file(f"{uri}#{base_name(path)}", conf)

    def find_files(
        self, fs: ClusterFileSystem, path: str, file_name_pattern: Optional[Pattern] = None
    ) -> List[str]:
        """
        List the direct children of `path` matching a pattern. Not recursive.

        The pattern is matched against the child's path relative to `path`,
        with a leading slash (e.g. "/lib" or "/kettle-core.jar").

        Args:
            fs: Filesystem to search within
            path: Directory to list
            file_name_pattern: Pattern to match; None matches everything
        """
        parent = disqualify_path(path).rstrip("/")
        found = []
        for child in fs.list_status(path):
            relative = "/" + posixpath.relpath(disqualify_path(child), parent)
            if file_name_pattern is None or file_name_pattern.match(relative):
                found.append(child)
        return found

    def configure_with_kettle_environment(
        self, conf: ClusterConfiguration, fs: ClusterFileSystem, kettle_install_dir: str
    ) -> None:
        """
        Configure a job to use the Kettle environment installed at `kettle_install_dir`.

        Every file in lib/ goes on the classpath; every other top-level entry is
        registered as a cached file.
        """
        library_jars = self.find_files(fs, join(kettle_install_dir, PATH_LIB))
        self.add_cached_files_to_classpath(library_jars, conf)

        non_lib_files = self.find_files(fs, kettle_install_dir, NOT_LIB_FILES)
        self.add_cached_files(non_lib_files, conf)

        self.logger.info(
            f"Configured {len(library_jars)} classpath entries and "
            f"{len(non_lib_files)} cached files from {kettle_install_dir}"
        )
