# Logger Configuration
NAMESPACE = "kettle_env"
"""Application logger namespace for all components."""

# Installation Layout
PATH_LIB = "lib"
"""Directory within the installation root holding classpath libraries."""

PATH_PLUGINS = "plugins"
"""Directory within the installation root holding staged plugin trees."""

PATH_DRIVERS = "drivers"
"""Directory within the installation root holding shim driver files."""

LOCK_FILE_NAME = ".lock"
"""Name of the marker written while an installation is in progress."""

# Big Data Plugin Layout
PENTAHO_BIG_DATA_PLUGIN_FOLDER_NAME = "pentaho-big-data-plugin"
"""Name of the Big Data plugin folder."""

HADOOP_CONFIGURATIONS_DIR_NAME = "hadoop-configurations"
"""Subtree of the Big Data plugin that is never staged wholesale."""

PMR_LIBRARIES_ARCHIVE_NAME = "pentaho-mapreduce-libraries.zip"
"""Archive inside the Big Data plugin that is installed separately."""

PMR_LIBS_DIR_NAME = "pmr"
"""Shim library subdirectory merged into the installation lib directory."""

# Staging
CONFIG_PROPERTIES = "config.properties"
"""Shim configuration file copied with authentication properties removed."""

AUTH_PREFIX = "pentaho.authentication"
"""Prefix of properties omitted when copying config.properties to the cluster."""

LIBRARY_EXTENSION = "jar"
"""Extension of files considered libraries by the exclusion filter."""

DEFAULT_BUFFER_SIZE = 8192
"""Read buffer size used when extracting archive entries."""

CACHED_FILE_PERMISSION = 0o755
"""Permission applied to privately staged files."""

PUBLIC_CACHED_FILE_PERMISSION = 0o777
"""Permission applied to publicly staged files."""

# Cluster Configuration Keys
SUBMIT_REPLICATION_KEY = "mapred.submit.replication"
DEFAULT_SUBMIT_REPLICATION = 10
"""Replication used for staged files when the cluster configuration has none."""

CLASSPATH_FILES_KEY = "mapred.job.classpath.files"
CACHE_FILES_KEY = "mapred.cache.files"
CREATE_SYMLINK_KEY = "mapred.create.symlink"
DEFAULT_FS_KEY = "fs.defaultFS"
DEFAULT_FS = "file:///"

# Environment Defaults
DEFAULT_CLUSTER_PATH_SEPARATOR = ","
"""Separator between classpath entries when none is configured."""

DEFAULT_PLUGIN_BASE_FOLDERS = ["plugins", "~/.kettle/plugins"]
"""Plugin roots searched, in order, when none are configured."""

DEFAULT_SHIM_DRIVER_DEPLOYMENT_LOCATION = "./drivers"
"""Local directory holding shim driver files to stage."""

# HDFS Shell
HDFS_CLI = "hdfs"
"""Executable used for operations fsspec does not expose (chmod, setrep)."""

HDFS_COMMAND_TIMEOUT = 300
"""Timeout in seconds for HDFS shell commands."""
