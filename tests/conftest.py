import zipfile
from pathlib import Path

import pytest

from cluster_config import ClusterConfiguration
from cluster_filesystem import LocalClusterFileSystem
from constants import PENTAHO_BIG_DATA_PLUGIN_FOLDER_NAME
from staging_settings import StagingSettings


@pytest.fixture
def settings(tmp_path):
    """Settings rooted in the test's temporary directory."""
    temp_dir = tmp_path / "tmp"
    temp_dir.mkdir()
    plugin_root = tmp_path / "plugin-root"
    plugin_root.mkdir()
    return StagingSettings(
        temp_dir=str(temp_dir),
        plugin_base_folders=[str(plugin_root)],
        shim_driver_deployment_location=str(tmp_path / "drivers"),
    )


@pytest.fixture
def cluster_conf():
    """Empty cluster configuration using the local filesystem."""
    return ClusterConfiguration()


@pytest.fixture
def cluster_fs(cluster_conf):
    """Local disk standing in for the cluster filesystem."""
    return LocalClusterFileSystem(cluster_conf)


@pytest.fixture
def cluster_root(tmp_path):
    """Directory on the local "cluster" that tests stage into."""
    root = tmp_path / "cluster"
    root.mkdir()
    return root


@pytest.fixture
def make_zip(tmp_path):
    """Build a zip archive from a mapping of entry name to bytes (None for directories)."""

    def _make_zip(entries, name="archive.zip"):
        archive = tmp_path / name
        with zipfile.ZipFile(archive, "w") as zf:
            for entry_name, content in entries.items():
                if content is None:
                    zf.writestr(zipfile.ZipInfo(entry_name), b"")
                else:
                    zf.writestr(entry_name, content)
        return archive

    return _make_zip


@pytest.fixture
def pmr_archive(make_zip):
    """Three-entry pmr archive: two files and an empty directory."""
    return make_zip(
        {
            "lib/kettle-core.jar": b"kettle core",
            "kettle.properties": b"KETTLE_HOME=.\n",
            "system/": None,
        },
        name="pmr.zip",
    )


@pytest.fixture
def big_data_plugin(tmp_path):
    """Big Data plugin folder with a shim carrying pmr libraries."""
    plugin = tmp_path / PENTAHO_BIG_DATA_PLUGIN_FOLDER_NAME
    (plugin / "lib").mkdir(parents=True)
    (plugin / "lib" / "big-data-api.jar").write_bytes(b"api")
    (plugin / "plugin.xml").write_text("<plugin/>")
    (plugin / "pentaho-mapreduce-libraries.zip").write_bytes(b"zip")
    pmr_dir = plugin / "hadoop-configurations" / "cdh61" / "lib" / "pmr"
    pmr_dir.mkdir(parents=True)
    (pmr_dir / "pmr-shim.jar").write_bytes(b"pmr shim")
    (plugin / "hadoop-configurations" / "cdh61" / "config.properties").write_text(
        "name=cdh61\n"
    )
    return plugin


@pytest.fixture
def write_files():
    """Create files under a root from a mapping of relative path to text."""

    def _write_files(root: Path, files):
        for relative, text in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text)
        return root

    return _write_files
