"""
Integration tests for installing a Kettle environment and configuring a job.

Everything runs against a LocalClusterFileSystem so the installed tree can be
inspected on disk.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from classpath_registrar import ClasspathRegistrar
from cluster_config import get_cache_files
from environment_installer import EnvironmentInstaller, InstallState
from exceptions import StagingFailedError


def _tree(root):
    return sorted(
        os.path.relpath(os.path.join(dirpath, name), root)
        for dirpath, dirnames, filenames in os.walk(root)
        for name in dirnames + filenames
    )


@pytest.fixture
def drivers(settings, write_files):
    return write_files(
        Path(settings.shim_driver_deployment_location), {"hdp30.kar": "hdp30 driver"}
    )


@pytest.fixture
def additional_plugin(settings, write_files):
    """Plugin under the first plugin root with one library to exclude."""
    return write_files(
        settings.plugin_roots()[0] / "steps" / "json",
        {"json-step.jar": "step", "lib/guava-19.0.jar": "guava", "lib/jackson.jar": "jackson"},
    )


@pytest.fixture
def installer(settings):
    return EnvironmentInstaller(settings)


@pytest.fixture
def destination(cluster_root):
    return str(cluster_root / "opt" / "pentaho" / "mapreduce" / "9.0-cdh61")


class TestInstallKettleEnvironment:
    def test_full_install(
        self,
        installer,
        cluster_fs,
        pmr_archive,
        big_data_plugin,
        drivers,
        additional_plugin,
        destination,
        settings,
    ):
        installer.install_kettle_environment(
            pmr_archive,
            cluster_fs,
            destination,
            big_data_plugin,
            "steps/json",
            "guava",
            "cdh61",
        )

        assert installer.state == InstallState.LOCK_RELEASED
        assert installer.is_kettle_environment_installed_at(cluster_fs, destination)
        assert _tree(destination) == [
            "drivers",
            "drivers/hdp30.kar",
            "kettle.properties",
            "lib",
            "lib/kettle-core.jar",
            "lib/pmr-shim.jar",
            "plugins",
            "plugins/pentaho-big-data-plugin",
            "plugins/pentaho-big-data-plugin/lib",
            "plugins/pentaho-big-data-plugin/lib/big-data-api.jar",
            "plugins/pentaho-big-data-plugin/plugin.xml",
            "plugins/steps",
            "plugins/steps/json",
            "plugins/steps/json/json-step.jar",
            "plugins/steps/json/lib",
            "plugins/steps/json/lib/jackson.jar",
            "system",
        ]
        assert os.listdir(settings.temp_dir) == []
        assert cluster_fs.get_permission(destination) == 0o755
        assert cluster_fs.get_replication(os.path.join(destination, "lib")) == 10

    def test_failed_install_keeps_lock_then_reinstall_recovers(
        self, installer, cluster_fs, pmr_archive, big_data_plugin, destination
    ):
        """Test that a partial install is visible and a rerun replaces it."""
        with patch.object(
            installer,
            "stage_big_data_plugin",
            side_effect=StagingFailedError("connection reset"),
        ):
            with pytest.raises(StagingFailedError):
                installer.install_kettle_environment(
                    pmr_archive, cluster_fs, destination, big_data_plugin, "", "", "cdh61"
                )

        assert installer.state == InstallState.STAGING_PLUGIN
        assert not installer.is_kettle_environment_installed_at(cluster_fs, destination)
        stale = os.path.join(destination, "stale.txt")
        with open(stale, "w") as f:
            f.write("left over")

        installer.install_kettle_environment(
            pmr_archive, cluster_fs, destination, big_data_plugin, "", "", "cdh61"
        )

        assert installer.state == InstallState.LOCK_RELEASED
        assert installer.is_kettle_environment_installed_at(cluster_fs, destination)
        assert not os.path.exists(stale)
        assert os.path.isfile(os.path.join(destination, "lib", "pmr-shim.jar"))


class TestConfigureInstalledEnvironment:
    def test_job_configured_from_installation(
        self,
        installer,
        cluster_fs,
        cluster_conf,
        pmr_archive,
        big_data_plugin,
        destination,
        settings,
    ):
        installer.install_kettle_environment(
            pmr_archive, cluster_fs, destination, big_data_plugin, "", "", "cdh61"
        )

        ClasspathRegistrar(settings).configure_with_kettle_environment(
            cluster_conf, cluster_fs, destination
        )

        lib = f"{destination}/lib"
        assert cluster_conf.get("mapred.job.classpath.files") == (
            f"{lib}/kettle-core.jar,{lib}/pmr-shim.jar"
        )
        assert cluster_conf.get("mapred.create.symlink") == "yes"
        assert get_cache_files(cluster_conf) == [
            f"file://{lib}/kettle-core.jar",
            f"file://{lib}/pmr-shim.jar",
            f"file://{destination}/kettle.properties#kettle.properties",
            f"file://{destination}/plugins#plugins",
            f"file://{destination}/system#system",
        ]
