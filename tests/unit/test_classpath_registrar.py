"""Tests for classpath_registrar module."""

import re

import pytest

from classpath_registrar import NOT_LIB_FILES, ClasspathRegistrar
from cluster_config import ClusterConfiguration, get_cache_files, get_symlink
from staging_settings import StagingSettings


@pytest.fixture
def registrar():
    return ClasspathRegistrar(StagingSettings())


@pytest.fixture
def hdfs_conf():
    return ClusterConfiguration({"fs.defaultFS": "hdfs://namenode:8020"})


class TestDisqualifyPath:
    def test_strips_scheme_host_and_query(self, registrar):
        assert (
            registrar.disqualify_path("hdfs://user@namenode:8020/opt/kettle/lib/a.jar?x=1")
            == "/opt/kettle/lib/a.jar"
        )

    def test_plain_path_unchanged(self, registrar):
        assert registrar.disqualify_path("/opt/kettle/lib/a.jar") == "/opt/kettle/lib/a.jar"


class TestAddFileToClasspath:
    def test_first_file_sets_classpath_and_symlink(self, registrar, hdfs_conf):
        registrar.add_file_to_classpath("hdfs://namenode:8020/kettle/lib/a.jar", hdfs_conf)

        assert hdfs_conf.get("mapred.job.classpath.files") == "/kettle/lib/a.jar"
        assert get_cache_files(hdfs_conf) == ["hdfs://namenode:8020/kettle/lib/a.jar"]
        assert get_symlink(hdfs_conf) is True

    def test_default_separator_is_comma(self, registrar, hdfs_conf):
        registrar.add_file_to_classpath("/kettle/lib/a.jar", hdfs_conf)
        registrar.add_file_to_classpath("/kettle/lib/b.jar", hdfs_conf)

        assert hdfs_conf.get("mapred.job.classpath.files") == "/kettle/lib/a.jar,/kettle/lib/b.jar"

    def test_configured_separator(self, hdfs_conf):
        registrar = ClasspathRegistrar(StagingSettings(cluster_path_separator=":"))

        registrar.add_cached_files_to_classpath(["/kettle/lib/a.jar", "/kettle/lib/b.jar"], hdfs_conf)

        assert hdfs_conf.get("mapred.job.classpath.files") == "/kettle/lib/a.jar:/kettle/lib/b.jar"
        assert get_cache_files(hdfs_conf) == [
            "hdfs://namenode:8020/kettle/lib/a.jar",
            "hdfs://namenode:8020/kettle/lib/b.jar",
        ]

    def test_appends_to_existing_classpath(self, registrar, hdfs_conf):
        hdfs_conf.set("mapred.job.classpath.files", "/existing.jar")

        registrar.add_file_to_classpath("/kettle/lib/a.jar", hdfs_conf)

        assert hdfs_conf.get("mapred.job.classpath.files") == "/existing.jar,/kettle/lib/a.jar"


class TestAddCachedFiles:
    def test_fragment_carries_base_name(self, registrar, hdfs_conf):
        registrar.add_cached_files(
            ["hdfs://namenode:8020/kettle/plugins", "/kettle/kettle.properties"], hdfs_conf
        )

        assert get_cache_files(hdfs_conf) == [
            "hdfs://namenode:8020/kettle/plugins#plugins",
            "hdfs://namenode:8020/kettle/kettle.properties#kettle.properties",
        ]
        assert "mapred.job.classpath.files" not in hdfs_conf
        assert get_symlink(hdfs_conf) is True


class TestFindFiles:
    @pytest.fixture
    def install_dir(self, cluster_root, write_files):
        root = write_files(
            cluster_root / "kettle",
            {"lib/a.jar": "a", "lib/b.jar": "b", "plugins/p.xml": "p", "kettle.properties": "k"},
        )
        (root / "system").mkdir()
        return root

    def test_lists_direct_children_only(self, registrar, cluster_fs, install_dir):
        found = registrar.find_files(cluster_fs, str(install_dir))

        assert sorted(path.rsplit("/", 1)[-1] for path in found) == [
            "kettle.properties",
            "lib",
            "plugins",
            "system",
        ]

    def test_pattern_matches_relative_path(self, registrar, cluster_fs, install_dir):
        found = registrar.find_files(cluster_fs, str(install_dir / "lib"), re.compile(r"/a\..*"))

        assert [path.rsplit("/", 1)[-1] for path in found] == ["a.jar"]

    def test_not_lib_files_pattern(self):
        assert NOT_LIB_FILES.match("/plugins")
        assert NOT_LIB_FILES.match("/kettle.properties")
        assert not NOT_LIB_FILES.match("/lib")


class TestConfigureWithKettleEnvironment:
    def test_libraries_on_classpath_others_cached(
        self, registrar, cluster_fs, cluster_conf, cluster_root, write_files
    ):
        install_dir = write_files(
            cluster_root / "kettle",
            {"lib/a.jar": "a", "lib/b.jar": "b", "plugins/p.xml": "p", "kettle.properties": "k"},
        )

        registrar.configure_with_kettle_environment(cluster_conf, cluster_fs, str(install_dir))

        lib = (install_dir / "lib").as_posix()
        assert cluster_conf.get("mapred.job.classpath.files") == f"{lib}/a.jar,{lib}/b.jar"

        cache_files = get_cache_files(cluster_conf)
        assert f"file://{lib}/a.jar" in cache_files
        assert f"file://{lib}/b.jar" in cache_files
        assert f"file://{install_dir.as_posix()}/plugins#plugins" in cache_files
        assert (
            f"file://{install_dir.as_posix()}/kettle.properties#kettle.properties" in cache_files
        )
        assert not any(uri.endswith("#lib") for uri in cache_files)
