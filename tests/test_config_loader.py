"""Tests for config loader module."""


import pytest

from lxd_backup_ng.config import Config, GlobalConfig, StorageConfig
from lxd_backup_ng.config.loader import (
    ConfigError,
    find_config_file,
    generate_example_config,
    load_config,
    validate_config,
)


class TestFindConfigFile:
    """Tests for find_config_file function."""

    def test_explicit_path_exists(self, config_file):
        """Test finding explicitly specified config file."""
        assert find_config_file(str(config_file)) == config_file

    def test_explicit_path_not_exists(self, tmp_path):
        """Test error when explicit path doesn't exist."""
        with pytest.raises(ConfigError, match="not found"):
            find_config_file(str(tmp_path / "nonexistent.toml"))

    def test_searches_default_locations(self, tmp_path, monkeypatch):
        """Test the first existing default location wins."""
        first = tmp_path / "user.toml"
        second = tmp_path / "system.toml"
        second.write_text("")
        monkeypatch.setattr(
            "lxd_backup_ng.config.loader.CONFIG_PATHS", [first, second]
        )

        assert find_config_file(None) == second

        first.write_text("")
        assert find_config_file(None) == first

    def test_no_config_found(self, tmp_path, monkeypatch):
        """Test returning None when no default location exists."""
        monkeypatch.setattr(
            "lxd_backup_ng.config.loader.CONFIG_PATHS", [tmp_path / "missing.toml"]
        )
        assert find_config_file(None) is None


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_valid_config(self, config_file):
        """Test loading a valid configuration file."""
        config, warnings = load_config(config_file)

        assert config.global_config.zpool == "tank"
        assert config.global_config.lxc_command == "/usr/bin/lxc"
        assert config.global_config.zfs_command == "/usr/sbin/zfs"
        assert config.global_config.snapshot_prefix == "nightly-"
        assert config.global_config.parallel_snapshots == 6
        assert config.global_config.parallel_transfers == 3
        assert config.storage.backend == "s3"
        assert config.storage.bucket == "lxd-backups"
        assert config.storage.region == "eu-west-1"
        assert config.storage.part_size_mb == 16
        assert warnings == []

    def test_load_minimal_config(self, minimal_config_file):
        """Test defaults fill in a minimal configuration file."""
        config, warnings = load_config(minimal_config_file)

        assert config.is_complete()
        assert config.global_config.parallel_snapshots == 4
        assert config.global_config.parallel_transfers == 2
        assert config.global_config.zfs_command == "/sbin/zfs"
        assert config.storage.backend == "s3"
        assert warnings == []

    def test_backend_options(self, config_file):
        """Test S3 options are derived from the storage section."""
        config, _ = load_config(config_file)

        assert config.storage.backend_options() == {
            "region": "eu-west-1",
            "endpoint_url": None,
            "profile": None,
            "part_size": 16 * 1024 * 1024,
        }

    def test_load_nonexistent_file(self, tmp_path):
        """Test error when loading nonexistent file."""
        with pytest.raises(ConfigError, match="Cannot read"):
            load_config(tmp_path / "nonexistent.toml")

    def test_load_invalid_toml(self, tmp_config_dir):
        """Test error on invalid TOML syntax."""
        path = tmp_config_dir / "invalid.toml"
        path.write_text("[global\nzpool = ")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(path)

    def test_unknown_backend(self, tmp_config_dir):
        """Test an unknown storage backend is rejected."""
        path = tmp_config_dir / "config.toml"
        path.write_text('[storage]\nbackend = "ftp"\nbucket = "b"\n')

        with pytest.raises(ConfigError, match="Unknown storage backend"):
            load_config(path)

    @pytest.mark.parametrize("value", ["0", "-1", '"two"', "true"])
    def test_invalid_parallelism(self, tmp_config_dir, value):
        """Test worker counts must be positive integers."""
        path = tmp_config_dir / "config.toml"
        path.write_text(f"[global]\nparallel_transfers = {value}\n")

        with pytest.raises(ConfigError, match="parallel_transfers"):
            load_config(path)

    def test_part_size_minimum(self, tmp_config_dir):
        """Test parts smaller than 5 MiB are rejected."""
        path = tmp_config_dir / "config.toml"
        path.write_text("[storage]\npart_size_mb = 4\n")

        with pytest.raises(ConfigError, match="part_size_mb"):
            load_config(path)

    def test_empty_config(self, tmp_config_dir):
        """Test an empty file loads with warnings."""
        path = tmp_config_dir / "empty.toml"
        path.write_text("")

        config, warnings = load_config(path)

        assert not config.is_complete()
        assert any("zpool" in w for w in warnings)
        assert any("bucket" in w for w in warnings)

    def test_example_config_loads(self, tmp_config_dir):
        """Test the generated example is a valid configuration."""
        path = tmp_config_dir / "example.toml"
        path.write_text(generate_example_config())

        config, warnings = load_config(path)

        assert config.global_config.zpool == "lxd"
        assert config.storage.bucket == "lxd-backups"
        assert warnings == []


class TestConfigWarnings:
    """Tests for validate_config."""

    def test_complete_config_has_no_warnings(self):
        """Test a complete default configuration is clean."""
        config = Config(GlobalConfig(zpool="lxd"), StorageConfig(bucket="b"))
        assert validate_config(config) == []

    def test_prefix_with_slash(self):
        """Test a slash in the prefix is reported."""
        config = Config(
            GlobalConfig(zpool="lxd", snapshot_prefix="a/b-"), StorageConfig(bucket="b")
        )
        assert any("prefix" in w for w in validate_config(config))

    def test_timestamp_without_seconds(self):
        """Test a coarse timestamp format is reported."""
        config = Config(
            GlobalConfig(zpool="lxd", timestamp_format="%Y%m%d"),
            StorageConfig(bucket="b"),
        )
        assert any("seconds" in w for w in validate_config(config))

    def test_s3_settings_on_local_backend(self):
        """Test S3 settings are reported as unused for the local backend."""
        config = Config(
            GlobalConfig(zpool="lxd"),
            StorageConfig(backend="local", bucket="/srv/backups", region="eu-west-1"),
        )
        assert any("ignored" in w for w in validate_config(config))
        assert config.storage.backend_options() == {}
