"""Tests for Config loading and validation."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from awsnuke.config import Config


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path: Path):
    """Isolate tests from the caller's environment and home config."""
    for name in (
        "AWSNUKE_CONFIG",
        "AWSNUKE_ACCOUNT_ID",
        "AWS_PROFILE",
        "AWSNUKE_DRY_RUN",
        "AWSNUKE_TIMEOUT",
        "AWSNUKE_POLL_INTERVAL",
        "AWSNUKE_REGIONS",
        "AWSNUKE_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    with patch("awsnuke.config.DEFAULT_CONFIG_PATH", tmp_path / "missing.yaml"):
        yield


def write_config(path: Path, data: dict) -> str:
    with open(path, "w") as f:
        yaml.dump(data, f)
    return str(path)


class TestConfigDefaults:
    """Tests for default values."""

    def test_defaults(self) -> None:
        config = Config()

        assert config.timeout == 400
        assert config.poll_interval == 10
        assert config.dry_run is False
        assert config.regions == []
        assert config.stale_listing_is_transient is True
        assert config.instance_concurrency == 20

    def test_load_without_file_uses_defaults(self) -> None:
        config = Config.load()

        assert config.timeout == 400
        assert config.account_id is None


class TestConfigLoad:
    """Tests for layered loading."""

    def test_load_explicit_file(self, tmp_path: Path) -> None:
        path = write_config(
            tmp_path / "config.yaml",
            {"account_id": "123456789012", "timeout": 600, "regions": ["us-east-1"], "dry_run": True},
        )

        config = Config.load(path)

        assert config.account_id == "123456789012"
        assert config.timeout == 600
        assert config.regions == ["us-east-1"]
        assert config.dry_run is True

    def test_load_from_env_path(self, tmp_path: Path, monkeypatch) -> None:
        path = write_config(tmp_path / "env.yaml", {"poll_interval": 5})
        monkeypatch.setenv("AWSNUKE_CONFIG", path)

        assert Config.load().poll_interval == 5

    def test_load_default_path_when_present(self, tmp_path: Path) -> None:
        path = tmp_path / "default.yaml"
        write_config(path, {"timeout": 900})

        with patch("awsnuke.config.DEFAULT_CONFIG_PATH", path):
            assert Config.load().timeout == 900

    def test_empty_file_is_allowed(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert Config.load(str(path)).timeout == 400

    def test_non_mapping_file_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ValueError, match="must contain a mapping"):
            Config.load(str(path))

    def test_unknown_keys_rejected(self, tmp_path: Path) -> None:
        path = write_config(tmp_path / "config.yaml", {"timeoutt": 5})

        with pytest.raises(ValueError, match="Unknown config keys: timeoutt"):
            Config.load(path)

    def test_missing_explicit_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            Config.load(str(tmp_path / "nope.yaml"))

    def test_environment_overrides_file(self, tmp_path: Path, monkeypatch) -> None:
        path = write_config(tmp_path / "config.yaml", {"timeout": 600, "regions": ["us-east-1"]})
        monkeypatch.setenv("AWSNUKE_TIMEOUT", "120")
        monkeypatch.setenv("AWSNUKE_REGIONS", "eu-west-1, eu-central-1")
        monkeypatch.setenv("AWSNUKE_DRY_RUN", "yes")
        monkeypatch.setenv("AWSNUKE_LOG_LEVEL", "debug")
        monkeypatch.setenv("AWS_PROFILE", "sandbox")

        config = Config.load(path)

        assert config.timeout == 120
        assert config.regions == ["eu-west-1", "eu-central-1"]
        assert config.dry_run is True
        assert config.log_level == "DEBUG"
        assert config.aws_profile == "sandbox"

    def test_invalid_integer_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("AWSNUKE_POLL_INTERVAL", "ten")

        with pytest.raises(ValueError, match="AWSNUKE_POLL_INTERVAL must be an integer"):
            Config.load()


class TestConfigApply:
    """Tests for Config.apply."""

    def test_none_values_ignored(self) -> None:
        config = Config(timeout=50)

        config.apply({"timeout": None, "dry_run": True})

        assert config.timeout == 50
        assert config.dry_run is True

    def test_numeric_string_coerced(self, tmp_path: Path) -> None:
        path = write_config(tmp_path / "config.yaml", {"timeout": "30", "poll_interval": "5"})

        config = Config.load(path)

        assert config.timeout == 30
        assert config.poll_interval == 5

    def test_non_integer_rejected(self, tmp_path: Path) -> None:
        """Test a bad timeout raises ValueError so the CLI can exit cleanly."""
        path = write_config(tmp_path / "config.yaml", {"timeout": "thirty"})

        with pytest.raises(ValueError, match="timeout must be an integer"):
            Config.load(path)

    @pytest.mark.parametrize("value", [1.5, True, [30]])
    def test_wrong_integer_types_rejected(self, value) -> None:
        with pytest.raises(ValueError, match="instance_concurrency must be an integer"):
            Config().apply({"instance_concurrency": value})

    def test_region_string_split(self, tmp_path: Path) -> None:
        """Test a bare region string is not iterated character by character."""
        path = write_config(tmp_path / "config.yaml", {"regions": "us-east-1", "include_types": "S3Buckets, SQSQueues"})

        config = Config.load(path)

        assert config.regions == ["us-east-1"]
        assert config.include_types == ["S3Buckets", "SQSQueues"]

    def test_mapping_for_list_rejected(self) -> None:
        with pytest.raises(ValueError, match="regions must be a list"):
            Config().apply({"regions": {"us-east-1": True}})

    def test_boolean_strings(self) -> None:
        config = Config()

        config.apply({"dry_run": "yes", "stale_listing_is_transient": "off"})

        assert config.dry_run is True
        assert config.stale_listing_is_transient is False

    def test_invalid_boolean_rejected(self) -> None:
        with pytest.raises(ValueError, match="dry_run must be true or false"):
            Config().apply({"dry_run": "maybe"})

    def test_numeric_account_id_kept_as_string(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("account_id: 123456789012\nlog_level: debug\n")

        config = Config.load(str(path))

        assert config.account_id == "123456789012"
        assert config.log_level == "DEBUG"


class TestConfigValidate:
    """Tests for Config.validate."""

    @pytest.mark.parametrize("field_name", ["timeout", "poll_interval", "instance_concurrency"])
    def test_non_positive_values_rejected(self, field_name: str) -> None:
        config = Config()
        setattr(config, field_name, 0)

        with pytest.raises(ValueError, match=f"{field_name} must be positive"):
            config.validate()

    def test_include_exclude_overlap_rejected(self) -> None:
        config = Config(include_types=["S3Buckets"], exclude_types=["S3Buckets"])

        with pytest.raises(ValueError, match="both included and excluded: S3Buckets"):
            config.validate()

    def test_valid_config(self) -> None:
        assert Config().validate() is True
