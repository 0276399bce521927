"""Teardown configuration.

Settings are layered: dataclass defaults, then an optional YAML file, then
environment variables. CLI options are applied last by the caller.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import yaml

DEFAULT_CONFIG_PATH = Path.home() / ".awsnuke" / "config.yaml"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

_INT_FIELDS = {"timeout", "poll_interval", "instance_concurrency"}
_BOOL_FIELDS = {"dry_run", "stale_listing_is_transient"}
_LIST_FIELDS = {"regions", "include_types", "exclude_types", "extra_transient_markers"}


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Config:
    """Inputs to a teardown run, supplied once at startup.

    Attributes:
        account_id: Expected AWS account ID (optional guard against wrong credentials)
        aws_profile: AWS profile name (optional)
        dry_run: List and wait on dependencies but never delete
        timeout: Seconds allowed for each individual wait loop
        poll_interval: Seconds slept between polls
        regions: Regions used by regional drivers (empty = discover)
        include_types: Only run these resource types (empty = all)
        exclude_types: Skip these resource types
        extra_transient_markers: Additional error markers classified as transient
        stale_listing_is_transient: Treat not-found on a listed resource as transient
        instance_concurrency: Max parallel instance deletions inside one resource type
        audit_dir: Directory for run audit logs (optional)
        log_level: Logging level name
    """

    account_id: Optional[str] = None
    aws_profile: Optional[str] = None
    dry_run: bool = False
    timeout: int = 400
    poll_interval: int = 10
    regions: list[str] = field(default_factory=list)
    include_types: list[str] = field(default_factory=list)
    exclude_types: list[str] = field(default_factory=list)
    extra_transient_markers: list[str] = field(default_factory=list)
    stale_listing_is_transient: bool = True
    instance_concurrency: int = 20
    audit_dir: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load configuration from file and environment.

        Args:
            path: Explicit config file path. Falls back to $AWSNUKE_CONFIG, then
                ~/.awsnuke/config.yaml if it exists.

        Returns:
            Validated Config

        Raises:
            ValueError: If the file is malformed or a value is invalid
            FileNotFoundError: If an explicit path does not exist
        """
        config = cls()

        config_path = path or os.getenv("AWSNUKE_CONFIG")
        if config_path:
            config.apply(cls._read_file(Path(config_path)))
        elif DEFAULT_CONFIG_PATH.exists():
            config.apply(cls._read_file(DEFAULT_CONFIG_PATH))

        config.apply_environment(os.environ)
        config.validate()
        return config

    @staticmethod
    def _read_file(path: Path) -> dict[str, Any]:
        with open(path, "r") as f:
            data = yaml.safe_load(f)

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
        return data

    def apply(self, values: dict[str, Any]) -> None:
        """Overlay values onto this config.

        Keys with a None value are ignored so unset CLI options don't clobber
        lower layers. Values are coerced to the field's type: list fields also
        accept a comma-separated string, integer fields accept numeric strings.

        Raises:
            ValueError: If a key is not a known setting or a value has the wrong type
        """
        known = {f.name for f in fields(self)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

        for key, value in values.items():
            if value is not None:
                setattr(self, key, self._coerce(key, value))

    @classmethod
    def _coerce(cls, key: str, value: Any) -> Any:
        if key in _INT_FIELDS:
            if isinstance(value, bool) or not isinstance(value, (int, str)):
                raise ValueError(f"{key} must be an integer, got {value!r}")
            return cls._parse_int(key, value) if isinstance(value, str) else value

        if key in _BOOL_FIELDS:
            if isinstance(value, bool):
                return value
            if isinstance(value, str) and value.strip().lower() in _TRUE_VALUES | _FALSE_VALUES:
                return value.strip().lower() in _TRUE_VALUES
            raise ValueError(f"{key} must be true or false, got {value!r}")

        if key in _LIST_FIELDS:
            if isinstance(value, str):
                return _split_csv(value)
            if isinstance(value, (list, tuple)) and all(isinstance(item, (str, int)) for item in value):
                return [str(item).strip() for item in value if str(item).strip()]
            raise ValueError(f"{key} must be a list or a comma-separated string, got {value!r}")

        # YAML reads an unquoted account ID as an int
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise ValueError(f"{key} must be a string, got {value!r}")
        value = str(value).strip()
        return value.upper() if key == "log_level" else value

    def apply_environment(self, environ: Any) -> None:
        """Overlay AWSNUKE_* environment variables."""
        if environ.get("AWSNUKE_ACCOUNT_ID"):
            self.account_id = environ["AWSNUKE_ACCOUNT_ID"].strip()
        if environ.get("AWS_PROFILE"):
            self.aws_profile = environ["AWS_PROFILE"].strip()
        if environ.get("AWSNUKE_DRY_RUN"):
            self.dry_run = environ["AWSNUKE_DRY_RUN"].strip().lower() in _TRUE_VALUES
        if environ.get("AWSNUKE_TIMEOUT"):
            self.timeout = self._parse_int("AWSNUKE_TIMEOUT", environ["AWSNUKE_TIMEOUT"])
        if environ.get("AWSNUKE_POLL_INTERVAL"):
            self.poll_interval = self._parse_int("AWSNUKE_POLL_INTERVAL", environ["AWSNUKE_POLL_INTERVAL"])
        if environ.get("AWSNUKE_REGIONS"):
            self.regions = _split_csv(environ["AWSNUKE_REGIONS"])
        if environ.get("AWSNUKE_LOG_LEVEL"):
            self.log_level = environ["AWSNUKE_LOG_LEVEL"].strip().upper()

    @staticmethod
    def _parse_int(name: str, value: str) -> int:
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"{name} must be an integer, got '{value}'")

    def validate(self) -> bool:
        """Validate config invariants.

        Returns:
            True if validation passes

        Raises:
            ValueError: If any validation rule fails
        """
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.instance_concurrency <= 0:
            raise ValueError(f"instance_concurrency must be positive, got {self.instance_concurrency}")

        overlap = set(self.include_types) & set(self.exclude_types)
        if overlap:
            raise ValueError(f"Resource types both included and excluded: {', '.join(sorted(overlap))}")

        return True
