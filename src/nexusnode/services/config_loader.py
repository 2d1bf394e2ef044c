"""Configuration loader for nexusnode."""

from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from nexusnode.errors import InstallerError
from nexusnode.models import InstallerConfig


class ConfigLoader:
    """Loads YAML configuration files into InstallerConfig overrides."""

    SUPPORTED_KEYS = {item.name for item in fields(InstallerConfig)} | {"verbose"}
    POSITIVE_INT_KEYS = ("fetch_attempts", "lock_max_polls", "max_prompt_attempts", "min_free_bytes")
    NON_NEGATIVE_NUMBER_KEYS = (
        "download_connect_timeout",
        "download_total_timeout",
        "fetch_backoff_seconds",
        "lock_poll_interval",
        "apt_update_retries",
    )

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise InstallerError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise InstallerError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise InstallerError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise InstallerError(f"Unknown configuration keys: {unknown_list}")

        if "probe_hosts" in parsed:
            hosts = parsed["probe_hosts"]
            if not isinstance(hosts, list) or not all(isinstance(host, str) for host in hosts):
                raise InstallerError("'probe_hosts' must be a list of URLs.")
            parsed["probe_hosts"] = tuple(hosts)

        return parsed

    def build_config(self, values: Dict[str, Any], **overrides) -> InstallerConfig:
        merged = {key: value for key, value in values.items() if key != "verbose"}
        merged.update({key: value for key, value in overrides.items() if value is not None})
        try:
            config = InstallerConfig(**merged)
        except TypeError as exc:
            raise InstallerError(f"Invalid configuration: {exc}") from exc

        self._validate_limits(config)
        return config

    def _validate_limits(self, config: InstallerConfig):
        for key in self.POSITIVE_INT_KEYS:
            value = getattr(config, key)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise InstallerError(f"'{key}' must be an integer of at least 1, got {value!r}.")

        for key in self.NON_NEGATIVE_NUMBER_KEYS:
            value = getattr(config, key)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                raise InstallerError(f"'{key}' must be a non-negative number, got {value!r}.")
