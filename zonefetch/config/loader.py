"""Configuration loading helpers for zonefetch."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from .models import HarvestConfig

CONFIG_FILENAME = "config.yaml"

# Environment variable -> (section, field). Names are matched case-insensitively.
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "zf_ftp_host": ("transfer", "host"),
    "zf_ftp_port": ("transfer", "port"),
    "zf_user": ("transfer", "username"),
    "zf_pass": ("transfer", "password"),
    "zf_remote_path": ("transfer", "remote_path"),
    "zf_workers": ("pipeline", "workers"),
    "zf_output": ("pipeline", "output_path"),
    "zf_origin": ("pipeline", "default_origin"),
}


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


def env_overrides(environ: Mapping[str, str]) -> dict[str, dict[str, Any]]:
    """Translate recognised environment variables into a partial config payload."""

    lowered = {key.lower(): value for key, value in environ.items()}
    payload: dict[str, dict[str, Any]] = {}
    for key, (section, field) in ENV_OVERRIDES.items():
        value = lowered.get(key)
        if value is None or value == "":
            continue
        payload.setdefault(section, {})[field] = value
    return payload


def merge_payload(base: dict[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge_payload(dict(merged[key]), value)
        else:
            merged[key] = value
    return merged


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get("ZONEFETCH_HOME")
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def config_path(self) -> Path:
        return self.data_dir / CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO, environment overrides and validation."""

    def __init__(
        self,
        locator: ConfigLocator | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.locator = locator or ConfigLocator()
        self.environ = os.environ if environ is None else environ

    def load_file_payload(self) -> dict[str, Any]:
        path = self.locator.config_path()
        if path.exists():
            return _read_file(path)
        return {}

    def load(self, overrides: Mapping[str, Any] | None = None) -> HarvestConfig:
        """Return the effective configuration: file < environment < explicit overrides."""

        payload = merge_payload(self.load_file_payload(), env_overrides(self.environ))
        if overrides:
            payload = merge_payload(payload, overrides)
        return HarvestConfig.model_validate(payload)

    def save(self, config: HarvestConfig) -> Path:
        path = self.locator.config_path()
        payload = config.model_dump(mode="json")
        payload["transfer"]["password"] = config.transfer.password.get_secret_value()
        _write_file(path, payload)
        return path

    def ensure_default(self) -> Path:
        """Write a default configuration file unless one already exists."""

        path = self.locator.config_path()
        if not path.exists():
            self.save(HarvestConfig())
        return path


__all__ = [
    "CONFIG_FILENAME",
    "ConfigLocator",
    "ConfigRepository",
    "ENV_OVERRIDES",
    "env_overrides",
    "merge_payload",
]
