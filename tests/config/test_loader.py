from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from zonefetch.config import ConfigRepository
from zonefetch.config.loader import env_overrides, merge_payload


def test_ensure_default_writes_yaml(temp_config_repository: ConfigRepository) -> None:
    path = temp_config_repository.ensure_default()
    assert path.name == "config.yaml"
    payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert payload["pipeline"]["workers"] == 5
    assert payload["transfer"]["remote_path"] == "/zonefiles"


def test_file_values_are_loaded(temp_config_repository: ConfigRepository) -> None:
    path = temp_config_repository.locator.config_path()
    path.write_text(
        yaml.safe_dump({"transfer": {"host": "ftp.example.net"}, "pipeline": {"workers": 3}}),
        encoding="utf-8",
    )
    config = temp_config_repository.load()
    assert config.transfer.host == "ftp.example.net"
    assert config.pipeline.workers == 3


def test_environment_overrides_file(temp_config_repository: ConfigRepository) -> None:
    temp_config_repository.locator.config_path().write_text(
        yaml.safe_dump({"transfer": {"host": "file.example.net", "username": "file"}}),
        encoding="utf-8",
    )
    repository = ConfigRepository(
        temp_config_repository.locator,
        environ={"ZF_FTP_HOST": "env.example.net", "zf_pass": "hunter2", "zf_workers": "8", "zf_output": "zones.txt"},
    )
    config = repository.load()
    assert config.transfer.host == "env.example.net"
    assert config.transfer.username == "file"
    assert config.transfer.password.get_secret_value() == "hunter2"
    assert config.pipeline.workers == 8
    assert config.pipeline.output_path == Path("zones.txt")


def test_explicit_overrides_win(temp_config_repository: ConfigRepository) -> None:
    repository = ConfigRepository(temp_config_repository.locator, environ={"zf_workers": "8"})
    config = repository.load({"pipeline": {"workers": 2}})
    assert config.pipeline.workers == 2


def test_invalid_environment_value_fails_validation(temp_config_repository: ConfigRepository) -> None:
    repository = ConfigRepository(temp_config_repository.locator, environ={"zf_workers": "lots"})
    with pytest.raises(ValidationError):
        repository.load()


def test_save_round_trips_password(temp_config_repository: ConfigRepository) -> None:
    config = temp_config_repository.load({"transfer": {"host": "h", "password": "pw"}})
    temp_config_repository.save(config)
    reloaded = temp_config_repository.load()
    assert reloaded.transfer.password.get_secret_value() == "pw"


def test_env_overrides_ignore_unknown_and_empty() -> None:
    assert env_overrides({"zf_user": "", "OTHER": "x", "zf_remote_path": "/pub"}) == {
        "transfer": {"remote_path": "/pub"}
    }


def test_merge_payload_is_deep() -> None:
    merged = merge_payload({"transfer": {"host": "a", "port": 21}}, {"transfer": {"host": "b"}})
    assert merged == {"transfer": {"host": "b", "port": 21}}
