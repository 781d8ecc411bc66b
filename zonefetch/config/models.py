"""Pydantic models used across the zonefetch configuration flow."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

DEFAULT_REMOTE_PATH = "/zonefiles"
DEFAULT_WORKERS = 5
MAX_WORKERS = 64


class TransferSettings(BaseModel):
    """Where the zone files live and how to log in."""

    host: str = ""
    port: int = 21
    username: str = "anonymous"
    password: SecretStr = Field(default=SecretStr(""))
    remote_path: str = DEFAULT_REMOTE_PATH
    timeout: float = Field(default=60.0, description="Socket timeout for every FTP call, in seconds.")
    passive: bool = True

    @field_validator("host", mode="before")
    @classmethod
    def _strip_host(cls, value: Any) -> str:
        return str(value or "").strip()

    @field_validator("remote_path", mode="before")
    @classmethod
    def _normalise_remote_path(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            return DEFAULT_REMOTE_PATH
        if not text.startswith("/"):
            text = "/" + text
        return text.rstrip("/") or "/"

    @model_validator(mode="after")
    def _validate_numbers(self) -> "TransferSettings":
        if not 0 < self.port < 65536:
            raise ValueError("port must be between 1 and 65535")
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        return self


class PipelineSettings(BaseModel):
    """Knobs of the retrieval-and-parse pipeline; fixed for the duration of a run."""

    workers: int = DEFAULT_WORKERS
    queue_size: int = Field(default=0, description="Job queue bound; 0 means workers * 2.")
    output_buffer: int = 10_000
    output_path: Path = Field(default=Path("results.txt"))
    prefer_compressed: bool = True
    largest_first: bool = True
    dedupe_listing: bool = True
    compressed_suffix: str = ".gz"
    default_origin: str = ""
    origin_from_filename: bool = False
    deadline_seconds: float | None = None

    @field_validator("output_path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("compressed_suffix", mode="before")
    @classmethod
    def _coerce_suffix(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("compressed_suffix cannot be empty")
        return text if text.startswith(".") else f".{text}"

    @model_validator(mode="after")
    def _validate_bounds(self) -> "PipelineSettings":
        if not 1 <= self.workers <= MAX_WORKERS:
            raise ValueError(f"workers must be between 1 and {MAX_WORKERS}")
        if self.queue_size < 0:
            raise ValueError("queue_size must be >= 0")
        if self.output_buffer < 0:
            raise ValueError("output_buffer must be >= 0")
        if self.deadline_seconds is not None and self.deadline_seconds <= 0:
            raise ValueError("deadline_seconds must be > 0 when set")
        return self

    def effective_queue_size(self) -> int:
        return self.queue_size or self.workers * 2


class HarvestConfig(BaseModel):
    """Top level configuration document."""

    transfer: TransferSettings = Field(default_factory=TransferSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)

    def resolved_output_path(self, base_dir: Path) -> Path:
        """Return the output path, relative paths anchored at ``base_dir``."""

        output = self.pipeline.output_path
        if not output.is_absolute():
            return (base_dir / output).resolve()
        return output

    def masked_dump(self) -> dict[str, Any]:
        payload = self.model_dump(mode="json")
        if self.transfer.password.get_secret_value():
            payload["transfer"]["password"] = "********"
        else:
            payload["transfer"]["password"] = ""
        return payload


__all__ = [
    "DEFAULT_REMOTE_PATH",
    "DEFAULT_WORKERS",
    "HarvestConfig",
    "MAX_WORKERS",
    "PipelineSettings",
    "TransferSettings",
]
