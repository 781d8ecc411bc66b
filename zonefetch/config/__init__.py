"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import HarvestConfig, PipelineSettings, TransferSettings

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "HarvestConfig",
    "PipelineSettings",
    "TransferSettings",
]
