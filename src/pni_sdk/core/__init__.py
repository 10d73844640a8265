"""Configuration and response models."""

from pni_sdk.core.config import Settings, setup_logging
from pni_sdk.core.models import AcqParams, Data, ModInfo, UserCalScore

__all__ = [
    "AcqParams",
    "Data",
    "ModInfo",
    "UserCalScore",
    "Settings",
    "setup_logging",
]
