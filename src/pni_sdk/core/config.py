"""Application configuration using pydantic-settings."""

import logging
import sys

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from pni_sdk.protocol.constants import (
    DEFAULT_BAUD,
    MAX_CHECKSUM_FAILURES,
    REQUEST_TIMEOUT,
    RETRY_ATTEMPTS,
    RETRY_DELAY,
)
from pni_sdk.protocol.frames import DeviceFamily
from pni_sdk.protocol.handler import TransactionConfig


class Settings(BaseSettings):
    """Driver settings loaded from environment variables.

    All settings can be overridden via environment variables
    prefixed with PNI_ (e.g., PNI_SERIAL_PORT).
    """

    serial_port: str = "/dev/ttyUSB0"
    serial_baud: int = DEFAULT_BAUD
    device_family: DeviceFamily = DeviceFamily.TARGETPOINT3
    request_timeout: float = Field(REQUEST_TIMEOUT, gt=0)
    retry_attempts: int = Field(RETRY_ATTEMPTS, ge=1)
    retry_delay: float = Field(RETRY_DELAY, ge=0)
    max_checksum_failures: int = Field(MAX_CHECKSUM_FAILURES, ge=1)
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="PNI_")

    def transaction_config(self) -> TransactionConfig:
        """Retry and timeout policy described by these settings."""
        return TransactionConfig(
            timeout=self.request_timeout,
            attempts=self.retry_attempts,
            retry_delay=self.retry_delay,
        )


def setup_logging(level: str = "INFO") -> None:
    """Configure application logging.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )
