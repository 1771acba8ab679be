"""Common utilities for s3rpm."""

from .logger import setup_logger, get_logger
from .config import PublishConfig, load_config, load_typed_config

__all__ = [
    "PublishConfig",
    "get_logger",
    "load_config",
    "load_typed_config",
    "setup_logger",
]
