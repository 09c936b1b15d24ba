"""Shared utilities for swapbridge services."""

from .config import load_yaml_config
from .mqtt import MQTTConfig, TLSCredentials, encode_payload, parse_address
from .logging import setup_logging

__all__ = [
    "load_yaml_config",
    "MQTTConfig",
    "TLSCredentials",
    "encode_payload",
    "parse_address",
    "setup_logging",
]
