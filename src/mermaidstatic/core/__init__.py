"""Scanning, identity and configuration for diagram pre-rendering."""

from .config import ConfigError, RenderConfig, load_config
from .identity import derive_identity
from .metadata import extract_metadata
from .scanner import ContentScanner, ScanError

__all__ = [
    "ConfigError",
    "RenderConfig",
    "load_config",
    "derive_identity",
    "extract_metadata",
    "ContentScanner",
    "ScanError",
]
