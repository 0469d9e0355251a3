"""
Core module for DFU Release Mirror.

This module provides the single source of truth for:
- Mirror configuration (config.py)
- Option value parsing (parsing.py)
- Manifest result objects (results.py)

The CLI should call into this module rather than implementing its own logic.
"""

from .config import MirrorConfig, DEFAULT_ASSET_WHITELIST
from .parsing import parse_image_kinds, parse_whitelist
from .results import MirrorManifest, ReleaseAsset, ReleaseRecord

__all__ = [
    # Config
    "MirrorConfig",
    "DEFAULT_ASSET_WHITELIST",
    # Parsing
    "parse_image_kinds",
    "parse_whitelist",
    # Results
    "MirrorManifest",
    "ReleaseAsset",
    "ReleaseRecord",
]
