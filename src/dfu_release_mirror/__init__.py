"""
DFU Release Mirror - firmware release mirroring with DFU package inspection

Parses Nordic-style DFU zip packages and mirrors upstream release assets.
"""

__version__ = "0.1.0"

from dfu_release_mirror.dfu_package import (
    ContainerError,
    DfuManifest,
    DfuPackageError,
    DfuPackageParser,
    FormatError,
    ImageDescriptor,
    ImageKind,
    ResolvedImage,
)
from dfu_release_mirror.version_scan import find_version_token

__all__ = [
    "ContainerError",
    "DfuManifest",
    "DfuPackageError",
    "DfuPackageParser",
    "FormatError",
    "ImageDescriptor",
    "ImageKind",
    "ResolvedImage",
    "find_version_token",
    "__version__",
]
