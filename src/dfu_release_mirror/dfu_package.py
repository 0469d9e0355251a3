"""
Nordic-style DFU package parser.

A DFU package is a zip container holding ``manifest.json`` plus paired
init packet (``.dat``) and firmware (``.bin``) entries. This module
provides:
- Lazy, cached decoding of the container and its manifest
- Resolution of image kinds to their header/body bytes
- Recovery of the git version string embedded in the application image
"""

from __future__ import annotations

import io
import json
import logging
import zipfile
import zlib
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Union

from dfu_release_mirror.version_scan import find_version_token

logger = logging.getLogger(__name__)

MANIFEST_ENTRY = "manifest.json"
LEGACY_METADATA_KEYS = ("dfu_version",)


class DfuPackageError(Exception):
    """Base exception for DFU package parsing."""


class ContainerError(DfuPackageError, zipfile.BadZipFile):
    """Raised when the input bytes are not a readable zip container."""


class FormatError(DfuPackageError):
    """Raised when a valid zip container is not a proper DFU package."""


class ImageKind(Enum):
    """Firmware stack component an image targets."""
    APPLICATION = "application"
    SOFTDEVICE = "softdevice"
    BOOTLOADER = "bootloader"
    SOFTDEVICE_BOOTLOADER = "softdevice_bootloader"


# Manifest keys are looked up through this table, never by attribute
IMAGE_KIND_BY_KEY: Dict[str, ImageKind] = {kind.value: kind for kind in ImageKind}

BASE_IMAGE_KINDS = (
    ImageKind.SOFTDEVICE,
    ImageKind.BOOTLOADER,
    ImageKind.SOFTDEVICE_BOOTLOADER,
)
APP_IMAGE_KINDS = (ImageKind.APPLICATION,)

KindLike = Union[ImageKind, str]


def to_image_kind(value: KindLike) -> ImageKind:
    """Coerce an ImageKind or its manifest key to ImageKind."""
    if isinstance(value, ImageKind):
        return value
    try:
        return IMAGE_KIND_BY_KEY[value]
    except KeyError:
        raise ValueError(
            f"Unknown image kind '{value}'. Valid kinds: {', '.join(IMAGE_KIND_BY_KEY)}"
        ) from None


@dataclass(frozen=True)
class ImageDescriptor:
    """Archive entry names for one image."""

    dat_file: str
    bin_file: str


@dataclass(frozen=True)
class DfuManifest:
    """Decoded ``manifest`` object of a DFU package."""

    images: Mapping[ImageKind, ImageDescriptor]
    dfu_version: Optional[float] = None

    def get(self, kind: ImageKind) -> Optional[ImageDescriptor]:
        return self.images.get(kind)

    def __contains__(self, kind: object) -> bool:
        return kind in self.images

    def kinds(self) -> List[ImageKind]:
        """Kinds present, in enumeration order."""
        return [kind for kind in ImageKind if kind in self.images]


@dataclass(frozen=True)
class ResolvedImage:
    """Init packet and firmware bytes for one image kind."""

    kind: ImageKind
    header: bytes
    body: bytes


def _descriptor_from_json(key: str, value: object) -> ImageDescriptor:
    if not isinstance(value, dict):
        raise FormatError(f"Manifest entry '{key}' is not an object")

    names = {}
    for field_name in ("dat_file", "bin_file"):
        name = value.get(field_name)
        if not isinstance(name, str) or not name:
            raise FormatError(f"Manifest entry '{key}' has no valid {field_name}")
        names[field_name] = name
    return ImageDescriptor(**names)


def decode_manifest(text: str) -> DfuManifest:
    """
    Decode ``manifest.json`` text into a DfuManifest.

    Raises:
        FormatError: If the document is not JSON, lacks a ``manifest``
            object, or names an unknown image kind.
    """
    try:
        document = json.loads(text)
    except ValueError as exc:
        raise FormatError(f"Malformed {MANIFEST_ENTRY}: {exc}") from exc

    if not isinstance(document, dict) or not isinstance(document.get("manifest"), dict):
        raise FormatError(f"{MANIFEST_ENTRY} has no 'manifest' object, is this a proper DFU package?")

    images: Dict[ImageKind, ImageDescriptor] = {}
    dfu_version = None
    for key, value in document["manifest"].items():
        if key in LEGACY_METADATA_KEYS:
            dfu_version = value if isinstance(value, (int, float)) else None
            continue
        kind = IMAGE_KIND_BY_KEY.get(key)
        if kind is None:
            raise FormatError(f"Unknown image kind '{key}' in {MANIFEST_ENTRY}")
        images[kind] = _descriptor_from_json(key, value)

    return DfuManifest(images=MappingProxyType(images), dfu_version=dfu_version)


class DfuPackageParser:
    """
    Parser for one in-memory DFU package.

    The zip container and manifest are decoded on first use and cached.
    Image bytes are read fresh on every call.
    """

    def __init__(self, buf: bytes):
        self._buf = bytes(buf)
        self._zip: Optional[zipfile.ZipFile] = None
        self._manifest: Optional[DfuManifest] = None

    def _archive(self) -> zipfile.ZipFile:
        if self._zip is None:
            try:
                self._zip = zipfile.ZipFile(io.BytesIO(self._buf))
            except zipfile.BadZipFile as exc:
                raise ContainerError(f"Not a zip container: {exc}") from exc
            logger.debug(f"Opened DFU container ({len(self._buf)} bytes, {len(self._zip.namelist())} entries)")
        return self._zip

    def _read_entry(self, name: str) -> bytes:
        archive = self._archive()
        try:
            return archive.read(name)
        except KeyError:
            raise FormatError(f"Failed to read {name} from DFU package") from None
        except (zipfile.BadZipFile, zlib.error, EOFError) as exc:
            raise ContainerError(f"Corrupt entry {name}: {exc}") from exc

    def get_manifest(self) -> DfuManifest:
        """
        Return the package manifest, decoding it on first call.

        Raises:
            ContainerError: If the buffer is not a zip container.
            FormatError: If ``manifest.json`` is missing or malformed.
        """
        archive = self._archive()
        if self._manifest is None:
            if MANIFEST_ENTRY not in archive.namelist():
                raise FormatError("Unable to find manifest, is this a proper DFU package?")
            raw = self._read_entry(MANIFEST_ENTRY)
            try:
                text = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise FormatError(f"{MANIFEST_ENTRY} is not UTF-8 text") from exc
            self._manifest = decode_manifest(text)
            logger.debug(f"Manifest kinds: {[kind.value for kind in self._manifest.kinds()]}")
        return self._manifest

    def image_kinds(self) -> List[ImageKind]:
        """Image kinds carried by this package."""
        return self.get_manifest().kinds()

    def get_image(self, candidates: Iterable[KindLike]) -> Optional[ResolvedImage]:
        """
        Resolve the first candidate kind present in the manifest.

        Args:
            candidates: Image kinds in preference order.

        Returns:
            ResolvedImage for the first match, or None if the package
            carries none of the candidates.

        Raises:
            FormatError: If a matched kind names an entry missing from
                the archive.
            ContainerError: If an entry fails to decompress.
        """
        kinds = [to_image_kind(candidate) for candidate in candidates]
        manifest = self.get_manifest()
        for kind in kinds:
            descriptor = manifest.get(kind)
            if descriptor is None:
                continue
            header = self._read_entry(descriptor.dat_file)
            body = self._read_entry(descriptor.bin_file)
            return ResolvedImage(kind=kind, header=header, body=body)
        return None

    def get_base_image(self) -> Optional[ResolvedImage]:
        return self.get_image(BASE_IMAGE_KINDS)

    def get_app_image(self) -> Optional[ResolvedImage]:
        return self.get_image(APP_IMAGE_KINDS)

    def get_git_version(self) -> Optional[str]:
        """Git version embedded in the application image, if any."""
        image = self.get_app_image()
        if image is None:
            return None
        return find_version_token(image.body)
