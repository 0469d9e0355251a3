"""
Centralized parsing helpers for CLI option values.

The CLI wraps these and converts ValueError to typer.BadParameter.
"""

from typing import List, Optional

from dfu_release_mirror.dfu_package import IMAGE_KIND_BY_KEY, ImageKind


def parse_image_kinds(value: str) -> List[ImageKind]:
    """
    Parse a comma-separated list of image kinds.

    Accepts manifest keys in any case, with '-' in place of '_':
        - "application"
        - "softdevice,bootloader"
        - "SoftDevice-Bootloader"

    Returns:
        Image kinds in the given order.

    Raises:
        ValueError: If the list is empty or names an unknown kind.
    """
    kinds = []
    for item in value.split(","):
        key = item.strip().lower().replace("-", "_")
        if not key:
            continue
        kind = IMAGE_KIND_BY_KEY.get(key)
        if kind is None:
            raise ValueError(
                f"Invalid image kind '{item.strip()}'. Use one of: {', '.join(IMAGE_KIND_BY_KEY)}."
            )
        kinds.append(kind)

    if not kinds:
        raise ValueError("At least one image kind is required.")
    return kinds


def parse_whitelist(value: Optional[str]) -> Optional[List[str]]:
    """Parse a comma-separated asset name list; None when empty."""
    if value is None:
        return None
    names = [name.strip() for name in value.split(",") if name.strip()]
    return names or None
