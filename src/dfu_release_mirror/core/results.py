"""
Result objects for a mirror run.

The published manifest.json is built from these; field names follow the
camelCase layout downstream consumers already read.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def isoformat_utc(value: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with millisecond precision and 'Z'."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_github_timestamp(value: str) -> datetime:
    """Parse a GitHub API timestamp like 2024-01-02T03:04:05Z."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


@dataclass
class ReleaseAsset:
    """One mirrored asset."""
    name: str
    size: int
    url: str

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "size": self.size, "url": self.url}


@dataclass
class ReleaseRecord:
    """
    Summary of one upstream release.

    Attributes:
        tag_name: Release tag (also the dist subdirectory)
        commit: Target commitish of the release
        created_at: Release creation time
        prerelease: Whether GitHub flags the release as a prerelease
        assets: Mirrored assets
        git_version: Version token read from the application firmware
    """
    tag_name: str
    commit: str
    created_at: datetime
    prerelease: bool
    assets: List[ReleaseAsset] = field(default_factory=list)
    git_version: Optional[str] = None

    def add_asset(self, asset: ReleaseAsset) -> None:
        self.assets.append(asset)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = {
            "assets": [asset.to_dict() for asset in self.assets],
            "commit": self.commit,
            "createdAt": isoformat_utc(self.created_at),
            "prerelease": self.prerelease,
            "tagName": self.tag_name,
        }
        if self.git_version is not None:
            data["gitVersion"] = self.git_version
        return data


@dataclass
class MirrorManifest:
    """Top-level manifest written to dist/manifest.json."""
    releases: List[ReleaseRecord] = field(default_factory=list)
    last_modified_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "releases": [release.to_dict() for release in self.releases],
            "lastModifiedAt": isoformat_utc(self.last_modified_at),
        }

    def to_summary(self) -> str:
        """
        Generate a human-readable summary string.

        Suitable for CLI output or simple logging.
        """
        lines = [f"Releases: {len(self.releases)}"]
        for release in self.releases:
            flag = " (prerelease)" if release.prerelease else ""
            version = f" [{release.git_version}]" if release.git_version else ""
            lines.append(f"  {release.tag_name}{flag}{version}: {len(release.assets)} assets")
        return "\n".join(lines)
