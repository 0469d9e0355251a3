"""
Mirror configuration.

Values come from environment variables with defaults matching the
upstream ChameleonUltra release layout. CLI options override them.
"""

import os
from dataclasses import dataclass, field, replace
from typing import List, Mapping, Optional

DEFAULT_BASE_URL = "https://taichunmin.idv.tw/ChameleonUltra-releases/"
DEFAULT_OWNER = "RfidResearchGroup"
DEFAULT_REPO = "ChameleonUltra"
DEFAULT_VERSION_ASSET = "ultra-dfu-app.zip"
DEFAULT_DIST_DIR = "dist"
GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"

DEFAULT_ASSET_WHITELIST = [
    "chameleon_lite_app_update.zip",
    "chameleon_ultra_app_update.zip",
    "lite-dfu-app.zip",
    "lite-dfu-full.zip",
    "ultra-dfu-app.zip",
    "ultra-dfu-full.zip",
]


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class MirrorConfig:
    """
    Settings for one mirror run.

    Attributes:
        base_url: Public URL the dist directory is served from
        owner: GitHub owner of the upstream repository
        repo: GitHub repository name
        asset_whitelist: Release asset names to mirror
        version_asset: Asset whose application image carries the git version
        dist_dir: Local output directory
        github_token: Optional token for the GitHub API
        api_version: Value for the X-GitHub-Api-Version header
        timeout: HTTP timeout in seconds
    """
    base_url: str = DEFAULT_BASE_URL
    owner: str = DEFAULT_OWNER
    repo: str = DEFAULT_REPO
    asset_whitelist: List[str] = field(default_factory=lambda: list(DEFAULT_ASSET_WHITELIST))
    version_asset: str = DEFAULT_VERSION_ASSET
    dist_dir: str = DEFAULT_DIST_DIR
    github_token: Optional[str] = None
    api_version: str = GITHUB_API_VERSION
    timeout: float = 60.0

    @property
    def releases_url(self) -> str:
        return f"{GITHUB_API_URL}/repos/{self.owner}/{self.repo}/releases"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MirrorConfig":
        """Build a config from environment variables."""
        env = os.environ if environ is None else environ
        config = cls(
            base_url=env.get("BASEURL", DEFAULT_BASE_URL),
            owner=env.get("MIRROR_OWNER", DEFAULT_OWNER),
            repo=env.get("MIRROR_REPO", DEFAULT_REPO),
            version_asset=env.get("MIRROR_VERSION_ASSET", DEFAULT_VERSION_ASSET),
            dist_dir=env.get("MIRROR_DIST", DEFAULT_DIST_DIR),
            github_token=env.get("GITHUB_TOKEN") or None,
        )
        assets = env.get("MIRROR_ASSETS")
        if assets:
            config.asset_whitelist = _split_list(assets)
        return config

    def with_overrides(self, **overrides) -> "MirrorConfig":
        """Return a copy with non-None overrides applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})
