"""
Release mirror pipeline.

Fetches the upstream GitHub release list, downloads whitelisted assets
into a dist directory, reads the git version out of the application DFU
package, and writes dist/manifest.json describing everything mirrored.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import requests

from dfu_release_mirror.core.config import MirrorConfig
from dfu_release_mirror.core.results import (
    MirrorManifest,
    ReleaseAsset,
    ReleaseRecord,
    parse_github_timestamp,
)
from dfu_release_mirror.dfu_package import DfuPackageParser

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "manifest.json"


class MirrorError(Exception):
    """Raised when a mirror run cannot complete."""


def github_headers(config: MirrorConfig) -> Dict[str, str]:
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": config.api_version,
    }
    if config.github_token:
        headers["Authorization"] = f"Bearer {config.github_token}"
    return headers


def fetch_releases(session: requests.Session, config: MirrorConfig) -> List[Dict[str, Any]]:
    """
    Fetch the release list of the configured repository.

    Raises:
        MirrorError: On HTTP failure or a non-list response body.
    """
    url = config.releases_url
    logger.debug(f"GET {url}")
    try:
        response = session.get(url, headers=github_headers(config), timeout=config.timeout)
        response.raise_for_status()
        releases = response.json()
    except (requests.RequestException, ValueError) as exc:
        raise MirrorError(f"Failed to fetch releases from {url}: {exc}") from exc

    if not isinstance(releases, list):
        raise MirrorError(f"Unexpected release list payload from {url}")
    logger.info(f"Found {len(releases)} releases for {config.owner}/{config.repo}")
    return releases


def download_asset(session: requests.Session, url: str, timeout: float = 60.0) -> bytes:
    """Download one asset fully into memory."""
    try:
        response = session.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise MirrorError(f"Failed to download {url}: {exc}") from exc
    return response.content


def write_file(dist_dir: Path, relpath: str, data: bytes) -> Path:
    """Write bytes under dist_dir, creating parent directories."""
    dest = Path(dist_dir) / relpath
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_bytes(data)
    return dest


def asset_url(base_url: str, tag_name: str, asset_name: str) -> str:
    """Public URL of a mirrored asset."""
    return urljoin(base_url, f"{tag_name}/{asset_name}")


def extract_git_version(buf: bytes, asset_name: str) -> Optional[str]:
    """
    Read the git version from the application image of a DFU package.

    Raises:
        MirrorError: If the package carries no application image.
        DfuPackageError: If the package is malformed.
    """
    package = DfuPackageParser(buf)
    if package.get_app_image() is None:
        raise MirrorError(f"Failed to get app image from {asset_name}")
    return package.get_git_version()


class ReleaseMirror:
    """
    Mirror whitelisted release assets and build the published manifest.

    Features:
    - Whitelist filter on asset names
    - Assets stored as <dist>/<tag>/<name>
    - Git version attached from the configured application package
    - Dry-run mode that downloads and parses without writing files
    """

    def __init__(
        self,
        config: MirrorConfig,
        session: Optional[requests.Session] = None,
        dry_run: bool = False,
    ):
        self.config = config
        self.session = session or requests.Session()
        self.dry_run = dry_run
        self.dist_dir = Path(config.dist_dir)

    def _write(self, relpath: str, data: bytes) -> None:
        if self.dry_run:
            logger.debug(f"Dry run, not writing {relpath}")
            return
        write_file(self.dist_dir, relpath, data)

    def mirror_release(self, release: Dict[str, Any]) -> ReleaseRecord:
        """Download the whitelisted assets of one release."""
        try:
            tag_name = release["tag_name"]
            created_at = parse_github_timestamp(release["created_at"])
        except (KeyError, TypeError, ValueError) as exc:
            raise MirrorError(f"Malformed release entry: missing or invalid {exc}") from exc

        record = ReleaseRecord(
            tag_name=tag_name,
            commit=release.get("target_commitish", ""),
            created_at=created_at,
            prerelease=bool(release.get("prerelease", False)),
        )

        for asset in release.get("assets", []):
            try:
                name = asset["name"]
                download_url = asset["browser_download_url"]
            except (KeyError, TypeError) as exc:
                raise MirrorError(f"Malformed asset entry in {tag_name}: missing {exc}") from exc

            if name not in self.config.asset_whitelist:
                logger.debug(f"Skipping {tag_name}/{name}")
                continue

            data = download_asset(self.session, download_url, self.config.timeout)
            relpath = f"{tag_name}/{name}"
            self._write(relpath, data)
            url = asset_url(self.config.base_url, tag_name, name)
            record.add_asset(ReleaseAsset(name=name, size=asset.get("size", len(data)), url=url))
            logger.info(f"Downloaded {url}")

            if name == self.config.version_asset:
                git_version = extract_git_version(data, name)
                if git_version is not None:
                    record.git_version = git_version
                    logger.info(f"{tag_name}: git version {git_version}")
                else:
                    logger.warning(f"{tag_name}: no git version found in {name}")

        return record

    def run(self) -> MirrorManifest:
        """
        Mirror every release and write the manifest.

        Returns:
            The manifest written to <dist>/manifest.json.
        """
        manifest = MirrorManifest()
        for release in fetch_releases(self.session, self.config):
            manifest.releases.append(self.mirror_release(release))

        payload = json.dumps(manifest.to_dict()).encode("utf-8")
        self._write(MANIFEST_FILENAME, payload)
        logger.info(f"Wrote manifest with {len(manifest.releases)} releases")
        return manifest
