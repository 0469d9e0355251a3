"""Tests for core config, parsing and result helpers."""

from datetime import datetime, timezone

import pytest

from dfu_release_mirror.core.config import DEFAULT_ASSET_WHITELIST, MirrorConfig
from dfu_release_mirror.core.parsing import parse_image_kinds, parse_whitelist
from dfu_release_mirror.core.results import (
    MirrorManifest,
    ReleaseAsset,
    ReleaseRecord,
    isoformat_utc,
    parse_github_timestamp,
)
from dfu_release_mirror.dfu_package import ImageKind


class TestMirrorConfig:

    def test_defaults_from_empty_env(self):
        config = MirrorConfig.from_env({})
        assert config.base_url == "https://taichunmin.idv.tw/ChameleonUltra-releases/"
        assert config.asset_whitelist == DEFAULT_ASSET_WHITELIST
        assert config.releases_url == "https://api.github.com/repos/RfidResearchGroup/ChameleonUltra/releases"
        assert config.github_token is None

    def test_env_overrides(self):
        config = MirrorConfig.from_env({
            "BASEURL": "https://example.org/fw/",
            "MIRROR_ASSETS": "a.zip, b.zip,,",
            "MIRROR_DIST": "/tmp/out",
            "GITHUB_TOKEN": "tok",
        })
        assert config.base_url == "https://example.org/fw/"
        assert config.asset_whitelist == ["a.zip", "b.zip"]
        assert config.dist_dir == "/tmp/out"
        assert config.github_token == "tok"

    def test_with_overrides_ignores_none(self):
        config = MirrorConfig().with_overrides(dist_dir="out", base_url=None)
        assert config.dist_dir == "out"
        assert config.base_url == MirrorConfig().base_url


class TestParsing:

    def test_parse_image_kinds_order_and_aliases(self):
        assert parse_image_kinds("SoftDevice-Bootloader, application") == [
            ImageKind.SOFTDEVICE_BOOTLOADER,
            ImageKind.APPLICATION,
        ]

    def test_parse_image_kinds_invalid(self):
        with pytest.raises(ValueError):
            parse_image_kinds("application,modem")

        with pytest.raises(ValueError):
            parse_image_kinds(" , ")

    def test_parse_whitelist(self):
        assert parse_whitelist(None) is None
        assert parse_whitelist("") is None
        assert parse_whitelist("x.zip,y.zip") == ["x.zip", "y.zip"]


class TestResults:

    def test_timestamp_round_trip_format(self):
        created = parse_github_timestamp("2024-01-02T03:04:05Z")
        assert created == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert isoformat_utc(created) == "2024-01-02T03:04:05.000Z"

    def test_release_record_omits_unknown_git_version(self):
        record = ReleaseRecord(
            tag_name="v2.0.0",
            commit="main",
            created_at=datetime(2024, 1, 2, tzinfo=timezone.utc),
            prerelease=False,
        )
        assert "gitVersion" not in record.to_dict()

        record.git_version = "v2.0.0-5-gabc"
        record.add_asset(ReleaseAsset(name="a.zip", size=3, url="https://x/v2.0.0/a.zip"))
        data = record.to_dict()
        assert data["gitVersion"] == "v2.0.0-5-gabc"
        assert data["tagName"] == "v2.0.0"
        assert data["assets"] == [{"name": "a.zip", "size": 3, "url": "https://x/v2.0.0/a.zip"}]

    def test_manifest_summary(self):
        manifest = MirrorManifest(
            releases=[
                ReleaseRecord("dev", "main", datetime(2024, 5, 1, tzinfo=timezone.utc), True, git_version="v2.1.0"),
            ],
            last_modified_at=datetime(2024, 5, 2, 12, 0, 0, 250000, tzinfo=timezone.utc),
        )
        assert manifest.to_dict()["lastModifiedAt"] == "2024-05-02T12:00:00.250Z"
        summary = manifest.to_summary()
        assert "dev (prerelease) [v2.1.0]: 0 assets" in summary
