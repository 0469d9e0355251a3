"""Tests for the typer CLI."""

import io
import json
import zipfile
from pathlib import Path

import pytest
import requests
import typer
from typer.testing import CliRunner

from dfu_release_mirror import cli
from dfu_release_mirror.cli import app, parse_image_kinds
from dfu_release_mirror.dfu_package import ImageKind
from dfu_release_mirror.mirror import ReleaseMirror

runner = CliRunner()


def _write_package(path, manifest, files):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        zf.writestr("manifest.json", json.dumps({"manifest": manifest}))
        for name, data in files.items():
            zf.writestr(name, data)
    path.write_bytes(buf.getvalue())
    return str(path)


@pytest.fixture
def app_package(tmp_path):
    return _write_package(
        tmp_path / "ultra-dfu-app.zip",
        {"application": {"bin_file": "application.bin", "dat_file": "application.dat"}},
        {"application.bin": b"\x00v2.0.0\x00\x00v2.0.0-3-gabc\x00", "application.dat": b"\x09\x08"},
    )


@pytest.fixture
def full_package(tmp_path):
    return _write_package(
        tmp_path / "ultra-dfu-full.zip",
        {"softdevice_bootloader": {"bin_file": "sd_bl.bin", "dat_file": "sd_bl.dat"}},
        {"sd_bl.bin": b"\xBB" * 32, "sd_bl.dat": b"\x01"},
    )


def test_parse_image_kinds_wrapper_raises_bad_parameter():
    assert parse_image_kinds("bootloader") == [ImageKind.BOOTLOADER]
    with pytest.raises(typer.BadParameter):
        parse_image_kinds("nope")


def test_version_prints_git_version(app_package):
    result = runner.invoke(app, ["version", app_package])
    assert result.exit_code == 0
    assert result.stdout.strip().splitlines()[-1] == "v2.0.0"


def test_version_without_app_image_exits_1(full_package):
    result = runner.invoke(app, ["version", full_package])
    assert result.exit_code == 1


def test_version_missing_file_exits_1(tmp_path):
    result = runner.invoke(app, ["version", str(tmp_path / "missing.zip")])
    assert result.exit_code == 1


def test_inspect_json(app_package):
    result = runner.invoke(app, ["inspect", app_package, "--json", "--all-versions"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["git_version"] == "v2.0.0"
    assert data["version_tokens"] == ["v2.0.0", "v2.0.0-3-gabc"]
    assert data["images"][0]["kind"] == "application"
    assert data["images"][0]["header_len"] == 2


def test_inspect_rejects_non_zip(tmp_path):
    bogus = tmp_path / "bogus.zip"
    bogus.write_bytes(b"PK but not really")
    result = runner.invoke(app, ["inspect", str(bogus)])
    assert result.exit_code == 1


def test_extract_falls_back_to_later_kind(full_package, tmp_path):
    out = tmp_path / "out"
    result = runner.invoke(
        app,
        ["extract", full_package, "--kinds", "softdevice,softdevice_bootloader", "--out", str(out)],
    )
    assert result.exit_code == 0
    assert (out / "sd_bl.bin").read_bytes() == b"\xBB" * 32
    assert (out / "sd_bl.dat").read_bytes() == b"\x01"


def test_extract_no_matching_kind_exits_1(app_package, tmp_path):
    result = runner.invoke(app, ["extract", app_package, "--kinds", "bootloader", "--out", str(tmp_path)])
    assert result.exit_code == 1


def test_extract_invalid_kind_is_usage_error(app_package):
    result = runner.invoke(app, ["extract", app_package, "--kinds", "modem"])
    assert result.exit_code == 2


RELEASES_URL = "https://api.github.com/repos/RfidResearchGroup/ChameleonUltra/releases"
MIRROR_ENV = ("BASEURL", "MIRROR_OWNER", "MIRROR_REPO", "MIRROR_ASSETS", "MIRROR_VERSION_ASSET", "MIRROR_DIST", "GITHUB_TOKEN")


class FakeResponse:
    def __init__(self, status_code=200, payload=None, content=b""):
        self.status_code = status_code
        self._payload = payload
        self.content = content

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, responses):
        self.responses = responses

    def get(self, url, headers=None, timeout=None):
        return self.responses[url]


@pytest.fixture
def mirror_session(monkeypatch, app_package, full_package):
    """Route the mirror command through a canned GitHub session."""
    for key in MIRROR_ENV:
        monkeypatch.delenv(key, raising=False)

    files = {
        "ultra-dfu-app.zip": Path(app_package).read_bytes(),
        "ultra-dfu-full.zip": Path(full_package).read_bytes(),
    }
    release = {
        "tag_name": "v2.0.0",
        "target_commitish": "main",
        "created_at": "2024-06-01T00:00:00Z",
        "prerelease": False,
        "assets": [
            {"name": name, "size": len(data), "browser_download_url": f"https://github.com/dl/{name}"}
            for name, data in files.items()
        ],
    }
    responses = {RELEASES_URL: FakeResponse(payload=[release])}
    for name, data in files.items():
        responses[f"https://github.com/dl/{name}"] = FakeResponse(content=data)
    session = FakeSession(responses)

    def make_mirror(config, dry_run=False):
        return ReleaseMirror(config, session=session, dry_run=dry_run)

    monkeypatch.setattr(cli, "ReleaseMirror", make_mirror)
    return session


def test_mirror_writes_manifest_with_overrides(mirror_session, tmp_path):
    dist = tmp_path / "dist"
    result = runner.invoke(
        app,
        ["mirror", "--dist", str(dist), "--base-url", "https://example.org/fw/", "--assets", "ultra-dfu-app.zip"],
    )
    assert result.exit_code == 0

    written = json.loads((dist / "manifest.json").read_text())
    release = written["releases"][0]
    assert release["gitVersion"] == "v2.0.0"
    assert [a["url"] for a in release["assets"]] == ["https://example.org/fw/v2.0.0/ultra-dfu-app.zip"]
    assert (dist / "v2.0.0" / "ultra-dfu-app.zip").exists()
    assert not (dist / "v2.0.0" / "ultra-dfu-full.zip").exists()


def test_mirror_dry_run_writes_nothing(mirror_session, tmp_path):
    dist = tmp_path / "dist"
    result = runner.invoke(app, ["mirror", "--dist", str(dist), "--dry-run"])
    assert result.exit_code == 0
    assert "Dry run" in result.stdout
    assert not dist.exists()


def test_mirror_http_failure_exits_1(mirror_session, tmp_path):
    mirror_session.responses[RELEASES_URL] = FakeResponse(status_code=500)
    result = runner.invoke(app, ["mirror", "--dist", str(tmp_path / "dist")])
    assert result.exit_code == 1
    assert "Mirror failed" in result.stdout
    assert not (tmp_path / "dist").exists()


def test_mirror_malformed_package_exits_1(mirror_session, tmp_path):
    mirror_session.responses["https://github.com/dl/ultra-dfu-app.zip"] = FakeResponse(content=b"not a zip")
    result = runner.invoke(app, ["mirror", "--dist", str(tmp_path / "dist")])
    assert result.exit_code == 1
    assert "Mirror failed" in result.stdout
