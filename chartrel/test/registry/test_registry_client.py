"""Tests for registry/client.py - release lookup, creation and asset upload."""

from __future__ import annotations

from pathlib import Path

import pytest

from chartrel.core.result import Err, Ok
from chartrel.output.console import MockConsole
from chartrel.registry.client import ReleaseDescriptor, ReleaseRegistry
from chartrel.registry.http import HttpError, MockHttpClient

API = "https://api.github.com/repos/org/charts/releases"
ASSET_URL = "https://github.com/org/charts/releases/download/nginx-1.0.0/nginx-1.0.0.tgz"
UPLOAD_TEMPLATE = "https://uploads.github.com/repos/org/charts/releases/11/assets{?name,label}"
UPLOAD = "https://uploads.github.com/repos/org/charts/releases/11/assets?name=nginx-1.0.0.tgz"


@pytest.fixture
def http() -> MockHttpClient:
    return MockHttpClient()


@pytest.fixture
def registry(http: MockHttpClient) -> ReleaseRegistry:
    return ReleaseRegistry(http=http, console=MockConsole())


@pytest.fixture
def descriptor(tmp_path: Path) -> ReleaseDescriptor:
    archive = tmp_path / "pkg-0" / "nginx-1.0.0.tgz"
    archive.parent.mkdir()
    archive.write_bytes(b"archive")
    return ReleaseDescriptor(
        owner="org",
        repo="charts",
        tag="nginx-1.0.0",
        name="nginx-1.0.0",
        description="Kubernetes nginx Helm chart",
        asset_path=archive,
    )


class TestReleaseExists:
    def test_found(self, http: MockHttpClient, registry: ReleaseRegistry) -> None:
        http.set_response("GET", f"{API}/tags/1.0.0", {"id": 3})

        assert registry.release_exists("org", "charts", "1.0.0") == Ok(True)

    def test_not_found_is_false(self, http: MockHttpClient, registry: ReleaseRegistry) -> None:
        assert registry.release_exists("org", "charts", "1.0.0") == Ok(False)
        assert http.calls[0].url == f"{API}/tags/1.0.0"

    def test_other_failures_propagate(
        self, http: MockHttpClient, registry: ReleaseRegistry
    ) -> None:
        url = f"{API}/tags/1.0.0"
        http.set_response("GET", url, HttpError(url=url, status=500, message="Server Error"))

        result = registry.release_exists("org", "charts", "1.0.0")

        assert isinstance(result, Err)
        assert result.error.status == 500
        assert "get release by 1.0.0 tag" in result.error.message

    def test_tag_is_url_quoted(self, http: MockHttpClient, registry: ReleaseRegistry) -> None:
        registry.release_exists("org", "charts", "v1/rc")

        assert http.calls[0].url == f"{API}/tags/v1%2Frc"


class TestCreateRelease:
    def test_creates_and_uploads(
        self, http: MockHttpClient, registry: ReleaseRegistry, descriptor: ReleaseDescriptor
    ) -> None:
        http.set_response("POST", API, {"id": 11, "upload_url": UPLOAD_TEMPLATE})
        release = {"id": 11, "upload_url": UPLOAD_TEMPLATE, "assets": []}
        http.set_response("GET", f"{API}/11", release)
        http.set_response("UPLOAD", UPLOAD, {"browser_download_url": ASSET_URL})

        result = registry.create_release(descriptor)

        assert result == Ok(ASSET_URL)
        assert http.methods() == ["GET", "POST", "GET", "UPLOAD"]
        assert http.calls[1].payload == {
            "tag_name": "nginx-1.0.0",
            "name": "nginx-1.0.0",
            "body": "Kubernetes nginx Helm chart",
            "prerelease": False,
        }
        assert http.calls[3].path == descriptor.asset_path

    def test_pre_release_flag_is_sent(
        self, http: MockHttpClient, registry: ReleaseRegistry, descriptor: ReleaseDescriptor
    ) -> None:
        http.set_response("POST", API, HttpError(url=API, status=422, message="Unprocessable"))
        pre = ReleaseDescriptor(
            owner=descriptor.owner,
            repo=descriptor.repo,
            tag=descriptor.tag,
            name=descriptor.name,
            description=descriptor.description,
            asset_path=descriptor.asset_path,
            pre_release=True,
        )

        result = registry.create_release(pre)

        assert isinstance(result, Err)
        assert result.error.status == 422
        assert http.calls[1].payload is not None
        assert http.calls[1].payload["prerelease"] is True

    def test_existing_release_is_reused(
        self, http: MockHttpClient, registry: ReleaseRegistry, descriptor: ReleaseDescriptor
    ) -> None:
        http.set_response("GET", f"{API}/tags/nginx-1.0.0", {"id": 11})
        http.set_response("GET", f"{API}/11", {"id": 11, "upload_url": UPLOAD_TEMPLATE})
        http.set_response("UPLOAD", UPLOAD, {"browser_download_url": ASSET_URL})

        result = registry.create_release(descriptor)

        assert result == Ok(ASSET_URL)
        assert "POST" not in http.methods()

    def test_existing_asset_skips_upload(
        self, http: MockHttpClient, descriptor: ReleaseDescriptor
    ) -> None:
        console = MockConsole()
        registry = ReleaseRegistry(http=http, console=console)
        http.set_response("GET", f"{API}/tags/nginx-1.0.0", {"id": 11})
        http.set_response(
            "GET",
            f"{API}/11",
            {
                "id": 11,
                "assets": [
                    {"name": "other.tgz", "browser_download_url": "x"},
                    {"name": "nginx-1.0.0.tgz", "browser_download_url": ASSET_URL},
                ],
            },
        )

        result = registry.create_release(descriptor)

        assert result == Ok(ASSET_URL)
        assert "UPLOAD" not in http.methods()
        assert console.find("skipping upload")

    def test_upload_falls_back_to_uploads_host(
        self, http: MockHttpClient, registry: ReleaseRegistry, descriptor: ReleaseDescriptor
    ) -> None:
        http.set_response("POST", API, {"id": 11})
        http.set_response("GET", f"{API}/11", {"id": 11})
        http.set_response("UPLOAD", UPLOAD, {"browser_download_url": ASSET_URL})

        assert registry.create_release(descriptor) == Ok(ASSET_URL)

    def test_upload_failure(
        self, http: MockHttpClient, registry: ReleaseRegistry, descriptor: ReleaseDescriptor
    ) -> None:
        http.set_response("POST", API, {"id": 11, "upload_url": UPLOAD_TEMPLATE})
        http.set_response("GET", f"{API}/11", {"id": 11, "upload_url": UPLOAD_TEMPLATE})
        http.set_response("UPLOAD", UPLOAD, HttpError(url=UPLOAD, status=0, message="timed out"))

        result = registry.create_release(descriptor)

        assert isinstance(result, Err)
        assert "upload nginx-1.0.0.tgz asset" in result.error.message

    def test_response_without_id(
        self, http: MockHttpClient, registry: ReleaseRegistry, descriptor: ReleaseDescriptor
    ) -> None:
        http.set_response("POST", API, {"name": "nginx-1.0.0"})

        result = registry.create_release(descriptor)

        assert isinstance(result, Err)
        assert "response has no id" in result.error.message


def test_custom_api_url(tmp_path: Path) -> None:
    http = MockHttpClient()
    registry = ReleaseRegistry(
        http=http, console=MockConsole(), api_url="https://ghe.example.com/api/v3/"
    )

    registry.release_exists("org", "charts", "1.0.0")

    expected = "https://ghe.example.com/api/v3/repos/org/charts/releases/tags/1.0.0"
    assert http.calls[0].url == expected
