"""Release registry client (GitHub Releases).

Usage:
    registry = ReleaseRegistry(http=RealHttpClient(timeout=30.0, token=token), console=console)
    exists = registry.release_exists("org", "charts", "1.2.3")
    url = registry.create_release(descriptor)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote

from chartrel.core.result import Err, Ok, Result
from chartrel.core.structured import StrDict, as_obj_list, as_str_dict, get_int, get_str
from chartrel.output.console import ConsoleProtocol
from chartrel.registry.http import HttpClient, HttpError

__all__ = [
    "GITHUB_API_URL",
    "GITHUB_UPLOADS_URL",
    "RegistryError",
    "ReleaseDescriptor",
    "ReleaseRegistry",
]

GITHUB_API_URL = "https://api.github.com"
GITHUB_UPLOADS_URL = "https://uploads.github.com"


@dataclass(frozen=True, slots=True)
class RegistryError:
    """Any registry failure other than "release not found".

    Attributes:
        message: What was being done and what went wrong
        status: HTTP status code (0 for network errors, timeouts, bad payloads)
    """

    message: str
    status: int = 0


@dataclass(frozen=True, slots=True)
class ReleaseDescriptor:
    """Release to publish for one packaged chart."""

    owner: str
    repo: str
    tag: str
    name: str
    description: str
    asset_path: Path
    pre_release: bool = False

    @property
    def asset_name(self) -> str:
        return self.asset_path.name


def _registry_error(action: str, error: HttpError) -> RegistryError:
    return RegistryError(message=f"{action}: {error}", status=error.status)


class ReleaseRegistry:
    """Existence check, create-if-absent and asset upload keyed by (owner, repo, tag)."""

    def __init__(
        self,
        *,
        http: HttpClient,
        console: ConsoleProtocol,
        api_url: str = GITHUB_API_URL,
        uploads_url: str = GITHUB_UPLOADS_URL,
    ) -> None:
        self._http = http
        self._console = console
        self._api_url = api_url.rstrip("/")
        self._uploads_url = uploads_url.rstrip("/")

    def release_exists(self, owner: str, repo: str, tag: str) -> Result[bool, RegistryError]:
        """Return whether a release exists for ``tag``.

        A 404 maps to ``False``; every other failure propagates.
        """
        result = self._get_release_by_tag(owner, repo, tag)
        if isinstance(result, Err):
            return result
        return Ok(result.value is not None)

    def create_release(self, descriptor: ReleaseDescriptor) -> Result[str, RegistryError]:
        """Create the release (if absent) and attach the chart archive.

        The release is re-fetched before uploading; an asset with the same
        name left by an earlier partial run is reused instead of uploaded
        again.

        Returns:
            Ok(browser download url of the asset)
        """
        release_id = self._ensure_release(descriptor)
        if isinstance(release_id, Err):
            return release_id
        return self._upload_asset(release_id.value, descriptor)

    def _releases_url(self, owner: str, repo: str) -> str:
        return f"{self._api_url}/repos/{quote(owner)}/{quote(repo)}/releases"

    def _get_release_by_tag(
        self, owner: str, repo: str, tag: str
    ) -> Result[StrDict | None, RegistryError]:
        url = f"{self._releases_url(owner, repo)}/tags/{quote(tag, safe='')}"
        result = self._http.get_json(url)
        if isinstance(result, Err):
            if result.error.is_not_found:
                return Ok(None)
            return Err(_registry_error(f"get release by {tag} tag", result.error))
        return Ok(result.value)

    def _ensure_release(self, d: ReleaseDescriptor) -> Result[int, RegistryError]:
        existing = self._get_release_by_tag(d.owner, d.repo, d.tag)
        if isinstance(existing, Err):
            return existing
        if existing.value is not None:
            self._console.info(f"{d.name} release {d.tag} already exists, skipping create release")
            return self._release_id(existing.value, d)

        payload = {
            "tag_name": d.tag,
            "name": d.name,
            "body": d.description,
            "prerelease": d.pre_release,
        }
        created = self._http.post_json(self._releases_url(d.owner, d.repo), payload)
        if isinstance(created, Err):
            return Err(_registry_error(f"{d.name} create release {d.tag}", created.error))

        release_id = self._release_id(created.value, d)
        if isinstance(release_id, Ok):
            self._console.info(f"{d.name} release {d.tag} with id {release_id.value} created")
        return release_id

    def _upload_asset(self, release_id: int, d: ReleaseDescriptor) -> Result[str, RegistryError]:
        url = f"{self._releases_url(d.owner, d.repo)}/{release_id}"
        fetched = self._http.get_json(url)
        if isinstance(fetched, Err):
            return Err(_registry_error(f"get release by {release_id} id", fetched.error))

        release = fetched.value
        for asset in as_obj_list(release.get("assets")) or []:
            data = as_str_dict(asset)
            if data is None or get_str(data, "name") != d.asset_name:
                continue
            download_url = get_str(data, "browser_download_url")
            if download_url is None:
                return Err(RegistryError(f"asset {d.asset_name} has no download url"))
            self._console.info(
                f"{d.name} release {d.tag} asset {download_url} already exists, skipping upload"
            )
            return Ok(download_url)

        upload_url = f"{self._upload_base(release, d, release_id)}?name={quote(d.asset_name)}"
        uploaded = self._http.upload_file(upload_url, d.asset_path)
        if isinstance(uploaded, Err):
            return Err(_registry_error(f"upload {d.asset_name} asset", uploaded.error))

        download_url = get_str(uploaded.value, "browser_download_url")
        if download_url is None:
            return Err(RegistryError(f"uploaded asset {d.asset_name} has no download url"))
        self._console.info(f"{d.name} release {d.tag} asset uploaded: {download_url}")
        return Ok(download_url)

    def _upload_base(self, release: StrDict, d: ReleaseDescriptor, release_id: int) -> str:
        # upload_url is a URI template: ".../assets{?name,label}"
        template = get_str(release, "upload_url")
        if template is not None:
            return template.split("{", 1)[0]
        return (
            f"{self._uploads_url}/repos/{quote(d.owner)}/{quote(d.repo)}"
            f"/releases/{release_id}/assets"
        )

    @staticmethod
    def _release_id(release: StrDict, d: ReleaseDescriptor) -> Result[int, RegistryError]:
        release_id = get_int(release, "id")
        if release_id is None:
            return Err(RegistryError(f"{d.name} release {d.tag}: response has no id"))
        return Ok(release_id)
