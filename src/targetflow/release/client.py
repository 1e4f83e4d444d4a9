# release/client.py
from __future__ import annotations

import json
import re
import urllib.error
import urllib.request
from typing import Optional, Protocol
from urllib.parse import quote, urljoin

from pydantic import ValidationError

from .models import NewRelease, Release, ReleaseAsset

DEFAULT_API_URL = "https://api.github.com"
USER_AGENT = "targetflow"


class APIError(Exception):
    """Raised when release host API requests fail."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class ReleaseNotFound(APIError):
    pass


class ReleaseHost(Protocol):
    """What the release step needs from a release host."""

    def get_release(self, owner: str, repo: str, tag: str) -> Release: ...

    def create_release(self, owner: str, repo: str, new_release: NewRelease) -> Release: ...

    def delete_asset(self, owner: str, repo: str, asset_id: int) -> None: ...

    def upload_asset(self, release: Release, name: str, content_type: str, data: bytes) -> ReleaseAsset: ...


class GitHubReleasesClient:
    """HTTP client for the GitHub releases API."""

    def __init__(self, token: str, base_url: str = DEFAULT_API_URL, timeout: float = 60.0):
        """
        Initialize API client.

        Args:
            token: GitHub personal access token with access to the repo
            base_url: API root (GitHub Enterprise installs differ)
            timeout: Socket timeout per request, in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token = token

    def _request(
        self,
        method: str,
        url: str,
        data: Optional[bytes] = None,
        headers: Optional[dict] = None,
    ):
        """
        Make an HTTP request and return the parsed JSON body (None when empty).

        Raises:
            ReleaseNotFound: on 404
            APIError: on any other failure
        """
        req_headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self._token}",
            "User-Agent": USER_AGENT,
        }
        if headers:
            req_headers.update(headers)

        req = urllib.request.Request(url, data=data, headers=req_headers, method=method)

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                body = response.read().decode("utf-8")
                return json.loads(body) if body else None
        except urllib.error.HTTPError as e:
            error_body = e.read().decode("utf-8") if e.fp else ""
            if e.code == 404:
                raise ReleaseNotFound(f"Not found: {method} {url}", status=404)
            raise APIError(f"API request failed: {e.code} {e.reason}. {error_body}".strip(), status=e.code)
        except urllib.error.URLError as e:
            raise APIError(f"Network error: {e.reason}")
        except json.JSONDecodeError as e:
            raise APIError(f"Invalid JSON response: {e}")

    def _api(self, path: str) -> str:
        return urljoin(self.base_url + "/", path.lstrip("/"))

    def _json(self, method: str, path: str, payload: Optional[dict] = None):
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        headers = {"Content-Type": "application/json"} if data is not None else None
        return self._request(method, self._api(path), data=data, headers=headers)

    def get_release(self, owner: str, repo: str, tag: str) -> Release:
        payload = self._json("GET", f"/repos/{owner}/{repo}/releases/tags/{quote(tag)}")
        return _parse(Release, payload)

    def create_release(self, owner: str, repo: str, new_release: NewRelease) -> Release:
        payload = self._json(
            "POST",
            f"/repos/{owner}/{repo}/releases",
            new_release.model_dump(exclude_none=True),
        )
        return _parse(Release, payload)

    def delete_asset(self, owner: str, repo: str, asset_id: int) -> None:
        self._json("DELETE", f"/repos/{owner}/{repo}/releases/assets/{asset_id}")

    def upload_asset(self, release: Release, name: str, content_type: str, data: bytes) -> ReleaseAsset:
        if not release.upload_url:
            raise APIError(f"Release {release.tag_name} has no upload URL")
        # upload_url is a URI template: .../assets{?name,label}
        base = re.sub(r"\{.*\}$", "", release.upload_url)
        url = f"{base}?name={quote(name)}"
        payload = self._request(
            "POST",
            url,
            data=data,
            headers={"Content-Type": content_type, "Content-Length": str(len(data))},
        )
        return _parse(ReleaseAsset, payload)


def _parse(model, payload):
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise APIError(f"Unexpected {model.__name__} payload: {e}")
