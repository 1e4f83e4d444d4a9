# release/publish.py
from __future__ import annotations

from pathlib import Path

from ..errors import ReleaseError
from ..ui.console import get_console
from .client import ReleaseHost, ReleaseNotFound
from .models import NewRelease, Release, ReleaseAsset

ZIP_CONTENT_TYPE = "application/zip"


def release_tag(major_minor_patch: str) -> str:
    return f"v{major_minor_patch}"


def check_repository(is_github: bool, is_pushed: bool) -> None:
    """Refuse to release from a non-GitHub remote or an unpushed checkout."""
    if not is_github:
        raise ReleaseError("Only supported when git repo remote is github")
    if not is_pushed:
        raise ReleaseError(
            "Your local git repo has not been pushed to remote. "
            "Can't create release until source is uploaded"
        )


def get_or_create_release(host: ReleaseHost, owner: str, repo: str, tag: str) -> Release:
    try:
        return host.get_release(owner, repo, tag)
    except ReleaseNotFound:
        get_console().print_info(f"Creating release {tag}")
        return host.create_release(
            owner,
            repo,
            NewRelease(tag_name=tag, name=tag, draft=False, prerelease=False),
        )


def publish_release(
    host: ReleaseHost,
    repository: str,
    major_minor_patch: str,
    package: Path,
    asset_name: str | None = None,
    content_type: str = ZIP_CONTENT_TYPE,
) -> ReleaseAsset:
    """
    Create (or amend) the release for `v{major_minor_patch}` and upload
    `package` as its asset, replacing an existing asset of the same name.

    Args:
        host: Release host API
        repository: "owner/repo"
        major_minor_patch: e.g. "1.2.3"
        package: File to upload
        asset_name: Name shown on the release (defaults to the file name)
    """
    owner, sep, repo = repository.partition("/")
    if not sep or not owner or not repo:
        raise ReleaseError(f"Repository must be 'owner/repo', got {repository!r}")
    if not package.is_file():
        raise ReleaseError(f"Release asset not found: {package}", ["Run the Pack target first."])

    name = asset_name or package.name
    tag = release_tag(major_minor_patch)
    release = get_or_create_release(host, owner, repo, tag)

    existing = release.asset_named(name)
    if existing is not None:
        get_console().print_info(f"Replacing existing asset {name} on {tag}")
        host.delete_asset(owner, repo, existing.id)

    asset = host.upload_asset(release, name, content_type, package.read_bytes())
    get_console().print_block(asset.browser_download_url)
    return asset
