# version.py
from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass

from . import git

_DESCRIBE_RE = re.compile(
    r"^v?(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)(?:-[0-9A-Za-z.-]+?)?-(?P<commits>\d+)-g(?P<sha>[0-9a-f]+)$"
)


@dataclass(frozen=True)
class VersionInfo:
    """Version numbers stamped into build outputs and release names."""
    major: int
    minor: int
    patch: int
    commits_since_tag: int = 0
    sha: str = ""
    branch: str = ""

    @property
    def major_minor_patch(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    @property
    def informational_version(self) -> str:
        meta = [str(self.commits_since_tag)]
        if self.branch:
            meta += ["Branch", self.branch.replace("/", "-")]
        if self.sha:
            meta += ["Sha", self.sha]
        return f"{self.major_minor_patch}+{'.'.join(meta)}"

    @property
    def assembly_version(self) -> str:
        return f"{self.major_minor_patch}.0"

    @property
    def file_version(self) -> str:
        return f"{self.major_minor_patch}.0"


def parse_describe(text: str) -> VersionInfo:
    """
    Parse `git describe --tags --long` output (e.g. "v1.2.3-4-gabc1234").

    Commits on top of the tag bump the patch number, so an untagged commit
    never reuses the released version.
    """
    match = _DESCRIBE_RE.match(text.strip())
    if not match:
        raise ValueError(f"Unrecognised describe output: {text!r}")
    commits = int(match.group("commits"))
    patch = int(match.group("patch")) + (1 if commits else 0)
    return VersionInfo(
        major=int(match.group("major")),
        minor=int(match.group("minor")),
        patch=patch,
        commits_since_tag=commits,
        sha=match.group("sha"),
    )


def current_version() -> VersionInfo:
    """
    Version of the current checkout, derived from the nearest v* tag.
    A repository without a usable vX.Y.Z tag counts from 0.1.0.
    """
    branch = git.current_branch()
    try:
        info = parse_describe(git.describe())
    except (subprocess.CalledProcessError, ValueError):
        return VersionInfo(
            major=0,
            minor=1,
            patch=0,
            commits_since_tag=git.commit_count(),
            sha=git.head_sha(short=True),
            branch=branch,
        )
    return VersionInfo(
        major=info.major,
        minor=info.minor,
        patch=info.patch,
        commits_since_tag=info.commits_since_tag,
        sha=info.sha,
        branch=branch,
    )


def parse_version(text: str) -> VersionInfo:
    """VersionInfo from an explicit "1.2.3" / "v1.2.3" override."""
    match = re.match(r"^v?(\d+)\.(\d+)\.(\d+)$", text.strip())
    if not match:
        raise ValueError(f"Version must look like 1.2.3, got {text!r}")
    major, minor, patch = (int(g) for g in match.groups())
    return VersionInfo(major=major, minor=minor, patch=patch)
