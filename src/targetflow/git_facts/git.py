# git.py
# Small, focused wrapper around the Git CLI.
# This module centralizes all Git interactions so the rest of the codebase
# never needs to call subprocess("git ...") directly.

from __future__ import annotations

import re
import subprocess
from pathlib import Path
from typing import Optional

# https://github.com/owner/repo(.git), git@github.com:owner/repo(.git),
# ssh://git@github.com/owner/repo(.git)
_REMOTE_RE = re.compile(
    r"^(?:https?://|ssh://)?(?:[^@/]+@)?(?P<host>[^/:]+)[/:](?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$"
)


def _git(args: list[str], cwd: Optional[str] = None) -> str:
    """
    Execute a git command and return its stdout as a clean string.

    This is the single low-level entry point for all Git operations in this file.

    Args:
        args: List of git arguments (e.g. ["status", "--porcelain"])
        cwd: Optional working directory in which to run the git command.

    Returns:
        Stdout from the git command with surrounding whitespace removed.
    """
    # A non-zero exit raises CalledProcessError, which is what callers want.
    out = subprocess.check_output(
        ["git", *args],
        cwd=cwd,
        text=True,
    )
    return out.strip()


def repo_root() -> Path:
    """
    Return the absolute path to the root of the current Git repository.

    Returns:
        Path object pointing to the repository root directory.
    """
    return Path(_git(["rev-parse", "--show-toplevel"]))


def head_sha(short: bool = False) -> str:
    """Return the SHA of the current HEAD commit."""
    args = ["rev-parse", "--short", "HEAD"] if short else ["rev-parse", "HEAD"]
    return _git(args)


def current_branch() -> str:
    """
    Return the checked-out branch name, or "HEAD" when detached.
    """
    return _git(["rev-parse", "--abbrev-ref", "HEAD"])


def remote_url(remote: str = "origin") -> str:
    """Return the fetch URL configured for `remote`."""
    return _git(["remote", "get-url", remote])


def parse_remote(url: str) -> tuple[str, str, str]:
    """
    Split a remote URL into (host, owner, repo).

    Raises:
        ValueError: if the URL does not look like host/owner/repo.
    """
    match = _REMOTE_RE.match(url.strip())
    if not match:
        raise ValueError(f"Unrecognised git remote URL: {url}")
    return match.group("host").lower(), match.group("owner"), match.group("repo")


def is_github_repository(url: Optional[str] = None) -> bool:
    """
    True when the remote (origin by default) is hosted on github.com.
    """
    url = url if url is not None else remote_url()
    try:
        host, _owner, _repo = parse_remote(url)
    except ValueError:
        return False
    return host == "github.com"


def repository_identifier(url: Optional[str] = None) -> str:
    """
    Return "owner/repo" for the remote (origin by default).
    """
    url = url if url is not None else remote_url()
    _host, owner, repo = parse_remote(url)
    return f"{owner}/{repo}"


def is_pushed_to_remote(status_text: Optional[str] = None) -> bool:
    """
    Check that the working tree is clean AND the branch is level with its
    upstream, based on the human-readable `git status` output.

    Both lines must be present:
      "Your branch is up to date with 'origin/...'"
      "nothing to commit, working tree clean"
    """
    text = status_text if status_text is not None else _git(["status"])
    lines = [line.strip() for line in text.splitlines()]
    up_to_date = any(line.startswith("Your branch is up to date with") for line in lines)
    clean = any("nothing to commit, working tree clean" in line for line in lines)
    return up_to_date and clean


def describe(match: str = "v[0-9]*.[0-9]*.[0-9]*") -> str:
    """`git describe --tags --long` against tags matching `match` (three-part v tags)."""
    return _git(["describe", "--tags", "--long", "--match", match])


def commit_count(ref: str = "HEAD") -> int:
    """Number of commits reachable from `ref`."""
    return int(_git(["rev-list", "--count", ref]))
