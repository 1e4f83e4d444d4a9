# step_workflows/dotnet.py
from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Callable, List

from ..config import BuildParameters
from ..errors import BuildError, ExternalCallError
from ..git_facts.version import VersionInfo
from ..ui.console import get_console


# ---------------------------------------------------------------------
# dotnet CLI execution
# ---------------------------------------------------------------------

def _dotnet(
    args: List[str],
    *,
    cwd: Path,
    run: Callable[..., subprocess.CompletedProcess] = subprocess.run,
) -> None:
    cmd = ["dotnet", *args]
    get_console().print_step(" ".join(cmd))
    try:
        proc = run(cmd, cwd=str(cwd), text=True, capture_output=True)
    except FileNotFoundError:
        raise BuildError("dotnet is not available. Install the .NET SDK or fix PATH.") from None
    if proc.returncode != 0:
        raise ExternalCallError(
            command=" ".join(cmd),
            exit_code=proc.returncode,
            stdout=(proc.stdout or "")[-4000:],
            stderr=(proc.stderr or "")[-4000:],
        )


def _version_args(version: VersionInfo) -> List[str]:
    return [
        f"-p:AssemblyVersion={version.assembly_version}",
        f"-p:FileVersion={version.file_version}",
        f"-p:InformationalVersion={version.informational_version}",
    ]


def _project_args(params: BuildParameters) -> List[str]:
    return [params.solution] if params.solution else []


# ---------------------------------------------------------------------
# Build steps
# ---------------------------------------------------------------------

def clean(params: BuildParameters) -> None:
    """Delete bin/obj under the source dir and empty the artifacts dir."""
    for pattern in ("**/bin", "**/obj"):
        for path in sorted(params.source_directory.glob(pattern), reverse=True):
            if path.is_dir():
                shutil.rmtree(path, ignore_errors=True)
    ensure_clean_dir(params.artifacts_directory)


def restore(params: BuildParameters, *, run=subprocess.run) -> None:
    _dotnet(["restore", *_project_args(params)], cwd=params.root_dir, run=run)


def compile_solution(params: BuildParameters, version: VersionInfo, *, run=subprocess.run) -> None:
    _dotnet(
        [
            "build",
            *_project_args(params),
            "--configuration", params.configuration,
            *_version_args(version),
            "--no-restore",
        ],
        cwd=params.root_dir,
        run=run,
    )


def publish(params: BuildParameters, version: VersionInfo, *, run=subprocess.run) -> Path:
    """Publish the application; returns the publish directory."""
    _dotnet(
        [
            "publish",
            *_project_args(params),
            "--configuration", params.configuration,
            *_version_args(version),
        ],
        cwd=params.root_dir,
        run=run,
    )
    return params.publish_directory


# ---------------------------------------------------------------------
# Archiving
# ---------------------------------------------------------------------

def create_zip_from_directory(source_dir: Path, archive: Path) -> Path:
    """
    Zip the contents of `source_dir` (not the directory itself) into
    `archive`, replacing any previous archive.
    """
    if not source_dir.is_dir():
        raise BuildError(f"Nothing to archive: {source_dir} does not exist")
    archive.parent.mkdir(parents=True, exist_ok=True)
    archive.unlink(missing_ok=True)
    base = archive.with_suffix("") if archive.suffix == ".zip" else archive
    created = shutil.make_archive(str(base), "zip", root_dir=str(source_dir))
    created_path = Path(created)
    if created_path != archive:
        created_path.replace(archive)
    return archive


def ensure_clean_dir(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


def package_zip_name(package_name: str, version: VersionInfo) -> str:
    return f"{package_name}-{version.major_minor_patch}.zip"
