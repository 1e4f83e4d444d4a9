"""
Build parameters.

One frozen dataclass carries every value a target may read (credentials,
org/space, counts, paths). It is built once per invocation and handed to
every predicate and action; nothing reads process-wide state after that.

Priority (highest to lowest):
1. Explicit overrides (CLI --param KEY=VALUE and dedicated flags)
2. Environment variables (TARGETFLOW_<NAME>, and the bare <NAME> for
   credentials: CF_* and GITHUB_TOKEN)
3. Defaults
"""

from __future__ import annotations

import dataclasses
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

ENV_PREFIX = "TARGETFLOW"

# Environment markers of a build server (Azure Pipelines, GitHub Actions,
# TeamCity, Jenkins, generic CI).
SERVER_ENV_MARKERS = ("TF_BUILD", "GITHUB_ACTIONS", "TEAMCITY_VERSION", "JENKINS_URL", "CI")

_ALIASES = {
    "git_hub_token": "github_token",
    "cf_api": "cf_api_endpoint",
    "cf_endpoint": "cf_api_endpoint",
}


@dataclass(frozen=True)
class BuildParameters:
    """Everything a build/deploy target may read."""
    root_dir: Path = Path(".")
    solution: Optional[str] = None
    source_dir: Optional[Path] = None
    artifacts_dir: Optional[Path] = None
    configuration: str = "Debug"
    framework: str = "netcoreapp2.2"
    package_name: str = "articulate"
    version: Optional[str] = None

    github_token: Optional[str] = None

    cf_username: Optional[str] = None
    cf_password: Optional[str] = None
    cf_api_endpoint: Optional[str] = None
    cf_org: Optional[str] = None
    cf_space: Optional[str] = None
    cf_skip_login: bool = False
    apps_count: int = 3
    cf_app_prefix: str = "ers"

    cf_service: str = "p-service-registry"
    cf_service_instance: str = "eureka"
    cf_service_plan: Optional[str] = None
    # endpoint substring -> plan, first match wins
    cf_service_plans: Tuple[Tuple[str, str], ...] = (("api.run.pivotal.io", "trial"),)
    cf_default_service_plan: str = "standard"
    cf_service_timeout: float = 600.0
    cf_service_poll_interval: float = 5.0

    @property
    def source_directory(self) -> Path:
        return self.source_dir or (self.root_dir / "src")

    @property
    def artifacts_directory(self) -> Path:
        return self.artifacts_dir or (self.root_dir / "artifacts")

    @property
    def publish_directory(self) -> Path:
        return self.source_directory / "bin" / self.configuration / self.framework / "publish"

    def get(self, name: str) -> Any:
        return getattr(self, name, None)

    def is_set(self, name: str) -> bool:
        value = self.get(name)
        return value is not None and value != ""


PARAMETER_NAMES = tuple(f.name for f in dataclasses.fields(BuildParameters))


def normalize_key(key: str) -> str:
    """CfUsername / cf-username / CF_USERNAME / cf_username -> cf_username"""
    key = key.strip()
    if key.upper().startswith(f"{ENV_PREFIX}_"):
        key = key[len(ENV_PREFIX) + 1:]
    key = re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", key)
    key = key.replace("-", "_").lower()
    return _ALIASES.get(key, key)


def is_server_build(environ: Mapping[str, str]) -> bool:
    return any(environ.get(marker) for marker in SERVER_ENV_MARKERS)


def _parse_plans(value: Any) -> Tuple[Tuple[str, str], ...]:
    if isinstance(value, Mapping):
        return tuple((str(k), str(v)) for k, v in value.items())
    if isinstance(value, (list, tuple)):
        return tuple((str(k), str(v)) for k, v in value)
    pairs = []
    for entry in str(value).split(","):
        entry = entry.strip()
        if not entry:
            continue
        host, sep, plan = entry.partition("=")
        if not sep or not host.strip() or not plan.strip():
            raise ValueError(f"Invalid service plan mapping entry: {entry!r} (expected host=plan)")
        pairs.append((host.strip(), plan.strip()))
    return tuple(pairs)


def _coerce(name: str, type_name: str, value: Any) -> Any:
    """Convert string values from the CLI/env to the field's declared type."""
    if name == "cf_service_plans":
        return _parse_plans(value)
    if not isinstance(value, str):
        if "Path" in type_name and value is not None:
            return Path(value)
        return value

    base = type_name.replace("Optional[", "").rstrip("]")
    try:
        if base == "int":
            return int(value)
        if base == "float":
            return float(value)
    except ValueError:
        raise ValueError(f"Parameter '{name}' expects {base}, got {value!r}") from None
    if base == "bool":
        return value.strip().lower() in ("true", "1", "yes", "on")
    if base == "Path":
        return Path(value).expanduser()
    return value


def _from_environment(environ: Mapping[str, str]) -> Dict[str, str]:
    data: Dict[str, str] = {}
    for name in PARAMETER_NAMES:
        upper = name.upper()
        if f"{ENV_PREFIX}_{upper}" in environ:
            data[name] = environ[f"{ENV_PREFIX}_{upper}"]
        elif (upper.startswith("CF_") or upper == "GITHUB_TOKEN") and upper in environ:
            data[name] = environ[upper]
    return data


def default_artifacts_dir(root_dir: Path, environ: Mapping[str, str]) -> Path:
    """
    Azure Pipelines staging dir if present, else ../artifacts inside a
    Cloud Foundry garden container, else <root>/artifacts.
    """
    staging = environ.get("BUILD_ARTIFACTSTAGINGDIRECTORY")
    if staging:
        return Path(staging)
    if Path("/tmp/garden-init").exists():
        return root_dir / ".." / "artifacts"
    return root_dir / "artifacts"


def load_parameters(
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> BuildParameters:
    """Build the parameter set for one invocation."""
    environ = os.environ if environ is None else environ

    explicit: Dict[str, Any] = {}
    unknown = []
    for key, value in (overrides or {}).items():
        name = normalize_key(key)
        if name not in PARAMETER_NAMES:
            unknown.append(key)
            continue
        explicit[name] = value
    if unknown:
        raise ValueError(
            f"Unknown parameter(s): {', '.join(sorted(unknown))}. "
            f"Known parameters: {', '.join(PARAMETER_NAMES)}"
        )

    data: Dict[str, Any] = _from_environment(environ)
    data.update({k: v for k, v in explicit.items() if v is not None})

    types = {f.name: str(f.type) for f in dataclasses.fields(BuildParameters)}
    values = {name: _coerce(name, types[name], value) for name, value in data.items()}

    if "configuration" not in values:
        values["configuration"] = "Release" if is_server_build(environ) else "Debug"
    root_dir = values.get("root_dir", Path("."))
    if "artifacts_dir" not in values:
        values["artifacts_dir"] = default_artifacts_dir(root_dir, environ)

    return BuildParameters(**values)

