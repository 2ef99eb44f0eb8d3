"""Runner type descriptors and the runner catalog.

A runner type describes one pool of build runners: which OS family and
CPU architecture it runs, the OS version, the repository it serves and
how many instances it should keep. The catalog is a YAML file listing
runner types plus an optional self-managed license ARN that is attached
to host-tenancy launch templates.

The catalog path can be overridden with ``FLEET_RUNNER_CATALOG``.

Example catalog:

    licenseArn: arn:aws:license-manager:us-east-2:123456789012:license-configuration:lic-1
    runners:
      - platform: mac
        arch: arm
        version: "14.2"
        repo: finch
        desiredInstances: 2
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from fleet.validator.errors import (
    ConfigValidationError,
    InvalidRunnerConfigurationError,
    UnsupportedPlatformError,
)

logger = logging.getLogger(__name__)

_DEFAULT_CATALOG_PATH = Path(__file__).parent / "runners.yaml"
RUNNER_CATALOG_PATH_VAR = "FLEET_RUNNER_CATALOG"


class PlatformType(Enum):
    """Operating system family of a runner pool."""
    MAC = "mac"
    WINDOWS = "windows"
    AMAZONLINUX = "amazonlinux"
    LINUX_OTHER = "linux"


class Arch(Enum):
    """CPU architecture of a runner pool."""
    X86 = "x86"
    ARM = "arm"


@dataclass(frozen=True)
class RunnerType:
    """One runner pool as described by the fleet catalog."""
    platform: PlatformType
    arch: Arch
    version: str
    repo: str
    desired_instances: int = 1

    @property
    def version_major(self) -> str:
        """Version digits before the first dot ("14.2" -> "14")."""
        return self.version.split(".")[0]

    @property
    def host_group_name(self) -> str:
        """Host resource group name; must be unique per account."""
        return (
            f"{self.repo}-{self.platform.value}-{self.version_major}"
            f"-{self.arch.value}HostGroup"
        )


@dataclass(frozen=True)
class RunnerCatalog:
    """All runner pools plus the license shared by their host groups."""
    runner_types: Tuple[RunnerType, ...] = ()
    license_arn: Optional[str] = None


def parse_platform(value: Any) -> PlatformType:
    """Parse a platform name case-insensitively.

    Raises:
        UnsupportedPlatformError: For names outside PlatformType.
    """
    name = str(value).strip().lower()
    for platform in PlatformType:
        if platform.value == name or platform.name.lower() == name:
            return platform
    raise UnsupportedPlatformError(str(value))


def parse_arch(value: Any, platform: Optional[str] = None) -> Arch:
    """Parse an architecture name case-insensitively.

    Raises:
        UnsupportedPlatformError: For names outside Arch.
    """
    name = str(value).strip().lower()
    for arch in Arch:
        if arch.value == name:
            return arch
    raise UnsupportedPlatformError(platform or "<unknown>", str(value))


def runner_type_from_dict(data: Dict[str, Any]) -> RunnerType:
    """Parse a RunnerType from a dictionary (e.g., YAML load).

    Raises:
        ConfigValidationError: If ``data`` is not a mapping.
        UnsupportedPlatformError: Unknown platform or arch.
        InvalidRunnerConfigurationError: Missing repo/version or a bad
            instance count.
    """
    if not isinstance(data, Mapping):
        raise ConfigValidationError(
            "runner", f"Error: runner entry must be a mapping, got {data!r}."
        )

    platform = parse_platform(data.get("platform", ""))
    arch = parse_arch(data.get("arch", ""), platform.value)

    raw_version = data.get("version")
    version = "" if raw_version is None else str(raw_version).strip()
    repo = str(data.get("repo") or "").strip()
    if isinstance(raw_version, float):
        # YAML reads 14.10 as 14.1
        logger.warning(
            "Runner %s/%s: version %r was parsed as a number; quote it in the "
            "catalog to keep it exact",
            repo or "?",
            platform.value,
            raw_version,
        )
    if not version:
        raise InvalidRunnerConfigurationError(
            f"Runner for repo '{repo or '?'}' on {platform.value} has no version"
        )
    if not repo:
        raise InvalidRunnerConfigurationError(
            f"Runner {platform.value}/{version} has no repo"
        )

    desired = data.get("desiredInstances", data.get("desired_instances", 1))
    if isinstance(desired, bool) or not isinstance(desired, int) or desired < 0:
        raise InvalidRunnerConfigurationError(
            f"Runner {repo}/{platform.value}/{version}: desiredInstances must be "
            f"an integer >= 0, got {desired!r}"
        )

    runner_type = RunnerType(
        platform=platform,
        arch=arch,
        version=version,
        repo=repo,
        desired_instances=desired,
    )
    if not runner_type.version_major.isdigit():
        logger.warning(
            "Runner %s/%s: version major %r is not an integer",
            repo,
            platform.value,
            runner_type.version_major,
        )
    return runner_type


def runner_catalog_from_dict(data: Dict[str, Any]) -> RunnerCatalog:
    """Parse a RunnerCatalog from a dictionary."""
    runners = data.get("runners") or []
    if not isinstance(runners, list):
        raise ConfigValidationError("runners", "Error: runners must be a list.")

    for index, entry in enumerate(runners):
        if not isinstance(entry, Mapping):
            raise ConfigValidationError(
                f"runners[{index}]",
                f"Error: runners[{index}] must be a mapping, got {entry!r}.",
            )

    runner_types = tuple(runner_type_from_dict(r) for r in runners)
    if not runner_types:
        logger.warning("Runner catalog has no runners; nothing will be planned")

    return RunnerCatalog(
        runner_types=runner_types,
        license_arn=data.get("licenseArn") or data.get("license_arn") or None,
    )


def get_runner_catalog_path() -> Path:
    """Path to the runner catalog, ``FLEET_RUNNER_CATALOG`` taking precedence."""
    override = os.environ.get(RUNNER_CATALOG_PATH_VAR)
    if override:
        return Path(override)
    return _DEFAULT_CATALOG_PATH


def load_runner_catalog(path: Optional[Path] = None) -> RunnerCatalog:
    """Load the runner catalog from YAML.

    Raises:
        ConfigValidationError: If the file is missing or not valid YAML.
    """
    catalog_path = Path(path) if path else get_runner_catalog_path()

    if not catalog_path.exists():
        raise ConfigValidationError(
            "<file>", f"Error: runner catalog not found at {catalog_path}"
        )

    try:
        with open(catalog_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigValidationError(
            "<file>", f"Error: invalid YAML in {catalog_path}: {e}"
        ) from e

    catalog = runner_catalog_from_dict(data or {})
    logger.info(
        "Loaded %d runner types from %s", len(catalog.runner_types), catalog_path
    )
    return catalog
