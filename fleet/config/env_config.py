"""Environment configuration for the runner promotion pipeline.

Maps each pipeline stage to the account/region pair it deploys into.
A config either describes a single-account sandbox (``envDev``) or the full
four-stage promotion pipeline; nothing in between is accepted.

The mapping is read once at process start and passed explicitly to the
resolvers that need it. The config path can be overridden with the
``FLEET_ENV_CONFIG`` environment variable.

Usage:
    from fleet.config.env_config import load_environment_config

    env_config = load_environment_config()
    beta = env_config.for_stage(Stage.BETA)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from fleet.config.stages import Stage
from fleet.validator.errors import ConfigValidationError

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "environments.yaml"
ENV_CONFIG_PATH_VAR = "FLEET_ENV_CONFIG"

DEV_KEY = "envDev"
# Order matters: the first missing key is the one reported.
REQUIRED_STAGE_KEYS = ("envPipeline", "envBeta", "envProd", "envRelease")


@dataclass(frozen=True)
class EnvironmentSpec:
    """Account and region a stage deploys into."""
    account: str
    region: str


@dataclass(frozen=True)
class EnvironmentConfig:
    """Resolved stage -> environment map.

    In dev mode ``beta`` is the same environment as ``pipeline`` and
    ``prod``/``release`` are absent.
    """
    is_dev: bool
    pipeline: EnvironmentSpec
    beta: EnvironmentSpec
    prod: Optional[EnvironmentSpec] = None
    release: Optional[EnvironmentSpec] = None

    def for_stage(self, stage: Stage) -> Optional[EnvironmentSpec]:
        """Environment used at a pipeline stage, or None if not configured."""
        return {
            Stage.PIPELINE: self.pipeline,
            Stage.BETA: self.beta,
            Stage.PROD: self.prod,
            Stage.RELEASE: self.release,
        }[stage]


def _parse_environment_spec(key: str, data: Any) -> EnvironmentSpec:
    """Parse one ``{account, region}`` entry."""
    if not isinstance(data, Mapping):
        raise ConfigValidationError(
            key, f"Error: {key} must be a mapping with account and region."
        )

    values = {}
    for name in ("account", "region"):
        value = data.get(name)
        # YAML reads unquoted account ids as integers
        if isinstance(value, int) and not isinstance(value, bool):
            value = str(value)
        if not isinstance(value, str) or not value.strip():
            raise ConfigValidationError(
                key, f"Error: {key}.{name} must be a non-empty string."
            )
        values[name] = value.strip()

    return EnvironmentSpec(account=values["account"], region=values["region"])


def resolve_environment_config(raw: Mapping[str, Any]) -> EnvironmentConfig:
    """Validate and normalize a raw environment mapping.

    Args:
        raw: Mapping with ``envDev`` or all of ``envPipeline``, ``envBeta``,
            ``envProd`` and ``envRelease``.

    Returns:
        The resolved EnvironmentConfig.

    Raises:
        ConfigValidationError: On the first missing or malformed stage entry.
    """
    if not isinstance(raw, Mapping):
        raise ConfigValidationError(
            "<root>", "Error: environment config must be a mapping."
        )

    if raw.get(DEV_KEY) is not None:
        dev = _parse_environment_spec(DEV_KEY, raw[DEV_KEY])
        logger.debug("Using dev environment %s/%s", dev.account, dev.region)
        return EnvironmentConfig(is_dev=True, pipeline=dev, beta=dev)

    specs = {}
    for key in REQUIRED_STAGE_KEYS:
        if not raw.get(key):
            raise ConfigValidationError(key)
        specs[key] = _parse_environment_spec(key, raw[key])

    return EnvironmentConfig(
        is_dev=False,
        pipeline=specs["envPipeline"],
        beta=specs["envBeta"],
        prod=specs["envProd"],
        release=specs["envRelease"],
    )


def get_env_config_path() -> Path:
    """Path to the environment config, ``FLEET_ENV_CONFIG`` taking precedence."""
    override = os.environ.get(ENV_CONFIG_PATH_VAR)
    if override:
        return Path(override)
    return _DEFAULT_CONFIG_PATH


def load_environment_config(path: Optional[Path] = None) -> EnvironmentConfig:
    """Load and resolve the environment config from a YAML (or JSON) file.

    Args:
        path: Config file path. Defaults to ``get_env_config_path()``.

    Raises:
        ConfigValidationError: If the file is missing, unparsable or invalid.
    """
    config_path = Path(path) if path else get_env_config_path()

    if not config_path.exists():
        raise ConfigValidationError(
            "<file>", f"Error: environment config not found at {config_path}"
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigValidationError(
            "<file>", f"Error: invalid YAML in {config_path}: {e}"
        ) from e

    env_config = resolve_environment_config(data or {})
    logger.info(
        "Loaded environment config from %s (dev=%s)", config_path, env_config.is_dev
    )
    return env_config
