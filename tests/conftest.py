"""
Test fixtures for fleet resolution tests.

Provides environment configs, runner types and an in-memory template
source so resolvers can be exercised without touching the filesystem.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

_REPO_ROOT = Path(__file__).resolve().parent.parent
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from fleet.config.env_config import EnvironmentSpec, resolve_environment_config
from fleet.config.runner_config import Arch, PlatformType, RunnerType
from fleet.plan.user_data import StaticTemplateSource

# ============================================================================
# Raw Config Fixtures
# ============================================================================

FULL_RAW_CONFIG = {
    "envPipeline": {"account": "111111111111", "region": "us-west-2"},
    "envBeta": {"account": "222222222222", "region": "us-east-2"},
    "envProd": {"account": "333333333333", "region": "us-east-1"},
    "envRelease": {"account": "444444444444", "region": "us-east-1"},
}

DEV_RAW_CONFIG = {
    "envDev": {"account": "999999999999", "region": "us-east-2"},
}

SHELL_TEMPLATE = "echo setting up runner\n"
LINUX_TEMPLATE = "echo setting up linux runner\n"
WINDOWS_TEMPLATE = (
    "version: 1.1\n"
    "tasks:\n"
    "  - task: executeScript\n"
    "    inputs:\n"
    "      - content: |-\n"
    "          $LabelStage = \"<STAGE>\"\n"
    "          $Repo = \"<REPO>\"\n"
    "          $Region = \"<REGION>\"\n"
    "          Write-Output \"registering <REPO>\"\n"
)

FIXED_NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def full_raw_config():
    """A complete four-stage raw environment mapping (fresh copy)."""
    return {key: dict(value) for key, value in FULL_RAW_CONFIG.items()}


@pytest.fixture
def full_env_config():
    """Resolved four-stage EnvironmentConfig."""
    return resolve_environment_config(FULL_RAW_CONFIG)


@pytest.fixture
def dev_env_config():
    """Resolved dev-mode EnvironmentConfig."""
    return resolve_environment_config(DEV_RAW_CONFIG)


@pytest.fixture
def us_east_1():
    return EnvironmentSpec(account="123", region="us-east-1")


@pytest.fixture
def templates():
    """In-memory template source with all three boot templates."""
    return StaticTemplateSource({
        "setup-runner.sh": SHELL_TEMPLATE,
        "setup-linux-runner.sh": LINUX_TEMPLATE,
        "windows-runner-user-data.yaml": WINDOWS_TEMPLATE,
    })


@pytest.fixture
def fixed_now():
    return FIXED_NOW


def make_runner(
    platform=PlatformType.AMAZONLINUX,
    arch=Arch.ARM,
    version="2023",
    repo="foo",
    desired_instances=1,
) -> RunnerType:
    """Build a RunnerType with sensible defaults."""
    return RunnerType(
        platform=platform,
        arch=arch,
        version=version,
        repo=repo,
        desired_instances=desired_instances,
    )
