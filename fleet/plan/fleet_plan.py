"""
fleet_plan.py - Resolve whole fleets for a pipeline stage.

Ties the resolvers together in the order the provisioning pipeline needs:
the environment config is resolved first (by the caller, once), then each
runner type gets its provisioning plan and update policy. Each runner type
resolves independently; nothing here keeps state between calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from fleet.config.env_config import EnvironmentConfig, EnvironmentSpec
from fleet.config.runner_config import RunnerCatalog, RunnerType
from fleet.config.stages import Stage
from fleet.plan.runner_plan import resolve_runner_plan
from fleet.plan.types import ProvisioningPlan, UpdatePolicy
from fleet.plan.update_policy import resolve_update_policy
from fleet.plan.user_data import TemplateSource
from fleet.validator.catalog import validate_runner_catalog
from fleet.validator.errors import InvalidRunnerConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FleetPlan:
    """Everything the provisioning back-end needs for one runner pool."""
    runner_type: RunnerType
    stage: Stage
    environment: EnvironmentSpec
    plan: ProvisioningPlan
    policy: UpdatePolicy

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repo": self.runner_type.repo,
            "platform": self.runner_type.platform.value,
            "arch": self.runner_type.arch.value,
            "version": self.runner_type.version,
            "stage": self.stage.value,
            "environment": {
                "account": self.environment.account,
                "region": self.environment.region,
            },
            "plan": self.plan.to_dict(),
            "update_policy": self.policy.to_dict(),
        }


def resolve_fleet_plan(
    runner_type: RunnerType,
    stage: Stage,
    env_config: EnvironmentConfig,
    templates: TemplateSource,
    license_arn: Optional[str] = None,
    now: Optional[datetime] = None,
) -> FleetPlan:
    """Resolve plan and policy for one runner pool at a stage.

    Raises:
        InvalidRunnerConfigurationError: If the stage has no environment
            (e.g. Prod or Release in dev mode).
        UnsupportedPlatformError: If the runner's platform has no handler.
    """
    env = env_config.for_stage(stage)
    plan = resolve_runner_plan(runner_type, stage, env, templates, license_arn)
    policy = resolve_update_policy(stage, now=now)
    return FleetPlan(
        runner_type=runner_type,
        stage=stage,
        environment=env,
        plan=plan,
        policy=policy,
    )


def resolve_fleet(
    catalog: RunnerCatalog,
    stage: Stage,
    env_config: EnvironmentConfig,
    templates: TemplateSource,
    now: Optional[datetime] = None,
) -> List[FleetPlan]:
    """Resolve every runner pool in the catalog, in catalog order.

    The catalog is validated first; duplicate host group names are reported
    together in one error.
    """
    validation = validate_runner_catalog(catalog)
    if validation.has_errors():
        raise InvalidRunnerConfigurationError(
            "Runner catalog is invalid:\n" + validation.format_errors(),
            stage=stage.value,
        )
    for warning in validation.sorted_warnings():
        logger.warning("%s: %s %s", warning.issue_type, warning.location, warning.problem)

    plans = [
        resolve_fleet_plan(
            runner_type,
            stage,
            env_config,
            templates,
            license_arn=catalog.license_arn,
            now=now,
        )
        for runner_type in catalog.runner_types
    ]
    logger.info("Resolved %d runner plans for stage %s", len(plans), stage.value)
    return plans
