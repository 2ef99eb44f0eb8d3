"""
fleet/plan - Runner provisioning plan resolution.

Turns runner pool descriptors into immutable provisioning plans and update
policies for the provisioning back-end:
- resolve_runner_plan: platform dispatch into shape, image, user data, naming
- resolve_update_policy: rolling update bounds and the beta spin-down
- resolve_fleet: both of the above for every pool in a catalog

Usage:
    from fleet.config.env_config import load_environment_config
    from fleet.config.runner_config import load_runner_catalog
    from fleet.config.stages import Stage
    from fleet.plan import DirectoryTemplateSource, resolve_fleet

    env_config = load_environment_config()
    plans = resolve_fleet(
        load_runner_catalog(), Stage.BETA, env_config, DirectoryTemplateSource()
    )
"""

from .types import (
    ByKnownId,
    ByNamePattern,
    ByRegionMap,
    ImageSelector,
    KnownImage,
    ProvisioningPlan,
    ScalingProcess,
    ScheduledShutdown,
    UpdatePolicy,
    UserDataStrategy,
)

from .user_data import (
    DirectoryTemplateSource,
    StaticTemplateSource,
    TemplateSource,
    render_document_user_data,
    render_shell_user_data,
)

from .runner_plan import resolve_runner_plan, select_handler
from .update_policy import resolve_update_policy
from .fleet_plan import FleetPlan, resolve_fleet, resolve_fleet_plan

__all__ = [
    "ByKnownId",
    "ByNamePattern",
    "ByRegionMap",
    "ImageSelector",
    "KnownImage",
    "ProvisioningPlan",
    "ScalingProcess",
    "ScheduledShutdown",
    "UpdatePolicy",
    "UserDataStrategy",
    "DirectoryTemplateSource",
    "StaticTemplateSource",
    "TemplateSource",
    "render_document_user_data",
    "render_shell_user_data",
    "resolve_runner_plan",
    "select_handler",
    "resolve_update_policy",
    "FleetPlan",
    "resolve_fleet",
    "resolve_fleet_plan",
]
