"""
runner_plan.py - Resolve a runner type into a provisioning plan.

Dispatch is an explicit table over ``(platform, arch)``: each entry names
the handler that owns that combination and handlers never continue into
one another. Generic Linux is the named default for ``LINUX_OTHER``; any
combination without a handler raises UnsupportedPlatformError instead of
silently receiving Linux compute.

Usage:
    from fleet.plan.runner_plan import resolve_runner_plan

    plan = resolve_runner_plan(runner_type, Stage.BETA, env, templates)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from fleet.config.env_config import EnvironmentSpec
from fleet.config.runner_config import Arch, PlatformType, RunnerType
from fleet.config.stages import Stage
from fleet.plan.types import (
    ByKnownId,
    ByNamePattern,
    ByRegionMap,
    Capacity,
    HealthCheck,
    HostResourceGroup,
    ImageSelector,
    InstanceAccess,
    KnownImage,
    ProvisioningPlan,
    UserDataStrategy,
)
from fleet.plan.user_data import (
    SETUP_LINUX_RUNNER_SCRIPT,
    SETUP_RUNNER_SCRIPT,
    WINDOWS_USER_DATA_DOCUMENT,
    TemplateSource,
    render_user_data,
)
from fleet.validator.errors import (
    InvalidRunnerConfigurationError,
    UnsupportedPlatformError,
)

logger = logging.getLogger(__name__)

ROOT_VOLUME_GIB = 100
HEALTH_CHECK_GRACE_SECONDS = 3600

MAC_ASG = "MacASG"
WINDOWS_ASG = "WindowsASG"
LINUX_ASG = "LinuxASG"

# Linux runners run natively, so they do not need metal hosts.
LINUX_SHAPES = {Arch.ARM: "c7g.large", Arch.X86: "c7a.large"}
MAC_SHAPES = {Arch.ARM: "mac2.metal", Arch.X86: "mac1.metal"}
WINDOWS_SHAPE = "m5zn.metal"

# Fedora Cloud images (https://fedoraproject.org/cloud/download#cloud_launch)
GENERIC_LINUX_IMAGES = {
    Arch.ARM: (
        ("us-east-2", "ami-02f1e969ae0fdff65"),
        ("us-east-1", "ami-0d3825b70fa928886"),
    ),
    Arch.X86: (
        ("us-east-2", "ami-097f74237291abc07"),
        ("us-east-1", "ami-004f552bba0e5f64f"),
    ),
}

INSTANCE_MANAGED_POLICIES = (
    "AmazonSSMManagedInstanceCore",
    "AutoScalingFullAccess",
    "ResourceGroupsandTagEditorFullAccess",
)
SECRET_ACTIONS = (
    "secretsmanager:GetResourcePolicy",
    "secretsmanager:GetSecretValue",
    "secretsmanager:DescribeSecret",
    "secretsmanager:ListSecretVersionIds",
)

HOST_GROUP_DESCRIPTION = "Host resource group for runner infrastructure"
HOST_GROUP_CONFIGURATION = (
    (
        "AWS::EC2::HostManagement",
        (
            ("auto-allocate-host", ("true",)),
            ("auto-release-host", ("true",)),
            ("any-host-based-license-configuration", ("true",)),
        ),
    ),
    (
        "AWS::ResourceGroups::Generic",
        (
            ("allowed-resource-types", ("AWS::EC2::Host",)),
            ("deletion-protection", ("UNLESS_EMPTY",)),
        ),
    ),
)


@dataclass(frozen=True)
class PlatformPlan:
    """The platform-specific part of a plan chosen by a dispatch handler."""
    instance_shape: str
    image_selector: ImageSelector
    strategy: UserDataStrategy
    template_name: str
    asg_base_name: str


# =============================================================================
# Platform Handlers
# =============================================================================


def _plan_mac(runner_type: RunnerType) -> PlatformPlan:
    arch_filter = "arm64_mac" if runner_type.arch is Arch.ARM else "x86_64_mac"
    image = ByNamePattern(
        pattern=f"amzn-ec2-macos-{runner_type.version}*",
        filters=(
            ("virtualization-type", ("hvm",)),
            ("root-device-type", ("ebs",)),
            ("architecture", (arch_filter,)),
            ("owner-alias", ("amazon",)),
        ),
    )
    return PlatformPlan(
        instance_shape=MAC_SHAPES[runner_type.arch],
        image_selector=image,
        strategy=UserDataStrategy.SHELL_PREAMBLE,
        template_name=SETUP_RUNNER_SCRIPT,
        asg_base_name=MAC_ASG,
    )


def _plan_windows(runner_type: RunnerType) -> PlatformPlan:
    return PlatformPlan(
        instance_shape=WINDOWS_SHAPE,
        image_selector=ByKnownId(KnownImage.WINDOWS_SERVER_2022_ENGLISH_FULL_BASE),
        strategy=UserDataStrategy.PLACEHOLDER_DOCUMENT,
        template_name=WINDOWS_USER_DATA_DOCUMENT,
        asg_base_name=WINDOWS_ASG,
    )


def _linux_plan(runner_type: RunnerType, image: ImageSelector) -> PlatformPlan:
    return PlatformPlan(
        instance_shape=LINUX_SHAPES[runner_type.arch],
        image_selector=image,
        strategy=UserDataStrategy.SHELL_PREAMBLE,
        template_name=SETUP_LINUX_RUNNER_SCRIPT,
        asg_base_name=LINUX_ASG,
    )


def _plan_amazon_linux(runner_type: RunnerType) -> PlatformPlan:
    if runner_type.version == "2":
        image = ByKnownId(KnownImage.AMAZON_LINUX_2)
    else:
        image = ByKnownId(KnownImage.AMAZON_LINUX_2023)
    return _linux_plan(runner_type, image)


def _plan_generic_linux(runner_type: RunnerType) -> PlatformPlan:
    return _linux_plan(runner_type, ByRegionMap(GENERIC_LINUX_IMAGES[runner_type.arch]))


PlatformHandler = Callable[[RunnerType], PlatformPlan]

PLATFORM_HANDLERS: Dict[Tuple[PlatformType, Arch], PlatformHandler] = {
    (PlatformType.MAC, Arch.ARM): _plan_mac,
    (PlatformType.MAC, Arch.X86): _plan_mac,
    (PlatformType.WINDOWS, Arch.X86): _plan_windows,
    (PlatformType.WINDOWS, Arch.ARM): _plan_windows,
    (PlatformType.AMAZONLINUX, Arch.X86): _plan_amazon_linux,
    (PlatformType.AMAZONLINUX, Arch.ARM): _plan_amazon_linux,
}

DEFAULT_PLATFORM = PlatformType.LINUX_OTHER
DEFAULT_HANDLER: PlatformHandler = _plan_generic_linux


def select_handler(platform: PlatformType, arch: Arch) -> PlatformHandler:
    """Handler for a platform/arch pair.

    Raises:
        UnsupportedPlatformError: If the pair has no handler and is not the
            generic Linux default.
    """
    handler = PLATFORM_HANDLERS.get((platform, arch))
    if handler is not None:
        return handler
    if platform is DEFAULT_PLATFORM:
        return DEFAULT_HANDLER
    raise UnsupportedPlatformError(platform.value, arch.value)


# =============================================================================
# Resolution
# =============================================================================


def _require_environment(env: Optional[EnvironmentSpec], stage: Stage) -> EnvironmentSpec:
    if env is None:
        raise InvalidRunnerConfigurationError(
            "Runner environment is undefined", stage=stage.value
        )
    if not env.account or not env.region:
        raise InvalidRunnerConfigurationError(
            "Runner environment is missing account or region", stage=stage.value
        )
    return env


def resolve_runner_plan(
    runner_type: RunnerType,
    stage: Stage,
    env: Optional[EnvironmentSpec],
    templates: TemplateSource,
    license_arn: Optional[str] = None,
) -> ProvisioningPlan:
    """Resolve the provisioning plan for one runner pool.

    Args:
        runner_type: Runner pool descriptor.
        stage: Pipeline stage being deployed.
        env: Environment for that stage.
        templates: Source of user data templates.
        license_arn: Optional self-managed license for the launch template.

    Returns:
        The resolved ProvisioningPlan.

    Raises:
        InvalidRunnerConfigurationError: If ``env`` lacks account or region.
        UnsupportedPlatformError: If the platform/arch pair has no handler.
    """
    env = _require_environment(env, stage)
    handler = select_handler(runner_type.platform, runner_type.arch)
    platform_plan = handler(runner_type)
    logger.debug(
        "Resolved %s/%s/%s via %s: shape=%s image=%s",
        runner_type.repo,
        runner_type.platform.value,
        runner_type.arch.value,
        handler.__name__,
        platform_plan.instance_shape,
        platform_plan.image_selector.kind,
    )

    image = platform_plan.image_selector
    if isinstance(image, ByRegionMap) and image.image_for(env.region) is None:
        logger.warning(
            "No %s image mapped for region %s (mapped: %s)",
            runner_type.platform.value,
            env.region,
            ", ".join(image.regions),
        )

    user_data = render_user_data(
        platform_plan.strategy,
        templates,
        platform_plan.template_name,
        stage,
        runner_type.repo,
        env.region,
    )

    resource_group_name = runner_type.host_group_name
    secret_resource = (
        f"arn:aws:secretsmanager:{env.region}:{env.account}"
        f":secret:{runner_type.repo}-runner-reg-key*"
    )

    return ProvisioningPlan(
        instance_shape=platform_plan.instance_shape,
        image_selector=image,
        user_data=user_data,
        user_data_strategy=platform_plan.strategy,
        root_volume_gib=ROOT_VOLUME_GIB,
        resource_group_name=resource_group_name,
        asg_base_name=platform_plan.asg_base_name,
        capacity=Capacity(
            desired=runner_type.desired_instances,
            minimum=0,
            maximum=runner_type.desired_instances,
        ),
        host_resource_group=HostResourceGroup(
            name=resource_group_name,
            description=HOST_GROUP_DESCRIPTION,
            configuration=HOST_GROUP_CONFIGURATION,
        ),
        access=InstanceAccess(
            managed_policies=INSTANCE_MANAGED_POLICIES,
            secret_actions=SECRET_ACTIONS,
            secret_resource=secret_resource,
        ),
        health_check=HealthCheck(grace_seconds=HEALTH_CHECK_GRACE_SECONDS),
        license_arn=license_arn,
    )
