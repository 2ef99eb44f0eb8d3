"""
types.py - Value objects produced by fleet resolution.

A ProvisioningPlan and an UpdatePolicy are resolved for each runner pool
and handed to the provisioning back-end, which is the only place the two
are combined. Both are immutable and expose ``to_dict()`` for hand-off.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple, Union


# =============================================================================
# Image Selectors
# =============================================================================


class KnownImage(Enum):
    """Platform default images the back-end knows how to look up."""
    WINDOWS_SERVER_2022_ENGLISH_FULL_BASE = "windows-server-2022-english-full-base"
    AMAZON_LINUX_2 = "amazon-linux-2"
    AMAZON_LINUX_2023 = "amazon-linux-2023"


@dataclass(frozen=True)
class ByNamePattern:
    """Look an image up by name pattern and filters."""
    pattern: str
    filters: Tuple[Tuple[str, Tuple[str, ...]], ...] = ()
    kind: str = field(default="name_pattern", init=False)

    def filter_dict(self) -> Dict[str, list]:
        return {name: list(values) for name, values in self.filters}

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "pattern": self.pattern, "filters": self.filter_dict()}


@dataclass(frozen=True)
class ByKnownId:
    """Use the latest image of a known platform default."""
    platform_default: KnownImage
    kind: str = field(default="known_id", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "platform_default": self.platform_default.value}


@dataclass(frozen=True)
class ByRegionMap:
    """Use a fixed image id per region."""
    images: Tuple[Tuple[str, str], ...]
    kind: str = field(default="region_map", init=False)

    @property
    def regions(self) -> Tuple[str, ...]:
        return tuple(region for region, _ in self.images)

    def image_for(self, region: str) -> Optional[str]:
        """Image id for a region, or None if the region is not mapped."""
        return dict(self.images).get(region)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "images": dict(self.images)}


ImageSelector = Union[ByNamePattern, ByKnownId, ByRegionMap]


# =============================================================================
# Provisioning Plan
# =============================================================================


class UserDataStrategy(Enum):
    """How the boot-time user data was built."""
    SHELL_PREAMBLE = "shell_preamble"
    PLACEHOLDER_DOCUMENT = "placeholder_document"


@dataclass(frozen=True)
class Capacity:
    """Fixed scaling group bounds."""
    desired: int
    minimum: int
    maximum: int


@dataclass(frozen=True)
class HealthCheck:
    """Scaling group health check."""
    kind: str = "EC2"
    grace_seconds: int = 3600


@dataclass(frozen=True)
class HostResourceGroup:
    """Dedicated-host resource group the launch template places into.

    ``configuration`` holds ``(type, ((parameter, values), ...))`` entries.
    """
    name: str
    description: str
    configuration: Tuple[Tuple[str, Tuple[Tuple[str, Tuple[str, ...]], ...]], ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "configuration": [
                {
                    "type": config_type,
                    "parameters": [
                        {"name": name, "values": list(values)}
                        for name, values in parameters
                    ],
                }
                for config_type, parameters in self.configuration
            ],
        }


@dataclass(frozen=True)
class InstanceAccess:
    """Instance role grants: managed policies plus the runner secret read."""
    managed_policies: Tuple[str, ...]
    secret_actions: Tuple[str, ...]
    secret_resource: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "managed_policies": list(self.managed_policies),
            "secret_actions": list(self.secret_actions),
            "secret_resource": self.secret_resource,
        }


@dataclass(frozen=True)
class ProvisioningPlan:
    """Resolved provisioning parameters for one runner pool."""
    instance_shape: str
    image_selector: ImageSelector
    user_data: str
    user_data_strategy: UserDataStrategy
    root_volume_gib: int
    resource_group_name: str
    asg_base_name: str
    capacity: Capacity
    host_resource_group: HostResourceGroup
    access: InstanceAccess
    health_check: HealthCheck = field(default_factory=HealthCheck)
    root_device_name: str = "/dev/sda1"
    key_pair_name: str = "runner-key"
    require_imdsv2: bool = True
    tenancy: str = "host"
    license_arn: Optional[str] = None
    instance_tags: Tuple[Tuple[str, str], ...] = (("PVRE-Reporting", "SSM"),)

    @property
    def launch_template_name(self) -> str:
        return f"{self.asg_base_name}LaunchTemplate"

    def to_dict(self) -> Dict[str, Any]:
        """Convert plan to dictionary for the provisioning back-end."""
        return {
            "instance_shape": self.instance_shape,
            "image_selector": self.image_selector.to_dict(),
            "user_data": self.user_data,
            "user_data_strategy": self.user_data_strategy.value,
            "root_volume": {
                "device_name": self.root_device_name,
                "size_gib": self.root_volume_gib,
            },
            "resource_group_name": self.resource_group_name,
            "asg_base_name": self.asg_base_name,
            "launch_template_name": self.launch_template_name,
            "key_pair_name": self.key_pair_name,
            "require_imdsv2": self.require_imdsv2,
            "tenancy": self.tenancy,
            "capacity": {
                "desired": self.capacity.desired,
                "min": self.capacity.minimum,
                "max": self.capacity.maximum,
            },
            "health_check": {
                "type": self.health_check.kind,
                "grace_seconds": self.health_check.grace_seconds,
            },
            "host_resource_group": self.host_resource_group.to_dict(),
            "access": self.access.to_dict(),
            "license_arn": self.license_arn,
            "instance_tags": dict(self.instance_tags),
        }


# =============================================================================
# Update Policy
# =============================================================================


class ScalingProcess(Enum):
    """Auto scaling processes that can be suspended during updates."""
    LAUNCH = "Launch"
    TERMINATE = "Terminate"
    HEALTH_CHECK = "HealthCheck"
    REPLACE_UNHEALTHY = "ReplaceUnhealthy"
    AZ_REBALANCE = "AZRebalance"
    ALARM_NOTIFICATION = "AlarmNotification"
    SCHEDULED_ACTIONS = "ScheduledActions"
    ADD_TO_LOAD_BALANCER = "AddToLoadBalancer"
    INSTANCE_REFRESH = "InstanceRefresh"


@dataclass(frozen=True)
class ScheduledShutdown:
    """One-shot capacity drop scheduled after deployment."""
    stage_gated: bool
    delay: timedelta
    target_capacity: int
    start_time: datetime

    def start_time_iso(self) -> str:
        """UTC start time in ISO-8601 with a ``Z`` suffix."""
        utc = self.start_time.astimezone(timezone.utc)
        return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage_gated": self.stage_gated,
            "delay_seconds": int(self.delay.total_seconds()),
            "desired_capacity": self.target_capacity,
            "start_time": self.start_time_iso(),
        }


@dataclass(frozen=True)
class UpdatePolicy:
    """Rolling update bounds for a runner scaling group."""
    max_batch_size: int
    min_instances_in_service: int
    suspended_processes: FrozenSet[ScalingProcess]
    wait_on_resource_signals: bool = False
    scheduled_shutdown: Optional[ScheduledShutdown] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_batch_size": self.max_batch_size,
            "min_instances_in_service": self.min_instances_in_service,
            "suspend_processes": sorted(p.value for p in self.suspended_processes),
            "wait_on_resource_signals": self.wait_on_resource_signals,
            "scheduled_shutdown": (
                self.scheduled_shutdown.to_dict() if self.scheduled_shutdown else None
            ),
        }
