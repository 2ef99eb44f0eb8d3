# fleet/validator/catalog.py
"""Catalog-wide checks that report every problem at once.

Host resource group names cannot repeat within an account, so two runner
types that share (repo, platform, version major, arch) would be rejected by
the provisioning back-end. This catches that before anything is planned.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from fleet.config.runner_config import PlatformType, RunnerCatalog
from fleet.validator.errors import ValidationResult

logger = logging.getLogger(__name__)


def _location(index: int, name: str) -> str:
    return f"runners[{index}]:{name}"


def validate_runner_catalog(catalog: RunnerCatalog) -> ValidationResult:
    """Validate a runner catalog.

    Errors:
        DUPLICATE_RESOURCE_GROUP: two runner types map to one host group name.

    Warnings:
        SCALED_TO_ZERO: a pool with no desired instances.
        REGION_LIMITED_IMAGE: generic Linux images only exist in mapped regions.
    """
    result = ValidationResult()
    seen: Dict[str, List[int]] = {}

    for index, runner_type in enumerate(catalog.runner_types):
        name = runner_type.host_group_name
        seen.setdefault(name, []).append(index)

        if runner_type.desired_instances == 0:
            result.add_warning(
                "SCALED_TO_ZERO",
                _location(index, name),
                "has desiredInstances 0 and will run no runners",
                "Set desiredInstances above 0 if this pool should serve jobs",
                index,
            )

        if runner_type.platform is PlatformType.LINUX_OTHER:
            result.add_warning(
                "REGION_LIMITED_IMAGE",
                _location(index, name),
                "uses fixed images mapped only for us-east-1 and us-east-2",
                "Deploy to a mapped region or use amazonlinux",
                index,
            )

    for name, indexes in seen.items():
        if len(indexes) < 2:
            continue
        for index in indexes[1:]:
            result.add_error(
                "DUPLICATE_RESOURCE_GROUP",
                _location(index, name),
                f"duplicates the host group of runners[{indexes[0]}]",
                "Give each (repo, platform, major version, arch) one entry",
                index,
            )

    if result.has_errors():
        logger.debug("Runner catalog failed validation:\n%s", result.format_errors())
    return result
