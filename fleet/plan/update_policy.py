"""
update_policy.py - Rolling update policy for runner scaling groups.

Runner fleets have fixed, externally managed capacity and the runners are
stateless, so updates replace one instance at a time and may drop the pool
to zero while doing so. Beta fleets also get a one-shot spin-down a day
after deployment so forgotten test capacity terminates itself.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fleet.config.stages import Stage
from fleet.plan.types import ScalingProcess, ScheduledShutdown, UpdatePolicy

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 1
MIN_INSTANCES_IN_SERVICE = 0
BETA_SHUTDOWN_DELAY = timedelta(days=1)
BETA_SHUTDOWN_CAPACITY = 0

SUSPENDED_PROCESSES = frozenset(
    {
        ScalingProcess.HEALTH_CHECK,
        ScalingProcess.REPLACE_UNHEALTHY,
        ScalingProcess.AZ_REBALANCE,
        ScalingProcess.ALARM_NOTIFICATION,
        ScalingProcess.SCHEDULED_ACTIONS,
    }
)


def resolve_update_policy(stage: Stage, now: Optional[datetime] = None) -> UpdatePolicy:
    """Resolve the update policy for a stage.

    Args:
        stage: Pipeline stage being deployed.
        now: Resolution time; defaults to the current UTC time.

    Returns:
        UpdatePolicy with a scheduled shutdown only for Beta.
    """
    scheduled_shutdown = None
    if stage is Stage.BETA:
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        scheduled_shutdown = ScheduledShutdown(
            stage_gated=True,
            delay=BETA_SHUTDOWN_DELAY,
            target_capacity=BETA_SHUTDOWN_CAPACITY,
            start_time=now + BETA_SHUTDOWN_DELAY,
        )
        logger.debug(
            "Scheduling beta spin-down at %s", scheduled_shutdown.start_time_iso()
        )

    return UpdatePolicy(
        max_batch_size=MAX_BATCH_SIZE,
        min_instances_in_service=MIN_INSTANCES_IN_SERVICE,
        suspended_processes=SUSPENDED_PROCESSES,
        wait_on_resource_signals=False,
        scheduled_shutdown=scheduled_shutdown,
    )
