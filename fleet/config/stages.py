"""Pipeline stages a runner fleet can be deployed at."""

from __future__ import annotations

from enum import Enum


class Stage(Enum):
    """Named point in the environment promotion pipeline."""
    PIPELINE = "Pipeline"
    BETA = "Beta"
    PROD = "Prod"
    RELEASE = "Release"

    @property
    def label(self) -> str:
        """Runner label exported to the boot script ("release" or "test")."""
        return "release" if self is Stage.RELEASE else "test"


def parse_stage(value: str) -> Stage:
    """Parse a stage name case-insensitively.

    Raises:
        ValueError: If the name is not a known stage.
    """
    for stage in Stage:
        if stage.value.lower() == str(value).strip().lower():
            return stage
    valid = ", ".join(s.value for s in Stage)
    raise ValueError(f"Unknown stage '{value}' (valid: {valid})")
