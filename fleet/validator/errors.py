# fleet/validator/errors.py
"""Error types and validation issue collection.

Resolution is deterministic, so none of the exceptions here are retried:
each one points at a configuration defect that has to be fixed before
re-running.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

# Message template: [FAIL] TYPE: location problem -> Fix: action
ERROR_TEMPLATE = "[FAIL] {issue_type}: {location} {problem}\n  Fix: {fix_action}"
WARNING_TEMPLATE = "[WARN] {issue_type}: {location} {problem}\n  Fix: {fix_action}"


# =============================================================================
# Error Types
# =============================================================================


class FleetError(Exception):
    """Base exception for fleet resolution errors."""

    pass


class ConfigValidationError(FleetError):
    """Raised when the environment mapping is missing or malformed."""

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f"Error: {field} must be specified.")


class InvalidRunnerConfigurationError(FleetError):
    """Raised when a runner cannot be planned from the values it was given."""

    def __init__(self, message: str, stage: Optional[str] = None):
        self.stage = stage
        if stage:
            message = f"{message} (stage: {stage})"
        super().__init__(message)


class UnsupportedPlatformError(FleetError):
    """Raised when a platform/arch combination has no provisioning handler."""

    def __init__(self, platform: str, arch: Optional[str] = None):
        self.platform = platform
        self.arch = arch
        msg = f"Unsupported runner platform '{platform}'"
        if arch:
            msg += f" with arch '{arch}'"
        super().__init__(msg)


# =============================================================================
# Validation Collection
# =============================================================================


class ValidationIssue:
    """Structured catalog validation issue."""

    def __init__(
        self,
        issue_type: str,
        location: str,
        problem: str,
        fix_action: str,
        index: Optional[int] = None,
    ):
        self.issue_type = issue_type
        self.location = location
        self.problem = problem
        self.fix_action = fix_action
        self.index = index

    def format(self, template: str = ERROR_TEMPLATE) -> str:
        """Format issue message."""
        return template.format(
            issue_type=self.issue_type,
            location=self.location,
            problem=self.problem,
            fix_action=self.fix_action,
        )

    def sort_key(self) -> Tuple[int, str]:
        """Sort key for deterministic ordering."""
        return (self.index if self.index is not None else -1, self.location)

    def to_dict(self) -> Dict[str, Any]:
        """Convert issue to dictionary for JSON serialization."""
        return {
            "type": self.issue_type,
            "location": self.location,
            "problem": self.problem,
            "fix_action": self.fix_action,
            "index": self.index,
        }


class ValidationResult:
    """Collects validation errors and warnings."""

    def __init__(self):
        self.errors: List[ValidationIssue] = []
        self.warnings: List[ValidationIssue] = []

    def add_error(
        self,
        issue_type: str,
        location: str,
        problem: str,
        fix_action: str,
        index: Optional[int] = None,
    ):
        """Add a validation error."""
        self.errors.append(
            ValidationIssue(issue_type, location, problem, fix_action, index)
        )

    def add_warning(
        self,
        issue_type: str,
        location: str,
        problem: str,
        fix_action: str,
        index: Optional[int] = None,
    ):
        """Add a validation warning (valid, but worth a second look)."""
        self.warnings.append(
            ValidationIssue(issue_type, location, problem, fix_action, index)
        )

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    def sorted_errors(self) -> List[ValidationIssue]:
        """Get errors in deterministic order."""
        return sorted(self.errors, key=lambda e: e.sort_key())

    def sorted_warnings(self) -> List[ValidationIssue]:
        """Get warnings in deterministic order."""
        return sorted(self.warnings, key=lambda e: e.sort_key())

    def format_errors(self) -> str:
        """All errors joined into one message block."""
        return "\n".join(e.format() for e in self.sorted_errors())

    def format_warnings(self) -> str:
        return "\n".join(w.format(WARNING_TEMPLATE) for w in self.sorted_warnings())

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary for JSON serialization."""
        return {
            "errors": [e.to_dict() for e in self.sorted_errors()],
            "warnings": [w.to_dict() for w in self.sorted_warnings()],
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "status": "FAIL" if self.has_errors() else "PASS",
        }
