"""
user_data.py - Boot-time user data for runner instances.

Two strategies exist because the operating systems boot differently:

- SHELL_PREAMBLE: a short generated bash preamble exporting LABEL_STAGE,
  REPO and REGION, followed by the template script body (macOS and Linux).
- PLACEHOLDER_DOCUMENT: literal ``<STAGE>``, ``<REPO>`` and ``<REGION>``
  tokens substituted inside a structured document (Windows, whose user data
  has to stay a YAML document so it can run as admin).

Templates come from an injected TemplateSource so resolution never opens
files on its own.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Mapping, Optional, Protocol

from fleet.config.stages import Stage
from fleet.plan.types import UserDataStrategy

logger = logging.getLogger(__name__)

SETUP_RUNNER_SCRIPT = "setup-runner.sh"
SETUP_LINUX_RUNNER_SCRIPT = "setup-linux-runner.sh"
WINDOWS_USER_DATA_DOCUMENT = "windows-runner-user-data.yaml"

TEMPLATE_DIR_VAR = "FLEET_TEMPLATE_DIR"
_DEFAULT_TEMPLATE_DIR = Path(__file__).parent.parent / "scripts"

STAGE_PLACEHOLDER = "<STAGE>"
REPO_PLACEHOLDER = "<REPO>"
REGION_PLACEHOLDER = "<REGION>"


# =============================================================================
# Template Sources
# =============================================================================


class TemplateSource(Protocol):
    """Anything that returns a template body by name."""

    def get(self, name: str) -> str:
        ...


class DirectoryTemplateSource:
    """Reads templates from a directory.

    The directory defaults to ``FLEET_TEMPLATE_DIR`` or the packaged
    ``fleet/scripts``. Bodies are cached per instance.
    """

    def __init__(self, root: Optional[Path] = None):
        if root is None:
            override = os.environ.get(TEMPLATE_DIR_VAR)
            root = Path(override) if override else _DEFAULT_TEMPLATE_DIR
        self.root = Path(root)
        self._cache: Dict[str, str] = {}

    def get(self, name: str) -> str:
        if name in self._cache:
            return self._cache[name]

        path = self.root / name
        if not path.is_file():
            raise FileNotFoundError(f"User data template not found: {path}")

        body = path.read_text(encoding="utf-8")
        logger.debug("Loaded user data template %s", path)
        self._cache[name] = body
        return body


class StaticTemplateSource:
    """Serves templates from an in-memory mapping."""

    def __init__(self, templates: Mapping[str, str]):
        self._templates = dict(templates)

    def get(self, name: str) -> str:
        try:
            return self._templates[name]
        except KeyError:
            raise FileNotFoundError(f"User data template not found: {name}") from None


# =============================================================================
# Rendering
# =============================================================================


def render_shell_user_data(
    template: str, stage: Stage, repo: str, region: Optional[str]
) -> str:
    """Generated bash preamble followed by the template script."""
    preamble = (
        "#!/bin/bash\n"
        f"LABEL_STAGE={stage.label}\n"
        f"REPO={repo}\n"
        f"REGION={region or ''}\n"
    )
    return preamble + template


def render_document_user_data(
    template: str, stage: Stage, repo: str, region: Optional[str]
) -> str:
    """Substitute every placeholder token in a user data document.

    A missing region becomes an empty string.
    """
    return (
        template.replace(STAGE_PLACEHOLDER, stage.label)
        .replace(REPO_PLACEHOLDER, repo)
        .replace(REGION_PLACEHOLDER, region or "")
    )


_RENDERERS = {
    UserDataStrategy.SHELL_PREAMBLE: render_shell_user_data,
    UserDataStrategy.PLACEHOLDER_DOCUMENT: render_document_user_data,
}


def render_user_data(
    strategy: UserDataStrategy,
    templates: TemplateSource,
    template_name: str,
    stage: Stage,
    repo: str,
    region: Optional[str],
) -> str:
    """Fetch a template and render it with the given strategy."""
    template = templates.get(template_name)
    logger.debug("Rendering %s with %s", template_name, strategy.value)
    return _RENDERERS[strategy](template, stage, repo, region)
