"""
Version use case — report the installed agent version and its source.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from puppet_agent_tasks.adapters.base import PlatformBackend
from puppet_agent_tasks.core.models.task import TaskResult
from puppet_agent_tasks.core.services.agent_install.detection.installed_state import (
    read_installed_state,
)
from puppet_agent_tasks.core.use_cases.context import load_context, run_task


def get_version(
    *,
    config_path: Path | None = None,
    platform: str | None = None,
    backend: PlatformBackend | None = None,
) -> TaskResult:
    """Run the ``version`` task.

    Returns:
        TaskResult whose result is ``{"version": ..., "source": ...}``.
        Both are None when the agent is not installed; that is still a
        success.
    """

    def _body() -> dict[str, Any]:
        ctx = load_context(config_path=config_path, platform=platform, backend=backend)
        state = read_installed_state(ctx.backend)
        return {"version": state.raw_version, "source": state.source}

    return run_task("version", _body)
