"""
Facts use case — show what the platform detector makes of a host.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from puppet_agent_tasks.core.models.task import TaskResult
from puppet_agent_tasks.core.use_cases.context import load_context, run_task


def get_facts(*, config_path: Path | None = None, platform: str | None = None) -> TaskResult:
    """Raw facts, normalized platform and the backend that would be used."""

    def _body() -> dict[str, Any]:
        ctx = load_context(config_path=config_path, platform=platform)
        return {
            "facts": ctx.facts.model_dump(),
            "platform": {**ctx.platform.model_dump(mode="json"), "tag": ctx.platform.tag},
            "backend": ctx.backend.name,
            "backend_available": ctx.backend.is_available(),
        }

    return run_task("facts", _body)
