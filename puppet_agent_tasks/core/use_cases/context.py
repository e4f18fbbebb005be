"""
Task context — the per-invocation wiring shared by every use case.

Loads settings, detects the platform and picks the backend.  Also owns
the task boundary: ``run_task`` turns every failure into a
``status=failure`` result instead of letting it escape.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from puppet_agent_tasks.adapters.base import PlatformBackend
from puppet_agent_tasks.adapters.registry import backend_for
from puppet_agent_tasks.core.config.loader import ConfigError, load_settings
from puppet_agent_tasks.core.errors import AgentTaskError
from puppet_agent_tasks.core.models.platform import HostFacts, PlatformSpec
from puppet_agent_tasks.core.models.settings import TaskSettings
from puppet_agent_tasks.core.models.task import TaskResult, now_iso
from puppet_agent_tasks.core.services.agent_install.detection.facts import gather_local_facts
from puppet_agent_tasks.core.services.agent_install.detection.platform import (
    detect_platform,
    facts_from_platform_string,
)

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR = "puppet_agent/unexpected-error"


@dataclass
class TaskContext:
    """Everything a task needs to talk to one host."""

    settings: TaskSettings
    facts: HostFacts
    platform: PlatformSpec
    backend: PlatformBackend


def host_facts(platform: str | None = None) -> HostFacts:
    """Facts from a platform string when given, else from the local machine."""
    if platform:
        return facts_from_platform_string(platform)
    return gather_local_facts()


def load_context(
    *,
    config_path: Path | None = None,
    platform: str | None = None,
    overrides: dict[str, Any] | None = None,
    install_options: list[str] | None = None,
    backend: PlatformBackend | None = None,
) -> TaskContext:
    """Build the context for one invocation.

    Args:
        config_path: Explicit settings file.
        platform: Platform string (``el-7-x86_64``) overriding local detection.
        overrides: Settings overrides from task parameters.
        install_options: Extra installer arguments (MSI properties).
        backend: Pre-built backend; its platform is used as-is.

    Raises:
        ConfigError: invalid settings.
        UnsupportedPlatform: platform cannot be mapped to a backend.
    """
    settings = load_settings(config_path, overrides=overrides)

    if backend is not None:
        facts = HostFacts(
            os_name=backend.platform.distro,
            os_version=backend.platform.distro_version,
            arch=backend.platform.arch,
        )
        return TaskContext(settings, facts, backend.platform, backend)

    facts = host_facts(platform)
    spec = detect_platform(facts)
    logger.info("Platform: %s (%s, %s)", spec, spec.family.value, spec.package_manager)
    chosen = backend_for(spec, settings, install_options=install_options)
    return TaskContext(settings, facts, spec, chosen)


def run_task(task: str, body: Callable[[], dict[str, Any]], target: str = "localhost") -> TaskResult:
    """Run ``body`` at the task boundary.

    Returns:
        ``success`` with body's result, or ``failure`` with an ``_error``
        object for any exception.
    """
    started_at = now_iso()
    start = time.monotonic()

    def _timing() -> dict[str, Any]:
        return {
            "target": target,
            "started_at": started_at,
            "ended_at": now_iso(),
            "duration_ms": int((time.monotonic() - start) * 1000),
        }

    try:
        result = body()
    except AgentTaskError as e:
        logger.error("%s failed: %s", task, e.msg)
        return TaskResult.failure(task, **e.to_error(), **_timing())
    except ConfigError as e:
        logger.error("%s failed: %s", task, e)
        return TaskResult.failure(task, str(e), kind=ConfigError.kind, **_timing())
    except Exception as e:
        logger.exception("%s failed unexpectedly", task)
        return TaskResult.failure(
            task,
            f"Unexpected error: {e}",
            kind=UNEXPECTED_ERROR,
            details={"exception": type(e).__name__},
            **_timing(),
        )

    return TaskResult.success(task, result, **_timing())
