"""
Install use case — install, upgrade or leave alone the agent package.

Validates task parameters, builds the invocation context and hands off
to the agent-install orchestrator.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from puppet_agent_tasks.adapters.base import PlatformBackend
from puppet_agent_tasks.core.models.params import InstallParams
from puppet_agent_tasks.core.models.task import TaskResult
from puppet_agent_tasks.core.models.version import VersionSpec
from puppet_agent_tasks.core.services.agent_install.orchestration.orchestrator import (
    reconcile_agent,
)
from puppet_agent_tasks.core.services.agent_install.resolver.catalog import (
    Catalog,
    catalog_from_settings,
)
from puppet_agent_tasks.core.use_cases.context import load_context, run_task

logger = logging.getLogger(__name__)


def install_agent(
    params: dict[str, Any] | InstallParams,
    *,
    config_path: Path | None = None,
    platform: str | None = None,
    backend: PlatformBackend | None = None,
    catalog: Catalog | None = None,
    dry_run: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> TaskResult:
    """Run the ``install`` task.

    Args:
        params: Raw task parameters or already-validated ``InstallParams``.
        config_path: Explicit settings file.
        platform: Platform string overriding local detection.
        backend: Pre-built backend (tests, embedding).
        catalog: Pre-built catalog; default comes from settings.
        dry_run: Decide but do not act (also set by ``_noop``).
        sleep: Injected for service polling.

    Returns:
        TaskResult with ``_output`` on success, ``_error`` on failure.
    """

    def _body() -> dict[str, Any]:
        p = params if isinstance(params, InstallParams) else InstallParams.from_mapping(params)
        spec = VersionSpec.from_params(p.collection, p.version)
        ctx = load_context(
            config_path=config_path,
            platform=platform,
            overrides=p.settings_overrides(),
            install_options=p.install_options,
            backend=backend,
        )
        outcome = reconcile_agent(
            spec,
            platform=ctx.platform,
            backend=ctx.backend,
            catalog=catalog or catalog_from_settings(ctx.settings.catalog),
            settings=ctx.settings,
            stop_service=p.stop_service,
            dry_run=dry_run or p.noop,
            sleep=sleep,
        )
        return outcome.to_dict()

    return run_task("install", _body)
