"""
L5 Orchestration — Agent install/upgrade coordinator.

Ties the layers together for one invocation on one host:

    read state → resolve → decide → gate → act → verify → stop service

Every collaborator is passed in, so the same flow runs against a real
backend or the in-memory ``MockBackend``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from puppet_agent_tasks.adapters.base import PlatformBackend
from puppet_agent_tasks.core.errors import VerificationFailed
from puppet_agent_tasks.core.models.decision import Decision, Install, NoOp, Upgrade
from puppet_agent_tasks.core.models.platform import PlatformSpec
from puppet_agent_tasks.core.models.settings import TaskSettings
from puppet_agent_tasks.core.models.state import InstalledState
from puppet_agent_tasks.core.models.version import VersionSpec
from puppet_agent_tasks.core.services.agent_install.detection.installed_state import (
    read_installed_state,
)
from puppet_agent_tasks.core.services.agent_install.domain.reconcile import (
    decide,
    needs_resolution,
)
from puppet_agent_tasks.core.services.agent_install.execution.service_control import (
    ensure_services_stopped,
    stop_and_wait,
)
from puppet_agent_tasks.core.services.agent_install.resolver.catalog import Catalog
from puppet_agent_tasks.core.services.agent_install.resolver.version_source import resolve

logger = logging.getLogger(__name__)


@dataclass
class InstallOutcome:
    """What one install invocation did."""

    decision: Decision
    before: InstalledState
    after: InstalledState | None = None
    dry_run: bool = False
    service_stopped: bool = False
    messages: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return not isinstance(self.decision, NoOp) and not self.dry_run

    @property
    def output(self) -> str:
        return "\n".join(self.messages)

    def to_dict(self) -> dict[str, Any]:
        state = self.after or self.before
        result: dict[str, Any] = {
            "_output": self.output,
            "action": self.decision.kind,
            "version": state.raw_version,
            "previous_version": self.before.raw_version,
        }
        if self.dry_run:
            result["dry_run"] = True
        if self.service_stopped:
            result["service_stopped"] = True
        return result


def describe(decision: Decision, product_name: str) -> str:
    """One-line human description of a decision."""
    if isinstance(decision, NoOp):
        return decision.reason
    target = decision.target
    collection = target.collection.name
    if isinstance(decision, Install):
        return f"Installed {product_name} {target} ({collection})"
    if decision.current is None:
        return f"Replaced {product_name} of unknown version with {target} ({collection})"
    verb = "Downgraded" if decision.is_downgrade else "Upgraded"
    return f"{verb} {product_name} from {decision.current} to {target} ({collection})"


def reconcile_agent(
    spec: VersionSpec,
    *,
    platform: PlatformSpec,
    backend: PlatformBackend,
    catalog: Catalog,
    settings: TaskSettings,
    stop_service: bool = False,
    dry_run: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> InstallOutcome:
    """Bring the agent on ``backend``'s host to the requested version.

    Args:
        spec: Requested collection and version.
        platform: Detected platform of the host.
        backend: Installer backend for that platform.
        catalog: Where available versions are looked up.
        settings: Task settings (names, service polling).
        stop_service: Stop the agent service after installing.
        dry_run: Decide but do not act.
        sleep: Injected for service polling.

    Returns:
        InstallOutcome; a NoOp is a successful outcome.

    Raises:
        AgentTaskError: any failure along the way (see ``core.errors``).
    """
    product = settings.product_name
    before = read_installed_state(backend)
    logger.info(
        "Installed: %s (source: %s); requested: %s %s on %s",
        before.raw_version if before.present else "none",
        before.source,
        spec.collection,
        spec.requested if spec.explicit else "(no version)",
        platform,
    )

    resolved = resolve(spec, platform, catalog) if needs_resolution(before, spec) else None
    decision = decide(before, spec, resolved, product)
    outcome = InstallOutcome(decision=decision, before=before, dry_run=dry_run)

    if isinstance(decision, NoOp):
        logger.info(decision.reason)
        outcome.messages.append(decision.reason)
        return outcome

    if isinstance(decision, Upgrade) and decision.majors_skipped:
        warning = (
            f"Upgrading across {decision.majors_skipped + 1} major versions "
            f"({decision.current} -> {decision.target.semver}); intermediate collections are skipped"
        )
        logger.warning(warning)
        outcome.messages.append(warning)

    if dry_run:
        outcome.messages.append(f"[dry-run] {describe(decision, product)}")
        return outcome

    ensure_services_stopped(backend, settings.blocking_services)

    logger.info("Applying %s of %s %s", decision.kind, settings.package_name, decision.target)
    backend.install(decision)
    outcome.after = _verify(backend, decision)
    outcome.messages.append(describe(decision, product))

    if stop_service:
        stop_and_wait(backend, settings.agent_service, settings.service_stop, sleep=sleep)
        outcome.service_stopped = True
        outcome.messages.append(f"Stopped service {settings.agent_service}")

    return outcome


def _verify(backend: PlatformBackend, decision: Install | Upgrade) -> InstalledState:
    after = read_installed_state(backend)
    expected = decision.target.semver
    if after.version != expected:
        found = (after.raw_version or "an unknown version") if after.present else "nothing"
        raise VerificationFailed(
            f"Post-install verification failed: expected {backend.settings.package_name} "
            f"{expected}, found {found}",
            details={"expected": str(expected), "found": after.raw_version},
        )
    return after
