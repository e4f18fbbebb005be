"""
L1 Domain — Reconcile decision (pure).

Compares installed state with the request and decides what to do.
No I/O, no subprocess.
"""

from __future__ import annotations

from puppet_agent_tasks.core.models.decision import Decision, Install, NoOp, Upgrade
from puppet_agent_tasks.core.models.state import InstalledState
from puppet_agent_tasks.core.models.version import ResolvedVersion, VersionSpec

NO_VERSION_REQUESTED = "Version parameter not defined and agent detected. Nothing to do."


def needs_resolution(installed: InstalledState, spec: VersionSpec) -> bool:
    """Whether a catalog lookup is needed before deciding.

    An agent that is present with no version requested is left alone, so
    that case never touches the network.
    """
    return not (installed.present and not spec.explicit)


def decide(
    installed: InstalledState,
    spec: VersionSpec,
    resolved: ResolvedVersion | None,
    product_name: str = "Puppet Agent",
) -> Decision:
    """Pick the action for this invocation.

    Rules, first match wins:
        1. agent absent                      → Install(resolved)
        2. present, no version requested     → NoOp
        3. present, resolved == installed    → NoOp
        4. anything else                     → Upgrade (or downgrade, or
           replacement of an install whose version is unknown)

    Args:
        installed: Current host state.
        spec: The request.
        resolved: Catalog answer; may be None only when
            ``needs_resolution`` returned False.
        product_name: Used in the NoOp message.

    Raises:
        ValueError: if ``resolved`` is missing for a case that needs it.
    """
    if installed.present and not spec.explicit:
        return NoOp(NO_VERSION_REQUESTED)

    if resolved is None:
        raise ValueError("decide() needs a resolved version for this request")

    if not installed.present:
        return Install(resolved)

    if installed.version is not None and resolved.semver == installed.version:
        return NoOp(f"{product_name} {installed.raw_version or installed.version} detected. Nothing to do.")

    return Upgrade(current=installed.version, target=resolved)
