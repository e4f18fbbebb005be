"""
Reconcile decisions — what the install task is going to do.

Derived per invocation from (installed state, requested state); never stored.
"""

from __future__ import annotations

from dataclasses import dataclass

from puppet_agent_tasks.core.models.version import ResolvedVersion, SemVer


@dataclass(frozen=True)
class NoOp:
    """Nothing to change. Still a successful outcome."""

    reason: str

    kind = "noop"


@dataclass(frozen=True)
class Install:
    """Fresh install on a host without the agent."""

    target: ResolvedVersion

    kind = "install"


@dataclass(frozen=True)
class Upgrade:
    """Replace the installed version.

    ``current`` is None when the installed version could not be determined.
    A lower target than ``current`` is a downgrade, handled the same way.
    """

    current: SemVer | None
    target: ResolvedVersion

    kind = "upgrade"

    @property
    def is_downgrade(self) -> bool:
        return self.current is not None and self.target.semver < self.current

    @property
    def majors_skipped(self) -> int:
        """Number of intermediate major versions jumped over (5 → 7 is 1)."""
        if self.current is None:
            return 0
        return max(0, self.target.semver.major - self.current.major - 1)


Decision = NoOp | Install | Upgrade
