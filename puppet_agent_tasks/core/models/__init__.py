"""
Domain models — Pydantic types for the agent tasks.

All models are re-exported here for convenient access:

    from puppet_agent_tasks.core.models import PlatformSpec, VersionSpec, InstalledState
"""

from puppet_agent_tasks.core.models.decision import Decision, Install, NoOp, Upgrade
from puppet_agent_tasks.core.models.params import InstallParams
from puppet_agent_tasks.core.models.platform import HostFacts, PlatformFamily, PlatformSpec
from puppet_agent_tasks.core.models.state import (
    InstalledState,
    PackageQuery,
    ServiceStatus,
)
from puppet_agent_tasks.core.models.task import TaskResult
from puppet_agent_tasks.core.models.version import (
    Collection,
    RequestedVersion,
    ResolvedVersion,
    SemVer,
    Track,
    VersionSpec,
)

__all__ = [
    # version.py
    "Collection",
    # decision.py
    "Decision",
    # platform.py
    "HostFacts",
    "Install",
    # params.py
    "InstallParams",
    # state.py
    "InstalledState",
    "NoOp",
    "PackageQuery",
    "PlatformFamily",
    "PlatformSpec",
    "RequestedVersion",
    "ResolvedVersion",
    "SemVer",
    "ServiceStatus",
    # task.py
    "TaskResult",
    "Track",
    "Upgrade",
    "VersionSpec",
]
