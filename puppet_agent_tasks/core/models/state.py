"""
Installed state and service state of the agent on the target host.

Read fresh on every invocation and never persisted.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from puppet_agent_tasks.core.models.version import SemVer


class InstalledState(BaseModel):
    """What the host currently has installed.

    ``present=True`` with ``version=None`` is the degraded case: the package
    is there but its version could not be determined.
    """

    model_config = ConfigDict(frozen=True)

    present: bool = False
    version: SemVer | None = None
    raw_version: str | None = None
    source: str | None = None

    @classmethod
    def absent(cls) -> InstalledState:
        return cls(present=False)

    @property
    def degraded(self) -> bool:
        return self.present and self.version is None


class PackageQuery(BaseModel):
    """Answer of the package database for the agent package."""

    model_config = ConfigDict(frozen=True)

    installed: bool = False
    version: str | None = None
    database: str = ""


class ServiceStatus(str, Enum):
    """Coarse service state as reported by the service manager."""

    RUNNING = "running"
    STOPPED = "stopped"
    UNKNOWN = "unknown"
