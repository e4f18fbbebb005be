"""
Platform models — what the target host is and how it installs packages.

``HostFacts`` is the raw input gathered from the host (or handed in by the
orchestrator).  ``PlatformSpec`` is the normalized result of the platform
detector and is immutable for the rest of the invocation.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class PlatformFamily(str, Enum):
    """Package-format family of a host."""

    LINUX_DEB = "linux-deb"
    LINUX_RPM = "linux-rpm"
    WINDOWS = "windows"
    MACOS = "macos"
    SOLARIS = "solaris"


class HostFacts(BaseModel):
    """Raw OS facts as reported by the host.

    Values are whatever the host says (``"CentOS Linux"``, ``"18.04"``,
    ``"amd64"``); the platform detector is responsible for normalizing them.
    """

    model_config = ConfigDict(frozen=True)

    os_name: str
    os_version: str = ""
    arch: str = ""


class PlatformSpec(BaseModel):
    """Normalized platform of the target host.

    ``arch`` follows the family's own naming convention: ``amd64`` for
    Debian packages, ``x86_64`` for RPMs, ``x64``/``x86`` for MSIs.
    """

    model_config = ConfigDict(frozen=True)

    family: PlatformFamily
    distro: str
    distro_version: str
    arch: str
    package_manager: str
    codename: str | None = None

    @property
    def tag(self) -> str:
        """Short platform tag, e.g. ``el-7-x86_64`` or ``ubuntu-18.04-amd64``."""
        return f"{self.distro}-{self.distro_version}-{self.arch}"

    @property
    def is_windows(self) -> bool:
        return self.family is PlatformFamily.WINDOWS

    def __str__(self) -> str:
        return self.tag
