"""
Backend registry — maps a detected platform to its backend class.

The orchestrator never picks a backend by looking at OS strings; it asks
the registry once per invocation with the detector's ``PlatformSpec``.
"""

from __future__ import annotations

import logging
from typing import Any

from puppet_agent_tasks.adapters.base import PlatformBackend
from puppet_agent_tasks.adapters.packages.apt import AptBackend
from puppet_agent_tasks.adapters.packages.macos import MacPkgBackend
from puppet_agent_tasks.adapters.packages.msi import MsiBackend
from puppet_agent_tasks.adapters.packages.rpm import DnfBackend, YumBackend, ZypperBackend
from puppet_agent_tasks.adapters.packages.solaris import SolarisBackend
from puppet_agent_tasks.core.errors import UnsupportedPlatform
from puppet_agent_tasks.core.models.platform import PlatformSpec
from puppet_agent_tasks.core.models.settings import TaskSettings

logger = logging.getLogger(__name__)

BACKENDS: dict[str, type[PlatformBackend]] = {
    "apt": AptBackend,
    "yum": YumBackend,
    "dnf": DnfBackend,
    "zypper": ZypperBackend,
    "msi": MsiBackend,
    "pkg": MacPkgBackend,
    "ips": SolarisBackend,
}


def backend_for(platform: PlatformSpec, settings: TaskSettings, **kwargs: Any) -> PlatformBackend:
    """Instantiate the backend for ``platform``.

    Extra keyword arguments (runner, policy, sleep, fetch, install_options)
    are passed through to the backend constructor.

    Raises:
        UnsupportedPlatform: if no backend handles the package manager.
    """
    cls = BACKENDS.get(platform.package_manager)
    if cls is None:
        raise UnsupportedPlatform(
            f"No installer backend for package manager '{platform.package_manager}' "
            f"on {platform}",
            details={"platform": platform.tag, "package_manager": platform.package_manager},
        )
    backend = cls(platform, settings, **kwargs)
    logger.debug("Selected backend %r", backend)
    return backend
