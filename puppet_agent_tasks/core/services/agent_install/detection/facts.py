"""
L3 Detection — Local host facts.

Read-only probes for OS name, release and architecture of the machine
the task runs on.  The platform detector normalizes what this returns.
"""

from __future__ import annotations

import logging
import platform
from pathlib import Path

from puppet_agent_tasks.core.models.platform import HostFacts

logger = logging.getLogger(__name__)

OS_RELEASE = Path("/etc/os-release")


def parse_os_release(text: str) -> dict[str, str]:
    """Parse os-release(5) ``KEY=value`` lines into a dict."""
    values: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip('"').strip("'")
    return values


def gather_local_facts(os_release: Path = OS_RELEASE) -> HostFacts:
    """Probe the local machine.

    Linux hosts are identified from os-release ``ID`` / ``VERSION_ID``;
    macOS from ``platform.mac_ver``; Windows and Solaris from the kernel
    release string.
    """
    system = platform.system()
    machine = platform.machine()

    if system == "Linux":
        try:
            info = parse_os_release(os_release.read_text(encoding="utf-8"))
        except OSError as e:
            logger.warning("Cannot read %s: %s", os_release, e)
            info = {}
        return HostFacts(
            os_name=info.get("ID", "linux"),
            os_version=info.get("VERSION_ID", ""),
            arch=machine,
        )

    if system == "Darwin":
        return HostFacts(os_name="osx", os_version=platform.mac_ver()[0], arch=machine)

    if system == "Windows":
        return HostFacts(os_name="windows", os_version=platform.release(), arch=machine)

    if system == "SunOS":
        return HostFacts(os_name="solaris", os_version=platform.release(), arch=machine)

    return HostFacts(os_name=system or "unknown", os_version=platform.release(), arch=machine)
