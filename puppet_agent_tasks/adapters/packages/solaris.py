"""
Solaris 11 backend — IPS package archives (``.p5p``).
"""

from __future__ import annotations

import re
import shutil
from pathlib import Path

from puppet_agent_tasks.adapters.base import PlatformBackend
from puppet_agent_tasks.adapters.shell.command import CommandResult
from puppet_agent_tasks.core.models.decision import Install, Upgrade
from puppet_agent_tasks.core.models.state import PackageQuery

_PKG_VERSION = re.compile(r"^\s*Version:\s*(\S+)", re.MULTILINE)

# pkg(1): "No updates necessary for this image."
_EXIT_NOTHING_TO_DO = 4


class SolarisBackend(PlatformBackend):
    lock_patterns = (
        re.compile(r"currently in use by another package client"),
        re.compile(r"image is currently locked", re.IGNORECASE),
    )

    @property
    def name(self) -> str:
        return "ips"

    def is_available(self) -> bool:
        return shutil.which("pkg") is not None

    def query_package(self) -> PackageQuery:
        result = self.runner.run(["pkg", "info", self.settings.package_name])
        if not result.ok:
            return PackageQuery(installed=False, database="ips")
        match = _PKG_VERSION.search(result.stdout)
        return PackageQuery(installed=True, version=match.group(1) if match else None, database="ips")

    def _install_command(self, artifact: Path, decision: Install | Upgrade) -> list[str]:
        package = self.settings.package_name
        if isinstance(decision, Upgrade):
            # Pinning the version lets IPS move in either direction
            return ["pkg", "update", "-g", str(artifact), f"{package}@{decision.target.full_version}"]
        return ["pkg", "install", "-g", str(artifact), package]

    def _check_install(self, result: CommandResult, decision: Install | Upgrade) -> None:
        if result.returncode == _EXIT_NOTHING_TO_DO:
            return
        super()._check_install(result, decision)
