"""
apt backend — Debian and Ubuntu.

Installs the downloaded ``.deb`` through ``apt-get`` so that its
dependencies are pulled in, and allows downgrades.
"""

from __future__ import annotations

import re
import shutil
from pathlib import Path

from puppet_agent_tasks.adapters.base import PlatformBackend
from puppet_agent_tasks.core.models.decision import Install, Upgrade
from puppet_agent_tasks.core.models.state import PackageQuery


class AptBackend(PlatformBackend):
    lock_patterns = (
        re.compile(r"Could not get lock"),
        re.compile(r"Unable to acquire the dpkg frontend lock"),
        re.compile(r"Unable to lock the administration directory"),
        re.compile(r"is another process using it\?"),
    )

    @property
    def name(self) -> str:
        return "apt"

    def is_available(self) -> bool:
        return shutil.which("apt-get") is not None and shutil.which("dpkg-query") is not None

    def query_package(self) -> PackageQuery:
        result = self.runner.run([
            "dpkg-query", "-W", "-f=${Status} ${Version}", self.settings.package_name,
        ])
        # Removed-but-not-purged packages report "deinstall ok config-files"
        if not result.ok or "install ok installed" not in result.stdout:
            return PackageQuery(installed=False, database="dpkg")
        version = result.stdout.strip().split()[-1]
        return PackageQuery(installed=True, version=version, database="dpkg")

    def _install_env(self) -> dict[str, str]:
        return {"DEBIAN_FRONTEND": "noninteractive"}

    def _install_command(self, artifact: Path, decision: Install | Upgrade) -> list[str]:
        return [
            "apt-get", "install", "-y",
            "--allow-downgrades",
            "-o", "Dpkg::Options::=--force-confold",
            str(artifact),
        ]
