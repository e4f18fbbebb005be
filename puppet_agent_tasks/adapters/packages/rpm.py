"""
RPM backends — yum (EL < 8, Amazon 2), dnf (EL 8+, Fedora) and zypper (SLES).

All three share the ``rpm -q`` package query and differ in the install
command and the way they report a held lock.
"""

from __future__ import annotations

import re
import shutil
from pathlib import Path

from puppet_agent_tasks.adapters.base import PlatformBackend
from puppet_agent_tasks.core.models.decision import Install, Upgrade
from puppet_agent_tasks.core.models.state import PackageQuery


class RpmBackend(PlatformBackend):
    """Shared rpm database query."""

    tool = "rpm"

    @property
    def name(self) -> str:
        return self.tool

    def is_available(self) -> bool:
        return shutil.which(self.tool) is not None and shutil.which("rpm") is not None

    def query_package(self) -> PackageQuery:
        result = self.runner.run([
            "rpm", "-q", "--qf", "%{VERSION}-%{RELEASE}", self.settings.package_name,
        ])
        if not result.ok:
            # "package puppet-agent is not installed" (exit 1)
            return PackageQuery(installed=False, database="rpm")
        return PackageQuery(installed=True, version=result.stdout.strip() or None, database="rpm")

    def _install_command(self, artifact: Path, decision: Install | Upgrade) -> list[str]:
        verb = "downgrade" if isinstance(decision, Upgrade) and decision.is_downgrade else "install"
        return [self.tool, verb, "-y", str(artifact)]


class YumBackend(RpmBackend):
    tool = "yum"
    lock_patterns = (
        re.compile(r"Another app is currently holding the yum lock"),
        re.compile(r"Existing lock /var/run/yum\.pid"),
    )


class DnfBackend(RpmBackend):
    tool = "dnf"
    lock_patterns = (
        re.compile(r"Waiting for process with pid \d+ to finish"),
        re.compile(r"Failed to obtain the transaction lock"),
        re.compile(r"another copy is running", re.IGNORECASE),
    )


class ZypperBackend(RpmBackend):
    tool = "zypper"
    # ZYPPER_EXIT_ZYPP_LOCKED
    lock_exit_codes = frozenset({7})
    lock_patterns = (re.compile(r"System management is locked"),)

    def _install_command(self, artifact: Path, decision: Install | Upgrade) -> list[str]:
        return [
            "zypper", "--non-interactive", "install",
            "--oldpackage", "--allow-unsigned-rpm",
            str(artifact),
        ]
