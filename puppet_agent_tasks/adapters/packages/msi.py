"""
MSI backend — Windows.

Windows cannot replace binaries that a running service holds open, so
this backend sets ``blocks_while_services_run`` and the orchestrator
refuses to act while ``puppet`` or ``pxp-agent`` are running.  Services
are queried and stopped through ``sc.exe`` rather than the agent itself.

The installer keeps its default service startup mode; callers that want
another one pass ``PUPPET_AGENT_STARTUP_MODE=...`` in ``install_options``.
"""

from __future__ import annotations

import logging
import re
import shutil
from pathlib import Path

from puppet_agent_tasks.adapters.base import PlatformBackend
from puppet_agent_tasks.adapters.shell.command import CommandResult
from puppet_agent_tasks.core.models.decision import Install, Upgrade
from puppet_agent_tasks.core.models.state import PackageQuery, ServiceStatus

logger = logging.getLogger(__name__)

_REGISTRY_KEY = r"HKLM\SOFTWARE\Puppet Labs\Puppet"
_SC_STATE = re.compile(r"STATE\s*:\s*\d+\s+(\w+)")

# msiexec exit codes
_ERROR_SUCCESS_REBOOT_INITIATED = 1641
_ERROR_INSTALL_ALREADY_RUNNING = 1618
_ERROR_SUCCESS_REBOOT_REQUIRED = 3010
# sc.exe
_ERROR_SERVICE_NOT_ACTIVE = 1062
_ERROR_SERVICE_DOES_NOT_EXIST = 1060


class MsiBackend(PlatformBackend):
    blocks_while_services_run = True
    lock_exit_codes = frozenset({_ERROR_INSTALL_ALREADY_RUNNING})
    lock_patterns = (re.compile(r"Another installation is already in progress", re.IGNORECASE),)

    @property
    def name(self) -> str:
        return "msi"

    def is_available(self) -> bool:
        return shutil.which("msiexec") is not None

    @property
    def version_file(self) -> str:
        return self.settings.paths.windows_version_file

    @property
    def puppet_bin(self) -> str:
        return self.settings.paths.windows_puppet_bin

    def query_package(self) -> PackageQuery:
        for value in ("RememberedInstallDir64", "RememberedInstallDir"):
            result = self.runner.run(["reg", "query", _REGISTRY_KEY, "/v", value])
            if result.ok:
                return PackageQuery(installed=True, database="registry")
        return PackageQuery(installed=False, database="registry")

    def _install_command(self, artifact: Path, decision: Install | Upgrade) -> list[str]:
        log = self.scratch_dir / f"{artifact.stem}.install.log"
        return [
            "msiexec", "/qn", "/norestart",
            "/i", str(artifact),
            "/l*vx", str(log),
            *self.install_options,
        ]

    def _check_install(self, result: CommandResult, decision: Install | Upgrade) -> None:
        if result.returncode in (_ERROR_SUCCESS_REBOOT_REQUIRED, _ERROR_SUCCESS_REBOOT_INITIATED):
            return
        super()._check_install(result, decision)

    def service_status(self, service: str) -> ServiceStatus:
        result = self.runner.run(["sc.exe", "query", service])
        if result.returncode == _ERROR_SERVICE_DOES_NOT_EXIST or not result.ok:
            return ServiceStatus.UNKNOWN
        match = _SC_STATE.search(result.stdout)
        if not match:
            return ServiceStatus.UNKNOWN
        state = match.group(1).upper()
        if state == "STOPPED":
            return ServiceStatus.STOPPED
        # START_PENDING / STOP_PENDING / PAUSED still hold the binaries
        return ServiceStatus.RUNNING

    def stop_service(self, service: str) -> None:
        result = self.runner.run(["sc.exe", "stop", service])
        if not result.ok and result.returncode != _ERROR_SERVICE_NOT_ACTIVE:
            logger.warning("sc.exe stop %s failed: %s", service, result.summary())
