"""
Mock backend — an in-memory host for tests and dry runs.

Simulates the package database, the VERSION file and the agent services
without touching the machine.  Downloading and lock-contention retry go
through the real ``PlatformBackend.install`` path, so backoff behaviour is
exercised too.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from puppet_agent_tasks.adapters.base import PlatformBackend
from puppet_agent_tasks.core.errors import InstallError, PackageManagerLocked
from puppet_agent_tasks.core.models.decision import Install, Upgrade
from puppet_agent_tasks.core.models.platform import PlatformSpec
from puppet_agent_tasks.core.models.settings import TaskSettings
from puppet_agent_tasks.core.models.state import PackageQuery, ServiceStatus


def _no_download(uri: str, dest_dir: Path, timeout: int) -> Path:
    return dest_dir / uri.rsplit("/", 1)[-1]


class MockBackend(PlatformBackend):
    """Universal fake host.

    By default the agent is absent, every service is stopped and installs
    succeed.  Tests configure the host through constructor arguments and
    the ``services`` / ``lock_failures`` attributes.
    """

    def __init__(
        self,
        platform: PlatformSpec,
        settings: TaskSettings | None = None,
        *,
        installed: str | None = None,
        version_file: bool = True,
        services: dict[str, ServiceStatus] | None = None,
        blocks_while_services_run: bool | None = None,
        lock_failures: int = 0,
        install_error: str | None = None,
        installs_as: str | None = None,
        stop_is_ignored: bool = False,
        **kwargs: Any,
    ):
        kwargs.setdefault("fetch", _no_download)
        kwargs.setdefault("sleep", lambda _seconds: None)
        super().__init__(platform, settings or TaskSettings(), **kwargs)
        self.installed = installed
        self.has_version_file = version_file
        self.services: dict[str, ServiceStatus] = dict(services or {})
        if blocks_while_services_run is None:
            blocks_while_services_run = platform.is_windows
        self.blocks_while_services_run = blocks_while_services_run
        self.lock_failures = lock_failures
        self.install_error = install_error
        # Simulate a package manager that reports success but installs something else
        self.installs_as = installs_as
        self.stop_is_ignored = stop_is_ignored
        self._call_log: list[tuple[str, ...]] = []

    @property
    def name(self) -> str:
        return "mock"

    @property
    def call_log(self) -> list[tuple[str, ...]]:
        """Every mutating call this host has received, in order."""
        return self._call_log

    @property
    def install_attempts(self) -> int:
        return sum(1 for call in self._call_log if call[0] == "install")

    def is_available(self) -> bool:
        return True

    # ── Installed state ─────────────────────────────────────────

    def query_package(self) -> PackageQuery:
        return PackageQuery(
            installed=self.installed is not None,
            version=self.installed,
            database="mock",
        )

    def read_version_file(self) -> str | None:
        if self.installed is None or not self.has_version_file:
            return None
        return self.installed

    # ── Install ─────────────────────────────────────────────────

    def _install_command(self, artifact: Path, decision: Install | Upgrade) -> list[str]:
        return ["mock-install", str(artifact)]

    def _run_install(self, artifact: Path, decision: Install | Upgrade) -> None:
        self._call_log.append(("install", decision.kind, decision.target.full_version))
        if self.lock_failures > 0:
            self.lock_failures -= 1
            raise PackageManagerLocked("mock is locked by another process")
        if self.install_error:
            raise InstallError(self.install_error)
        self.installed = self.installs_as or decision.target.full_version
        self.has_version_file = True

    # ── Services ────────────────────────────────────────────────

    def service_status(self, service: str) -> ServiceStatus:
        return self.services.get(service, ServiceStatus.STOPPED)

    def stop_service(self, service: str) -> None:
        self._call_log.append(("stop", service))
        if not self.stop_is_ignored:
            self.services[service] = ServiceStatus.STOPPED
