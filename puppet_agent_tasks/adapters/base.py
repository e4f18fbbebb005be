"""
Platform backend base — the capability contract per package manager.

Everything that differs between platforms (package database query,
install/upgrade command, lock-contention signature, service control)
sits behind this interface.  One implementation per package manager,
chosen once from the detected platform by ``adapters.registry``.

To add a platform:
    1. Subclass PlatformBackend
    2. Implement name, is_available, query_package, _install_command
    3. Register it in ``adapters.registry``
"""

from __future__ import annotations

import logging
import re
import tempfile
import time
import urllib.error
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path

from puppet_agent_tasks.adapters.download import fetch_file
from puppet_agent_tasks.adapters.shell.command import CommandResult, CommandRunner
from puppet_agent_tasks.core.errors import InstallError, PackageManagerLocked
from puppet_agent_tasks.core.models.decision import Install, Upgrade
from puppet_agent_tasks.core.models.platform import PlatformSpec
from puppet_agent_tasks.core.models.settings import TaskSettings
from puppet_agent_tasks.core.models.state import PackageQuery, ServiceStatus
from puppet_agent_tasks.core.reliability.backoff import BackoffPolicy, call_with_backoff

logger = logging.getLogger(__name__)

_ENSURE = re.compile(r"ensure\s*=>\s*'?(\w+)'?")


class PlatformBackend(ABC):
    """Abstract base class for all platform backends.

    Subclasses describe commands; running them, downloading the artifact,
    retrying on lock contention and mapping failures to ``InstallError``
    is shared here.
    """

    # Upgrading while agent services run corrupts them on this platform
    blocks_while_services_run: bool = False

    # Output signatures of "package manager lock held by someone else"
    lock_patterns: tuple[re.Pattern[str], ...] = ()
    lock_exit_codes: frozenset[int] = frozenset()

    def __init__(
        self,
        platform: PlatformSpec,
        settings: TaskSettings,
        runner: CommandRunner | None = None,
        *,
        policy: BackoffPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        fetch: Callable[[str, Path, int], Path] = fetch_file,
        install_options: list[str] | None = None,
    ):
        self.platform = platform
        self.settings = settings
        self.runner = runner or CommandRunner(default_timeout=settings.query_timeout)
        self.policy = policy or BackoffPolicy(
            max_attempts=settings.retry.max_attempts,
            base_delay=settings.retry.base_delay,
            max_delay=settings.retry.max_delay,
        )
        self._sleep = sleep
        self._fetch = fetch
        self.install_options = list(install_options or [])
        # Scratch directory of the install in progress (logs, mount points)
        self.workdir: Path | None = None

    # ── Identity ────────────────────────────────────────────────

    @property
    @abstractmethod
    def name(self) -> str:
        """Package manager identifier (e.g. 'apt', 'msi')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the package manager tooling exists on this host."""

    # ── Installed state ─────────────────────────────────────────

    @abstractmethod
    def query_package(self) -> PackageQuery:
        """Ask the package database about the agent package."""

    @property
    def version_file(self) -> str:
        return self.settings.paths.posix_version_file

    @property
    def puppet_bin(self) -> str:
        return self.settings.paths.posix_puppet_bin

    def read_version_file(self) -> str | None:
        """Contents of the agent's VERSION file, or None if unreadable."""
        path = Path(self.version_file)
        try:
            return path.read_text(encoding="utf-8").strip() or None
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Cannot read %s: %s", path, e)
            return None

    # ── Install ─────────────────────────────────────────────────

    @abstractmethod
    def _install_command(self, artifact: Path, decision: Install | Upgrade) -> list[str]:
        """Command that installs ``artifact`` for this decision."""

    def _install_env(self) -> dict[str, str]:
        return {}

    def install(self, decision: Install | Upgrade) -> None:
        """Download the target package and install it.

        Lock contention is retried with bounded backoff; once the budget is
        spent, or on any other failure, ``InstallError`` is raised.
        """
        with tempfile.TemporaryDirectory(prefix="puppet-agent-") as tmp:
            self.workdir = Path(tmp)
            try:
                self._install_in(self.workdir, decision)
            finally:
                self.workdir = None

    @property
    def scratch_dir(self) -> Path:
        """Temp directory of the install in progress.

        Installer logs and mount points go here, never next to a package
        the caller handed in as a local path.
        """
        if self.workdir is None:
            raise RuntimeError("scratch_dir is only available while install() runs")
        return self.workdir

    def _install_in(self, workdir: Path, decision: Install | Upgrade) -> None:
        target = decision.target
        try:
            artifact = self._fetch(target.source_uri, workdir, self.settings.download_timeout)
        except (urllib.error.URLError, OSError) as e:
            raise InstallError(
                f"Cannot download {self.settings.package_name} {target}: {e}",
                details={"uri": target.source_uri},
            ) from e

        try:
            call_with_backoff(
                lambda: self._run_install(artifact, decision),
                retry_on=PackageManagerLocked,
                policy=self.policy,
                sleep=self._sleep,
                label=f"{self.name} install",
            )
        except PackageManagerLocked as e:
            raise InstallError(
                f"{self.name} lock still held after {self.policy.max_attempts} attempts; "
                f"{self.settings.package_name} {target} was not installed",
                details={**e.details, "attempts": self.policy.max_attempts},
            ) from e

    def _run_install(self, artifact: Path, decision: Install | Upgrade) -> None:
        cmd = self._install_command(artifact, decision)
        result = self.runner.run(cmd, timeout=self.settings.install_timeout, env=self._install_env())
        self._check_install(result, decision)

    def _check_install(self, result: CommandResult, decision: Install | Upgrade) -> None:
        if result.ok:
            return
        details = {"command": result.command, "exit_code": result.returncode}
        if self.is_lock_contention(result):
            raise PackageManagerLocked(f"{self.name} is locked by another process", details=details)
        raise InstallError(
            f"{self.name} failed to install {self.settings.package_name} "
            f"{decision.target}: {result.summary()}",
            details=details,
        )

    def is_lock_contention(self, result: CommandResult) -> bool:
        if result.returncode in self.lock_exit_codes:
            return True
        return any(p.search(result.output) for p in self.lock_patterns)

    # ── Services ────────────────────────────────────────────────

    def service_status(self, service: str) -> ServiceStatus:
        """Query a service through ``puppet resource service``."""
        result = self.runner.run([self.puppet_bin, "resource", "service", service])
        if not result.ok:
            return ServiceStatus.UNKNOWN
        return _ensure_to_status(result.stdout)

    def stop_service(self, service: str) -> None:
        """Ask the service manager to stop ``service`` (does not wait)."""
        result = self.runner.run(
            [self.puppet_bin, "resource", "service", service, "ensure=stopped"]
        )
        if not result.ok:
            logger.warning("Stopping %s failed: %s", service, result.summary())

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r} platform={self.platform.tag}>"


def _ensure_to_status(output: str) -> ServiceStatus:
    match = _ENSURE.search(output)
    if not match:
        return ServiceStatus.UNKNOWN
    value = match.group(1).lower()
    if value in ("running", "true"):
        return ServiceStatus.RUNNING
    if value in ("stopped", "false"):
        return ServiceStatus.STOPPED
    return ServiceStatus.UNKNOWN
