"""
macOS backend — ``.dmg`` images containing an installer ``.pkg``.
"""

from __future__ import annotations

import logging
import re
import shutil
from pathlib import Path

from puppet_agent_tasks.adapters.base import PlatformBackend
from puppet_agent_tasks.core.errors import InstallError
from puppet_agent_tasks.core.models.decision import Install, Upgrade
from puppet_agent_tasks.core.models.state import PackageQuery

logger = logging.getLogger(__name__)

PACKAGE_ID = "com.puppetlabs.puppet-agent"
_PKGUTIL_VERSION = re.compile(r"^version:\s*(\S+)", re.MULTILINE)


class MacPkgBackend(PlatformBackend):
    lock_patterns = (re.compile(r"another install(ation)? is (already )?in progress", re.IGNORECASE),)

    @property
    def name(self) -> str:
        return "pkg"

    def is_available(self) -> bool:
        return shutil.which("installer") is not None and shutil.which("hdiutil") is not None

    def query_package(self) -> PackageQuery:
        result = self.runner.run(["pkgutil", "--pkg-info", PACKAGE_ID])
        if not result.ok:
            return PackageQuery(installed=False, database="pkgutil")
        match = _PKGUTIL_VERSION.search(result.stdout)
        return PackageQuery(
            installed=True,
            version=match.group(1) if match else None,
            database="pkgutil",
        )

    def _install_command(self, artifact: Path, decision: Install | Upgrade) -> list[str]:
        return ["installer", "-pkg", str(artifact), "-target", "/"]

    def _run_install(self, artifact: Path, decision: Install | Upgrade) -> None:
        if artifact.suffix != ".dmg":
            super()._run_install(artifact, decision)
            return

        mountpoint = self.scratch_dir / "mnt"
        mountpoint.mkdir(exist_ok=True)
        attach = self.runner.run([
            "hdiutil", "attach", "-nobrowse", "-readonly", "-mountpoint", str(mountpoint), str(artifact),
        ])
        if not attach.ok:
            raise InstallError(
                f"Cannot mount {artifact.name}: {attach.summary()}",
                details={"command": attach.command, "exit_code": attach.returncode},
            )
        try:
            packages = sorted(mountpoint.glob("*.pkg"))
            if not packages:
                raise InstallError(f"No installer package found in {artifact.name}")
            super()._run_install(packages[0], decision)
        finally:
            detach = self.runner.run(["hdiutil", "detach", str(mountpoint), "-force"])
            if not detach.ok:
                logger.warning("Cannot detach %s: %s", mountpoint, detach.summary())
