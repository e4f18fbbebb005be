"""
Tests for platform backends — commands issued, lock retry, exit-code handling.
"""

from pathlib import Path

import pytest

from conftest import platform_of
from puppet_agent_tasks.adapters import BACKENDS, MockBackend, backend_for
from puppet_agent_tasks.adapters.base import PlatformBackend
from puppet_agent_tasks.adapters.packages.apt import AptBackend
from puppet_agent_tasks.adapters.packages.macos import MacPkgBackend
from puppet_agent_tasks.adapters.packages.msi import MsiBackend
from puppet_agent_tasks.adapters.packages.rpm import DnfBackend, YumBackend, ZypperBackend
from puppet_agent_tasks.adapters.packages.solaris import SolarisBackend
from puppet_agent_tasks.core.errors import InstallError, UnsupportedPlatform
from puppet_agent_tasks.core.models import Collection, Install, ResolvedVersion, SemVer, ServiceStatus, Upgrade
from puppet_agent_tasks.core.models.platform import PlatformFamily, PlatformSpec
from puppet_agent_tasks.core.reliability.backoff import BackoffPolicy


def _target(version: str = "6.4.2", collection: str = "puppet6") -> ResolvedVersion:
    return ResolvedVersion(
        semver=SemVer.parse_loose(version),
        source_uri=f"https://pkgs.example.test/puppet-agent-{version}.pkg",
        full_version=version,
        collection=Collection.parse(collection),
    )


class _Fetch:
    """Records downloads and returns a fixed artifact name."""

    def __init__(self, name: str):
        self.name = name
        self.uris: list[str] = []

    def __call__(self, uri: str, dest_dir: Path, timeout: int) -> Path:
        self.uris.append(uri)
        return dest_dir / self.name


def _backend(cls: type[PlatformBackend], platform: str, settings, runner, artifact: str, **kwargs):
    kwargs.setdefault("sleep", lambda _s: None)
    kwargs.setdefault("policy", BackoffPolicy(max_attempts=3, base_delay=0.01, max_delay=0.01))
    return cls(platform_of(platform), settings, runner, fetch=_Fetch(artifact), **kwargs)


# ── Registry ────────────────────────────────────────────────────────


class TestRegistry:
    @pytest.mark.parametrize("platform, cls", [
        ("ubuntu-1804-amd64", AptBackend),
        ("el-7-x86_64", YumBackend),
        ("el-8-x86_64", DnfBackend),
        ("sles-12-x86_64", ZypperBackend),
        ("windows-2012r2-64", MsiBackend),
        ("osx-10.14-x86_64", MacPkgBackend),
        ("solaris-11-i386", SolarisBackend),
    ])
    def test_backend_for(self, platform, cls, settings):
        backend = backend_for(platform_of(platform), settings)
        assert type(backend) is cls
        assert backend.name == platform_of(platform).package_manager

    def test_every_manager_registered(self):
        assert set(BACKENDS) == {"apt", "yum", "dnf", "zypper", "msi", "pkg", "ips"}

    def test_unknown_manager(self, settings):
        spec = PlatformSpec(
            family=PlatformFamily.LINUX_RPM, distro="el", distro_version="7",
            arch="x86_64", package_manager="pacman",
        )
        with pytest.raises(UnsupportedPlatform):
            backend_for(spec, settings)

    def test_kwargs_passed_through(self, settings, runner):
        backend = backend_for(platform_of("windows-2012r2-64"), settings, runner=runner, install_options=["A=1"])
        assert backend.runner is runner
        assert backend.install_options == ["A=1"]

    def test_retry_setting_shapes_policy(self, settings):
        settings = settings.model_copy(update={"retry": settings.retry.model_copy(update={"max_attempts": 2})})
        assert backend_for(platform_of("el-7-x86_64"), settings).policy.max_attempts == 2


# ── apt ─────────────────────────────────────────────────────────────


class TestApt:
    def test_query_installed(self, settings, runner):
        runner.on("dpkg-query", stdout="install ok installed 6.4.2-1bionic")
        q = _backend(AptBackend, "ubuntu-1804-amd64", settings, runner, "a.deb").query_package()
        assert q.installed
        assert q.version == "6.4.2-1bionic"
        assert q.database == "dpkg"

    def test_query_config_files_only(self, settings, runner):
        runner.on("dpkg-query", stdout="deinstall ok config-files 6.4.2-1bionic")
        assert not _backend(AptBackend, "ubuntu-1804-amd64", settings, runner, "a.deb").query_package().installed

    def test_install_command(self, settings, runner):
        backend = _backend(AptBackend, "ubuntu-1804-amd64", settings, runner, "puppet-agent_6.4.2-1bionic_amd64.deb")
        backend.install(Install(_target()))
        cmd = runner.commands_starting_with("apt-get")[0]
        assert cmd[:3] == ["apt-get", "install", "-y"]
        assert "--allow-downgrades" in cmd
        assert cmd[-1].endswith("puppet-agent_6.4.2-1bionic_amd64.deb")
        assert runner.envs[-1] == {"DEBIAN_FRONTEND": "noninteractive"}

    def test_lock_is_retried(self, settings, runner):
        runner.on("apt-get", returncode=100, stderr="E: Could not get lock /var/lib/dpkg/lock-frontend")
        runner.on("apt-get", returncode=0)
        sleeps = []
        backend = _backend(AptBackend, "ubuntu-1804-amd64", settings, runner, "a.deb", sleep=sleeps.append)
        backend.install(Install(_target()))
        assert len(runner.commands_starting_with("apt-get")) == 2
        assert len(sleeps) == 1

    def test_lock_budget_exhausted(self, settings, runner):
        runner.on("apt-get", returncode=100, stderr="E: Could not get lock /var/lib/dpkg/lock")
        backend = _backend(AptBackend, "ubuntu-1804-amd64", settings, runner, "a.deb")
        with pytest.raises(InstallError) as exc:
            backend.install(Install(_target()))
        assert "lock still held after 3 attempts" in exc.value.msg
        assert exc.value.kind == "puppet_agent/install-error"
        assert len(runner.commands_starting_with("apt-get")) == 3

    def test_other_failure_not_retried(self, settings, runner):
        runner.on("apt-get", returncode=100, stderr="E: Unable to correct problems, you have held broken packages.")
        backend = _backend(AptBackend, "ubuntu-1804-amd64", settings, runner, "a.deb")
        with pytest.raises(InstallError) as exc:
            backend.install(Install(_target()))
        assert "held broken packages" in exc.value.msg
        assert len(runner.commands_starting_with("apt-get")) == 1

    def test_download_failure(self, settings, runner):
        def failing_fetch(uri, dest, timeout):
            raise OSError("connection reset")

        backend = AptBackend(platform_of("ubuntu-1804-amd64"), settings, runner, fetch=failing_fetch)
        with pytest.raises(InstallError) as exc:
            backend.install(Install(_target()))
        assert exc.value.msg.startswith("Cannot download puppet-agent 6.4.2")


# ── rpm family ──────────────────────────────────────────────────────


class TestRpm:
    def test_query(self, settings, runner):
        runner.on("rpm", "-q", stdout="5.5.3-1.el7")
        q = _backend(YumBackend, "el-7-x86_64", settings, runner, "a.rpm").query_package()
        assert q.installed
        assert q.version == "5.5.3-1.el7"

    def test_yum_install(self, settings, runner):
        _backend(YumBackend, "el-7-x86_64", settings, runner, "a.rpm").install(Install(_target()))
        assert runner.commands_starting_with("yum")[0][:3] == ["yum", "install", "-y"]

    def test_dnf_downgrade(self, settings, runner):
        backend = _backend(DnfBackend, "el-8-x86_64", settings, runner, "a.rpm")
        backend.install(Upgrade(current=SemVer(6, 19, 1), target=_target("6.4.2")))
        assert runner.commands_starting_with("dnf")[0][:2] == ["dnf", "downgrade"]

    def test_yum_lock_message(self, settings, runner):
        runner.on("yum", returncode=1, stderr="Existing lock /var/run/yum.pid: another copy is running as pid 42.")
        runner.on("yum", returncode=0)
        _backend(YumBackend, "el-7-x86_64", settings, runner, "a.rpm").install(Install(_target()))
        assert len(runner.commands_starting_with("yum")) == 2

    def test_zypper_lock_exit_code(self, settings, runner):
        runner.on("zypper", returncode=7, stderr="System management is locked by the application with pid 1")
        runner.on("zypper", returncode=0)
        backend = _backend(ZypperBackend, "sles-12-x86_64", settings, runner, "a.rpm")
        backend.install(Install(_target()))
        calls = runner.commands_starting_with("zypper")
        assert len(calls) == 2
        assert "--oldpackage" in calls[0]


# ── Windows ─────────────────────────────────────────────────────────


class TestMsi:
    def _msi(self, settings, runner, **kwargs):
        return _backend(MsiBackend, "windows-2012r2-64", settings, runner, "puppet-agent-6.4.2-x64.msi", **kwargs)

    def test_blocks_while_services_run(self, settings, runner):
        assert self._msi(settings, runner).blocks_while_services_run

    def test_install_command(self, settings, runner):
        self._msi(settings, runner, install_options=["PUPPET_MASTER_SERVER=puppet.example.test"]).install(
            Install(_target())
        )
        cmd = runner.commands_starting_with("msiexec")[0]
        assert cmd[:4] == ["msiexec", "/qn", "/norestart", "/i"]
        assert not [arg for arg in cmd if arg.startswith("PUPPET_AGENT_STARTUP_MODE=")]
        assert cmd[-1] == "PUPPET_MASTER_SERVER=puppet.example.test"

    def test_startup_mode_from_install_options(self, settings, runner):
        self._msi(settings, runner, install_options=["PUPPET_AGENT_STARTUP_MODE=Automatic"]).install(
            Install(_target())
        )
        cmd = runner.commands_starting_with("msiexec")[0]
        assert [arg for arg in cmd if arg.startswith("PUPPET_AGENT_STARTUP_MODE=")] == [
            "PUPPET_AGENT_STARTUP_MODE=Automatic"
        ]

    def test_log_kept_out_of_local_package_dir(self, settings, runner, tmp_path: Path):
        local = tmp_path / "pkgs" / "puppet-agent-6.4.2-x64.msi"
        backend = MsiBackend(
            platform_of("windows-2012r2-64"), settings, runner, fetch=lambda uri, dest, timeout: local
        )
        backend.install(Install(_target()))
        cmd = runner.commands_starting_with("msiexec")[0]
        log = Path(cmd[cmd.index("/l*vx") + 1])
        assert log.name == "puppet-agent-6.4.2-x64.install.log"
        assert log.parent != local.parent
        assert not (tmp_path / "pkgs").exists()

    def test_reboot_required_is_success(self, settings, runner):
        runner.on("msiexec", returncode=3010)
        self._msi(settings, runner).install(Install(_target()))

    def test_another_install_running_is_retried(self, settings, runner):
        runner.on("msiexec", returncode=1618)
        runner.on("msiexec", returncode=0)
        self._msi(settings, runner).install(Install(_target()))
        assert len(runner.commands_starting_with("msiexec")) == 2

    def test_fatal_exit(self, settings, runner):
        runner.on("msiexec", returncode=1603)
        with pytest.raises(InstallError) as exc:
            self._msi(settings, runner).install(Install(_target()))
        assert "exit 1603" in exc.value.msg

    def test_version_file_path(self, settings, runner):
        assert self._msi(settings, runner).version_file == settings.paths.windows_version_file

    def test_query_registry(self, settings, runner):
        runner.on("reg", "query", returncode=1)
        assert not self._msi(settings, runner).query_package().installed

    @pytest.mark.parametrize("stdout, expected", [
        ("SERVICE_NAME: puppet\n        STATE              : 4  RUNNING\n", ServiceStatus.RUNNING),
        ("SERVICE_NAME: puppet\n        STATE              : 1  STOPPED\n", ServiceStatus.STOPPED),
        ("SERVICE_NAME: puppet\n        STATE              : 3  STOP_PENDING\n", ServiceStatus.RUNNING),
    ])
    def test_service_status(self, settings, runner, stdout, expected):
        runner.on("sc.exe", "query", stdout=stdout)
        assert self._msi(settings, runner).service_status("puppet") is expected

    def test_missing_service(self, settings, runner):
        runner.on("sc.exe", "query", returncode=1060, stdout="The specified service does not exist")
        assert self._msi(settings, runner).service_status("pxp-agent") is ServiceStatus.UNKNOWN

    def test_stop_service(self, settings, runner):
        self._msi(settings, runner).stop_service("puppet")
        assert runner.calls[-1] == ["sc.exe", "stop", "puppet"]


# ── macOS / Solaris ─────────────────────────────────────────────────


class TestMacPkg:
    def test_query(self, settings, runner):
        runner.on("pkgutil", stdout="package-id: com.puppetlabs.puppet-agent\nversion: 6.4.2\nvolume: /\n")
        q = _backend(MacPkgBackend, "osx-10.14-x86_64", settings, runner, "a.dmg").query_package()
        assert q.version == "6.4.2"

    def test_dmg_mount_install_detach(self, settings, runner, monkeypatch):
        monkeypatch.setattr(Path, "glob", lambda self, pattern: iter([self / "puppet-agent-6.4.2-installer.pkg"]))
        backend = _backend(MacPkgBackend, "osx-10.14-x86_64", settings, runner, "puppet-agent-6.4.2-1.osx10.14.dmg")
        backend.install(Install(_target()))
        tools = [c[0] for c in runner.calls]
        assert tools == ["hdiutil", "installer", "hdiutil"]
        assert runner.calls[0][1] == "attach"
        assert runner.calls[1][2].endswith("puppet-agent-6.4.2-installer.pkg")
        assert runner.calls[2][1] == "detach"

    def test_detach_after_failure(self, settings, runner, monkeypatch):
        monkeypatch.setattr(Path, "glob", lambda self, pattern: iter([self / "p.pkg"]))
        runner.on("installer", returncode=1, stderr="installer: The install failed.")
        backend = _backend(MacPkgBackend, "osx-10.14-x86_64", settings, runner, "a.dmg")
        with pytest.raises(InstallError):
            backend.install(Install(_target()))
        assert runner.calls[-1][:2] == ["hdiutil", "detach"]

    def test_plain_pkg(self, settings, runner):
        _backend(MacPkgBackend, "osx-10.14-x86_64", settings, runner, "a.pkg").install(Install(_target()))
        assert [c[0] for c in runner.calls] == ["installer"]

    def test_dmg_mounted_outside_local_package_dir(self, settings, runner, monkeypatch, tmp_path: Path):
        monkeypatch.setattr(Path, "glob", lambda self, pattern: iter([self / "p.pkg"]))
        pkgs = tmp_path / "pkgs"
        pkgs.mkdir()
        local = pkgs / "puppet-agent-6.4.2-1.osx10.14.dmg"
        backend = MacPkgBackend(
            platform_of("osx-10.14-x86_64"), settings, runner, fetch=lambda uri, dest, timeout: local
        )
        backend.install(Install(_target()))
        mountpoint = Path(runner.calls[0][runner.calls[0].index("-mountpoint") + 1])
        assert mountpoint.name == "mnt"
        assert mountpoint.parent != pkgs
        assert list(pkgs.iterdir()) == []

    def test_scratch_dir_only_during_install(self, settings, runner):
        backend = _backend(MacPkgBackend, "osx-10.14-x86_64", settings, runner, "a.pkg")
        with pytest.raises(RuntimeError):
            backend.scratch_dir


class TestSolaris:
    def test_query(self, settings, runner):
        runner.on("pkg", "info", stdout="          Name: puppet-agent\n       Version: 6.4.2\n")
        assert _backend(SolarisBackend, "solaris-11-i386", settings, runner, "a.p5p").query_package().version == "6.4.2"

    def test_install_and_update(self, settings, runner):
        backend = _backend(SolarisBackend, "solaris-11-i386", settings, runner, "a.p5p")
        backend.install(Install(_target()))
        backend.install(Upgrade(current=SemVer(5, 5, 3), target=_target()))
        assert runner.calls[0][:3] == ["pkg", "install", "-g"]
        assert runner.calls[1][:3] == ["pkg", "update", "-g"]
        assert runner.calls[1][-1] == "puppet-agent@6.4.2"

    def test_nothing_to_do_exit(self, settings, runner):
        runner.on("pkg", "update", returncode=4)
        backend = _backend(SolarisBackend, "solaris-11-i386", settings, runner, "a.p5p")
        backend.install(Upgrade(current=SemVer(6, 4, 2), target=_target()))


# ── puppet resource service ─────────────────────────────────────────


class TestPuppetResourceService:
    @pytest.mark.parametrize("stdout, expected", [
        ("service { 'puppet':\n  ensure   => 'running',\n  enable   => 'true',\n}", ServiceStatus.RUNNING),
        ("service { 'puppet':\n  ensure   => 'stopped',\n}", ServiceStatus.STOPPED),
        ("nonsense", ServiceStatus.UNKNOWN),
    ])
    def test_status(self, settings, runner, stdout, expected):
        runner.on(settings.paths.posix_puppet_bin, "resource", stdout=stdout)
        backend = _backend(YumBackend, "el-7-x86_64", settings, runner, "a.rpm")
        assert backend.service_status("puppet") is expected

    def test_stop(self, settings, runner):
        _backend(YumBackend, "el-7-x86_64", settings, runner, "a.rpm").stop_service("puppet")
        assert runner.calls[-1][-1] == "ensure=stopped"


# ── MockBackend ─────────────────────────────────────────────────────


class TestMockBackend:
    def test_install_updates_state(self, make_host):
        host = make_host()
        host.install(Install(_target()))
        assert host.installed == "6.4.2"
        assert host.call_log == [("install", "install", "6.4.2")]

    def test_lock_failures_then_success(self, make_host):
        host = make_host(lock_failures=2)
        host.install(Install(_target()))
        assert host.install_attempts == 3
        assert host.installed == "6.4.2"

    def test_windows_host_blocks(self, make_host):
        assert make_host(platform_of("windows-2012r2-64")).blocks_while_services_run
        assert not make_host().blocks_while_services_run

    def test_is_a_platform_backend(self, make_host):
        assert isinstance(make_host(), MockBackend)
        assert isinstance(make_host(), PlatformBackend)
