"""
Tests for the install orchestrator — full flow against in-memory hosts.
"""

import pytest

from conftest import platform_of
from puppet_agent_tasks.core.errors import (
    InstallError,
    ServiceRunning,
    ServiceStopFailed,
    VerificationFailed,
    VersionNotFound,
)
from puppet_agent_tasks.core.models import Install, NoOp, SemVer, ServiceStatus, Upgrade, VersionSpec
from puppet_agent_tasks.core.models.settings import ServiceStopSettings, TaskSettings
from puppet_agent_tasks.core.services.agent_install.orchestration.orchestrator import (
    describe,
    reconcile_agent,
)
from puppet_agent_tasks.core.services.agent_install.resolver.catalog import Catalog


class ExplodingCatalog(Catalog):
    """Fails the test if anything asks it for versions."""

    def entries(self, collection, platform):
        raise AssertionError("catalog must not be consulted")


def _run(host, catalog, settings, collection, version=None, **kwargs):
    sleeps = kwargs.pop("sleeps", None)
    return reconcile_agent(
        VersionSpec.from_params(collection, version),
        platform=host.platform,
        backend=host,
        catalog=catalog,
        settings=settings,
        sleep=sleeps.append if sleeps is not None else (lambda _s: None),
        **kwargs,
    )


# ── No-op paths ─────────────────────────────────────────────────────


class TestNoOp:
    def test_present_without_version_skips_catalog(self, make_host, settings):
        host = make_host(installed="5.5.3")
        outcome = _run(host, ExplodingCatalog(), settings, "puppet7")

        assert outcome.decision == NoOp("Version parameter not defined and agent detected. Nothing to do.")
        assert outcome.output == "Version parameter not defined and agent detected. Nothing to do."
        assert not outcome.changed
        assert host.call_log == []

    def test_requested_version_installed(self, make_host, catalog, settings):
        host = make_host(installed="6.19.1")
        outcome = _run(host, catalog, settings, "puppet6", "6.19.1")
        assert outcome.output == "Puppet Agent 6.19.1 detected. Nothing to do."
        assert host.install_attempts == 0

    def test_idempotent(self, make_host, catalog, settings):
        host = make_host()
        first = _run(host, catalog, settings, "puppet6", "latest")
        second = _run(host, catalog, settings, "puppet6", "latest")

        assert first.changed
        assert isinstance(second.decision, NoOp)
        assert host.install_attempts == 1

    def test_to_dict(self, make_host, catalog, settings):
        outcome = _run(make_host(installed="6.19.1"), catalog, settings, "puppet6", "latest")
        assert outcome.to_dict() == {
            "_output": "Puppet Agent 6.19.1 detected. Nothing to do.",
            "action": "noop",
            "version": "6.19.1",
            "previous_version": "6.19.1",
        }


# ── Installs and upgrades ───────────────────────────────────────────


class TestInstall:
    def test_fresh_install_of_latest(self, make_host, catalog, settings):
        host = make_host()
        outcome = _run(host, catalog, settings, "puppet5")

        assert isinstance(outcome.decision, Install)
        assert outcome.after.version == SemVer(5, 5, 22)
        assert outcome.output == "Installed Puppet Agent 5.5.22 (puppet5)"
        assert outcome.to_dict()["previous_version"] is None

    def test_upgrade_sequence(self, make_host, catalog, settings):
        host = make_host(installed="5.5.3")

        steps = [
            ("puppet5", "latest", "5.5.22"),
            ("puppet6", "latest", "6.19.1"),
            ("puppet7-nightly", "latest", "7.0.0.81.gdeadbee"),
        ]
        for collection, version, expected in steps:
            outcome = _run(host, catalog, settings, collection, version)
            assert isinstance(outcome.decision, Upgrade)
            assert outcome.after.raw_version == expected

        assert [c[2] for c in host.call_log] == ["5.5.22", "6.19.1", "7.0.0.81.gdeadbee"]

    def test_upgrade_message(self, make_host, catalog, settings):
        outcome = _run(make_host(installed="5.5.3"), catalog, settings, "puppet5", "latest")
        assert outcome.output == "Upgraded Puppet Agent from 5.5.3 to 5.5.22 (puppet5)"
        assert outcome.to_dict()["action"] == "upgrade"

    def test_downgrade(self, make_host, catalog, settings):
        outcome = _run(make_host(installed="6.19.1"), catalog, settings, "puppet6", "6.4.2")
        assert outcome.decision.is_downgrade
        assert outcome.output.startswith("Downgraded Puppet Agent from 6.19.1 to 6.4.2")

    def test_unknown_version_replaced(self, make_host, catalog, settings):
        outcome = _run(make_host(installed="garbage"), catalog, settings, "puppet6", "6.4.2")
        assert outcome.output == "Replaced Puppet Agent of unknown version with 6.4.2 (puppet6)"

    def test_major_skip_warns_and_proceeds(self, make_host, catalog, settings, caplog):
        host = make_host(installed="5.5.3")
        with caplog.at_level("WARNING"):
            outcome = _run(host, catalog, settings, "puppet7", "latest")

        assert outcome.messages[0] == (
            "Upgrading across 2 major versions (5.5.3 -> 7.9.0); intermediate collections are skipped"
        )
        assert "intermediate collections are skipped" in caplog.text
        assert host.installed == "7.9.0"

    def test_version_not_in_collection(self, make_host, catalog, settings):
        host = make_host()
        with pytest.raises(VersionNotFound):
            _run(host, catalog, settings, "puppet6", "6.5.0")
        assert host.call_log == []

    def test_lock_contention_retried(self, make_host, catalog, settings):
        host = make_host(lock_failures=2)
        outcome = _run(host, catalog, settings, "puppet6", "6.4.2")
        assert outcome.changed
        assert host.install_attempts == 3

    def test_lock_budget_exhausted(self, make_host, catalog, settings):
        host = make_host(lock_failures=99)
        with pytest.raises(InstallError) as exc:
            _run(host, catalog, settings, "puppet6", "6.4.2")
        assert "lock still held after 5 attempts" in exc.value.msg
        assert host.installed is None

    def test_install_error_propagates(self, make_host, catalog, settings):
        with pytest.raises(InstallError) as exc:
            _run(make_host(install_error="disk full"), catalog, settings, "puppet6")
        assert exc.value.msg == "disk full"


class TestVerification:
    def test_mismatch(self, make_host, catalog, settings):
        host = make_host(installs_as="6.4.1")
        with pytest.raises(VerificationFailed) as exc:
            _run(host, catalog, settings, "puppet6", "6.4.2")
        assert exc.value.msg == "Post-install verification failed: expected puppet-agent 6.4.2, found 6.4.1"


class TestDryRun:
    def test_nothing_changes(self, make_host, catalog, settings):
        host = make_host(installed="5.5.3")
        outcome = _run(host, catalog, settings, "puppet6", "latest", dry_run=True)

        assert isinstance(outcome.decision, Upgrade)
        assert not outcome.changed
        assert outcome.output == "[dry-run] Upgraded Puppet Agent from 5.5.3 to 6.19.1 (puppet6)"
        assert outcome.to_dict()["dry_run"] is True
        assert outcome.to_dict()["version"] == "5.5.3"
        assert host.call_log == []


# ── Services ────────────────────────────────────────────────────────


class TestServiceGate:
    def test_windows_refuses_while_services_run(self, make_host, catalog, settings):
        host = make_host(
            platform_of("windows-2012r2-64"),
            installed="5.5.3",
            services={"puppet": ServiceStatus.RUNNING, "pxp-agent": ServiceStatus.RUNNING},
        )
        with pytest.raises(ServiceRunning) as exc:
            _run(host, catalog, settings, "puppet6", "latest")

        assert exc.value.msg == (
            "Puppet Agent upgrade cannot be done while Puppet services are still running. "
            "Stop these services first: puppet, pxp-agent"
        )
        assert exc.value.details == {"services": ["puppet", "pxp-agent"]}
        assert host.install_attempts == 0

    def test_windows_proceeds_when_stopped(self, make_host, catalog, settings):
        host = make_host(platform_of("windows-2012r2-64"), installed="5.5.3")
        assert _run(host, catalog, settings, "puppet6", "latest").changed

    def test_linux_does_not_gate(self, make_host, catalog, settings):
        host = make_host(installed="5.5.3", services={"puppet": ServiceStatus.RUNNING})
        assert _run(host, catalog, settings, "puppet6", "latest").changed

    def test_gate_not_checked_on_noop(self, make_host, catalog, settings):
        host = make_host(
            platform_of("windows-2012r2-64"),
            installed="6.19.1",
            services={"puppet": ServiceStatus.RUNNING},
        )
        assert isinstance(_run(host, catalog, settings, "puppet6", "6.19.1").decision, NoOp)


class TestStopService:
    def test_stopped_after_install(self, make_host, catalog, settings):
        host = make_host(services={"puppet": ServiceStatus.RUNNING})
        outcome = _run(host, catalog, settings, "puppet6", stop_service=True)

        assert outcome.service_stopped
        assert outcome.messages[-1] == "Stopped service puppet"
        assert outcome.to_dict()["service_stopped"] is True
        assert host.call_log[-1] == ("stop", "puppet")

    def test_not_stopped_on_noop(self, make_host, catalog, settings):
        host = make_host(installed="6.19.1")
        outcome = _run(host, catalog, settings, "puppet6", stop_service=True)
        assert not outcome.service_stopped
        assert host.call_log == []

    def test_stop_times_out(self, make_host, catalog):
        settings = TaskSettings(service_stop=ServiceStopSettings(checks=3, interval=0.5))
        host = make_host(services={"puppet": ServiceStatus.RUNNING}, stop_is_ignored=True)
        sleeps: list[float] = []
        with pytest.raises(ServiceStopFailed) as exc:
            _run(host, catalog, settings, "puppet6", stop_service=True, sleeps=sleeps)

        assert exc.value.msg == "Service 'puppet' did not reach 'stopped' after 3 checks (last status: running)"
        assert sleeps == [0.5, 0.5]


class TestDescribe:
    def test_noop(self):
        assert describe(NoOp("nothing"), "Puppet Agent") == "nothing"
