"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import pytest
import yaml

from puppet_agent_tasks.adapters.mock import MockBackend
from puppet_agent_tasks.adapters.shell.command import CommandResult
from puppet_agent_tasks.core.models.platform import PlatformSpec
from puppet_agent_tasks.core.models.settings import TaskSettings
from puppet_agent_tasks.core.services.agent_install.detection.platform import (
    detect_platform,
    facts_from_platform_string,
)
from puppet_agent_tasks.core.services.agent_install.resolver.catalog import FileCatalog


class FakeRunner:
    """Scripted stand-in for ``CommandRunner``.

    Responses are keyed by command prefix.  Several responses for the same
    prefix are returned in order; the last one repeats.  Unscripted
    commands succeed with empty output.
    """

    def __init__(self):
        self.calls: list[list[str]] = []
        self.envs: list[dict[str, str] | None] = []
        self._scripts: list[tuple[tuple[str, ...], list[CommandResult]]] = []

    def on(self, *prefix: str, returncode: int = 0, stdout: str = "", stderr: str = "") -> FakeRunner:
        result = CommandResult(
            command=list(prefix), returncode=returncode, stdout=stdout, stderr=stderr,
        )
        for key, queue in self._scripts:
            if key == prefix:
                queue.append(result)
                return self
        self._scripts.append((prefix, [result]))
        return self

    def run(self, cmd, *, timeout=None, cwd=None, env=None) -> CommandResult:
        self.calls.append(list(cmd))
        self.envs.append(env)
        for prefix, queue in self._scripts:
            if tuple(cmd[: len(prefix)]) == prefix:
                result = queue.pop(0) if len(queue) > 1 else queue[0]
                return result.model_copy(update={"command": list(cmd)})
        return CommandResult(command=list(cmd), returncode=0)

    def commands_starting_with(self, *prefix: str) -> list[list[str]]:
        return [c for c in self.calls if tuple(c[: len(prefix)]) == prefix]


def platform_of(value: str) -> PlatformSpec:
    return detect_platform(facts_from_platform_string(value))


CATALOG = {
    "puppet5": {
        "*": [
            {"version": "5.5.3", "uri": "https://pkgs.example.test/puppet5/puppet-agent-5.5.3.pkg"},
            {"version": "5.5.10", "uri": "https://pkgs.example.test/puppet5/puppet-agent-5.5.10.pkg"},
            {"version": "5.5.22", "uri": "https://pkgs.example.test/puppet5/puppet-agent-5.5.22.pkg"},
        ],
    },
    "puppet6": {
        "*": [
            {"version": "6.4.2", "uri": "https://pkgs.example.test/puppet6/puppet-agent-6.4.2.pkg"},
            {"version": "6.19.1", "uri": "https://pkgs.example.test/puppet6/puppet-agent-6.19.1.pkg"},
        ],
    },
    "puppet7": {
        "*": [
            {"version": "7.9.0", "uri": "https://pkgs.example.test/puppet7/puppet-agent-7.9.0.pkg"},
        ],
    },
    "puppet7-nightly": {
        "*": [
            {
                "version": "7.0.0.79.g1a2b3c4",
                "uri": "https://nightly.example.test/puppet7/puppet-agent-7.0.0.79.g1a2b3c4.pkg",
            },
            {
                "version": "7.0.0.81.gdeadbee",
                "uri": "https://nightly.example.test/puppet7/puppet-agent-7.0.0.81.gdeadbee.pkg",
            },
        ],
    },
    "puppet8": {},
}


# ── Fixtures ────────────────────────────────────────────────────


@pytest.fixture
def settings() -> TaskSettings:
    return TaskSettings()


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def el7() -> PlatformSpec:
    return platform_of("el-7-x86_64")


@pytest.fixture
def bionic() -> PlatformSpec:
    return platform_of("ubuntu-1804-amd64")


@pytest.fixture
def win2012() -> PlatformSpec:
    return platform_of("windows-2012r2-64")


@pytest.fixture
def catalog_path(tmp_path: Path) -> Path:
    """A YAML catalog listing puppet5, puppet6, puppet7 and puppet7-nightly."""
    path = tmp_path / "catalog.yml"
    path.write_text(yaml.safe_dump(CATALOG), encoding="utf-8")
    return path


@pytest.fixture
def catalog(catalog_path: Path) -> FileCatalog:
    return FileCatalog(catalog_path)


@pytest.fixture
def make_host(el7: PlatformSpec, settings: TaskSettings) -> Callable[..., MockBackend]:
    """Factory for in-memory hosts; defaults to an EL 7 machine."""

    def _make(platform: PlatformSpec | None = None, **kwargs) -> MockBackend:
        return MockBackend(platform or el7, settings, **kwargs)

    return _make


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """setup_logging replaces root handlers; put them back after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
