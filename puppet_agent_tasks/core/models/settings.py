"""
TaskSettings — the root configuration model.

Loaded from ``puppet_agent.yml`` by ``core.config.loader``; every field has
a default so the tasks run without any config file at all.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class RetrySettings(BaseModel):
    """Bounded backoff for package-manager lock contention."""

    max_attempts: int = Field(default=5, ge=1)
    base_delay: float = Field(default=2.0, ge=0)
    max_delay: float = Field(default=30.0, ge=0)


class ServiceStopSettings(BaseModel):
    """How long to wait for the agent service to report ``stopped``."""

    checks: int = Field(default=10, ge=1)
    interval: float = Field(default=1.0, ge=0)


class CatalogSettings(BaseModel):
    """Where available package versions are listed.

    The ``*_source`` hosts mirror the install task's source parameters and
    can be overridden per invocation.
    """

    source: Literal["http", "file"] = "http"
    path: str | None = None  # YAML listing when source == "file"

    yum_source: str = "https://yum.puppet.com"
    apt_source: str = "https://apt.puppet.com"
    mac_source: str = "https://downloads.puppet.com"
    windows_source: str = "https://downloads.puppet.com"
    solaris_source: str = "https://downloads.puppet.com"
    nightly_source: str = "https://nightlies.puppet.com"

    timeout: int = 30


class AgentPaths(BaseModel):
    """Install locations of the agent per OS family."""

    posix_version_file: str = "/opt/puppetlabs/puppet/VERSION"
    windows_version_file: str = r"C:\Program Files\Puppet Labs\Puppet\puppet\VERSION"
    posix_puppet_bin: str = "/opt/puppetlabs/bin/puppet"
    windows_puppet_bin: str = r"C:\Program Files\Puppet Labs\Puppet\bin\puppet.bat"


class TaskSettings(BaseModel):
    """Root settings model."""

    product_name: str = "Puppet Agent"
    package_name: str = "puppet-agent"
    agent_service: str = "puppet"
    # Services holding the agent binaries open (checked before in-place upgrades)
    blocking_services: list[str] = Field(default_factory=lambda: ["puppet", "pxp-agent"])

    paths: AgentPaths = Field(default_factory=AgentPaths)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    service_stop: ServiceStopSettings = Field(default_factory=ServiceStopSettings)

    query_timeout: int = 30
    install_timeout: int = 900
    download_timeout: int = 300
