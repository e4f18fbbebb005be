"""
L3 Detection — Installed-state reader.

Reads what the host has right now from two local sources: the agent's
own ``VERSION`` file and the platform package database (through the
backend).  Read-only, never cached.
"""

from __future__ import annotations

import logging

from puppet_agent_tasks.adapters.base import PlatformBackend
from puppet_agent_tasks.core.models.state import InstalledState
from puppet_agent_tasks.core.models.version import SemVer

logger = logging.getLogger(__name__)


def read_installed_state(backend: PlatformBackend) -> InstalledState:
    """Current agent state on the backend's host.

    The VERSION file wins when it is readable; the package database fills
    in when the file is missing (e.g. a half-removed install).  A package
    that is present but whose version cannot be parsed from either source
    yields ``present=True, version=None``.
    """
    file_version = backend.read_version_file()
    query = backend.query_package()

    if file_version is None and not query.installed:
        logger.debug("No agent found (VERSION file and %s database empty)", query.database)
        return InstalledState.absent()

    if file_version is not None:
        version = SemVer.parse_loose(file_version)
        if version is not None:
            return InstalledState(
                present=True,
                version=version,
                raw_version=file_version,
                source=backend.version_file,
            )
        logger.warning("Unparseable VERSION file %s: %r", backend.version_file, file_version)

    version = SemVer.parse_loose(query.version)
    if version is None:
        logger.warning(
            "Agent is installed but its version could not be determined "
            "(VERSION=%r, %s=%r)",
            file_version, query.database, query.version,
        )
    return InstalledState(
        present=True,
        version=version,
        raw_version=query.version or file_version,
        source=query.database or backend.version_file,
    )
