"""
Error taxonomy for the agent tasks.

Every failure that reaches the task boundary is an ``AgentTaskError``.
The use-case layer turns it into a ``status=failure`` result whose
``_error`` carries ``msg``, ``kind`` and ``details``.  Message text is part
of the observable contract: callers match on it.
"""

from __future__ import annotations

from typing import Any


class AgentTaskError(Exception):
    """Base class for all task failures."""

    kind = "puppet_agent/error"

    def __init__(self, msg: str, *, details: dict[str, Any] | None = None):
        super().__init__(msg)
        self.msg = msg
        self.details: dict[str, Any] = details or {}

    def to_error(self) -> dict[str, Any]:
        """Render as the ``_error`` object of a task result."""
        return {"msg": self.msg, "kind": self.kind, "details": self.details}


class UnsupportedPlatform(AgentTaskError):
    """The OS/version/arch combination has no known package mapping."""

    kind = "puppet_agent/unsupported-platform"


class InvalidParameter(AgentTaskError):
    """A task parameter is malformed."""

    kind = "puppet_agent/invalid-parameter"


class UnknownCollection(InvalidParameter):
    """The collection name is not one of the known closed set."""

    kind = "puppet_agent/unknown-collection"


class VersionNotFound(AgentTaskError):
    """The requested version does not exist for the collection + platform."""

    kind = "puppet_agent/version-not-found"


class InvalidVersion(VersionNotFound):
    """The requested version is not a three-part semantic version."""

    kind = "puppet_agent/invalid-version"


class CollectionEmpty(AgentTaskError):
    """The catalog lists no versions for the collection + platform."""

    kind = "puppet_agent/collection-empty"


class CatalogUnavailable(AgentTaskError):
    """The package catalog could not be read."""

    kind = "puppet_agent/catalog-unavailable"


class ServiceRunning(AgentTaskError):
    """A service tied to the agent binaries is running and blocks the action."""

    kind = "puppet_agent/service-running"


class ServiceStopFailed(AgentTaskError):
    """The agent service did not reach ``stopped`` after the install."""

    kind = "puppet_agent/service-stop-failed"


class InstallError(AgentTaskError):
    """The package manager reported a failure."""

    kind = "puppet_agent/install-error"


class PackageManagerLocked(InstallError):
    """The package manager lock is held by another process (retryable)."""

    kind = "puppet_agent/package-manager-locked"


class VerificationFailed(AgentTaskError):
    """The installed state after the action does not match the target."""

    kind = "puppet_agent/verification-failed"
