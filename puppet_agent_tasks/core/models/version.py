"""
Version models — semantic versions, collections and version requests.

Collections and requested versions are closed variants: a collection is
parsed once from its name into a (major, track) pair and anything that does
not match a known name is rejected up front.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict

from puppet_agent_tasks.core.errors import InvalidVersion, UnknownCollection

_STRICT_SEMVER = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")
_LOOSE_SEMVER = re.compile(r"^\s*v?(\d+)\.(\d+)\.(\d+)")
_COLLECTION_NAME = re.compile(r"^puppet(\d+)(-nightly)?$")

# Majors that have a published package collection.
KNOWN_MAJORS: frozenset[int] = frozenset({5, 6, 7, 8})


class SemVer(NamedTuple):
    """Three-part semantic version, ordered numerically."""

    major: int
    minor: int
    patch: int

    @classmethod
    def parse(cls, value: str) -> SemVer:
        """Parse a user-supplied version; must be exactly ``X.Y.Z``."""
        match = _STRICT_SEMVER.match(value.strip()) if isinstance(value, str) else None
        if not match:
            raise InvalidVersion(
                f"Invalid version '{value}': expected a three-part version such as 6.4.2",
                details={"version": value},
            )
        return cls(*(int(part) for part in match.groups()))

    @classmethod
    def parse_loose(cls, value: str | None) -> SemVer | None:
        """Extract the leading ``X.Y.Z`` from package metadata.

        Accepts ``5.5.3-1bionic``, ``7.0.0.79.g1a2b3c4`` and the like.
        Returns None when no version can be found.
        """
        if not value:
            return None
        match = _LOOSE_SEMVER.match(value)
        if not match:
            return None
        return cls(*(int(part) for part in match.groups()))

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


class Track(str, Enum):
    """Stability track of a collection."""

    STABLE = "stable"
    NIGHTLY = "nightly"


class Collection(BaseModel):
    """A package channel: one major-version family on one track."""

    model_config = ConfigDict(frozen=True)

    major: int
    track: Track = Track.STABLE

    @classmethod
    def parse(cls, name: str) -> Collection:
        """Parse ``puppetN`` or ``puppetN-nightly``.

        Raises:
            UnknownCollection: for any other name, or an unpublished major.
        """
        match = _COLLECTION_NAME.match((name or "").strip())
        if not match or int(match.group(1)) not in KNOWN_MAJORS:
            known = ", ".join(f"puppet{m}" for m in sorted(KNOWN_MAJORS))
            raise UnknownCollection(
                f"Unknown collection '{name}'. Known collections: {known} "
                "(append -nightly for nightly builds)",
                details={"collection": name},
            )
        track = Track.NIGHTLY if match.group(2) else Track.STABLE
        return cls(major=int(match.group(1)), track=track)

    @property
    def name(self) -> str:
        suffix = "-nightly" if self.track is Track.NIGHTLY else ""
        return f"puppet{self.major}{suffix}"

    @property
    def is_nightly(self) -> bool:
        return self.track is Track.NIGHTLY

    def family_range(self) -> frozenset[int]:
        """Major versions this collection ships."""
        return frozenset({self.major})

    def admits(self, version: SemVer) -> bool:
        return version.major in self.family_range()

    def __str__(self) -> str:
        return self.name


class RequestedVersion(BaseModel):
    """Either ``latest`` or one exact version."""

    model_config = ConfigDict(frozen=True)

    exact: SemVer | None = None

    @classmethod
    def latest(cls) -> RequestedVersion:
        return cls()

    @classmethod
    def parse(cls, value: str) -> RequestedVersion:
        if value.strip().lower() == "latest":
            return cls.latest()
        return cls(exact=SemVer.parse(value))

    @property
    def is_latest(self) -> bool:
        return self.exact is None

    def __str__(self) -> str:
        return "latest" if self.exact is None else str(self.exact)


class VersionSpec(BaseModel):
    """What the caller asked for.

    ``requested`` is None when no version parameter was given at all, which
    the reconciler treats differently from an explicit ``latest``.
    """

    model_config = ConfigDict(frozen=True)

    collection: Collection
    requested: RequestedVersion | None = None

    @classmethod
    def from_params(cls, collection: str, version: str | None = None) -> VersionSpec:
        requested = RequestedVersion.parse(version) if version else None
        return cls(collection=Collection.parse(collection), requested=requested)

    @property
    def explicit(self) -> bool:
        return self.requested is not None


class ResolvedVersion(BaseModel):
    """A concrete installable package version and where to get it."""

    model_config = ConfigDict(frozen=True)

    semver: SemVer
    source_uri: str
    full_version: str
    collection: Collection

    def __str__(self) -> str:
        return self.full_version
