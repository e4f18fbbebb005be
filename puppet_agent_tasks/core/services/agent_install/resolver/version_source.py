"""
L2 Resolver — Version source.

Turns a ``VersionSpec`` into a concrete ``ResolvedVersion`` by consulting
a catalog for the collection + platform.
"""

from __future__ import annotations

import logging

from puppet_agent_tasks.core.errors import CollectionEmpty, VersionNotFound
from puppet_agent_tasks.core.models.platform import PlatformSpec
from puppet_agent_tasks.core.models.version import ResolvedVersion, VersionSpec
from puppet_agent_tasks.core.services.agent_install.resolver.catalog import (
    Catalog,
    CatalogEntry,
)

logger = logging.getLogger(__name__)


def resolve(spec: VersionSpec, platform: PlatformSpec, catalog: Catalog) -> ResolvedVersion:
    """Resolve the requested version against the catalog.

    No version and ``latest`` both pick the highest build of the collection.

    Raises:
        VersionNotFound: exact version outside the collection's major
            family, or not published for this platform.
        CollectionEmpty: nothing published for collection + platform.
    """
    collection = spec.collection
    exact = spec.requested.exact if spec.requested else None

    if exact is not None and not collection.admits(exact):
        raise VersionNotFound(
            f"Version {exact} does not belong to collection {collection} "
            f"(expected {collection.major}.x.y)",
            details={"version": str(exact), "collection": collection.name},
        )

    entries = [e for e in catalog.entries(collection, platform) if collection.admits(e.semver)]

    if exact is None:
        if not entries:
            raise CollectionEmpty(
                f"No puppet-agent packages found in collection {collection} for {platform}",
                details={"collection": collection.name, "platform": platform.tag},
            )
        best = _highest(entries)
    else:
        matching = [e for e in entries if e.semver == exact]
        if not matching:
            raise VersionNotFound(
                f"puppet-agent {exact} not found in collection {collection} for {platform}",
                details={
                    "version": str(exact),
                    "collection": collection.name,
                    "platform": platform.tag,
                },
            )
        best = _highest(matching)

    logger.info("Resolved %s %s → %s", collection, spec.requested or "latest", best.version)
    return ResolvedVersion(
        semver=best.semver,
        source_uri=best.uri,
        full_version=best.version,
        collection=collection,
    )


def _highest(entries: list[CatalogEntry]) -> CatalogEntry:
    return max(entries, key=lambda e: e.sort_key)
