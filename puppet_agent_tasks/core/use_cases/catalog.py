"""
Catalog use case — list the versions published for a collection.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from puppet_agent_tasks.core.config.loader import load_settings
from puppet_agent_tasks.core.models.task import TaskResult
from puppet_agent_tasks.core.models.version import Collection
from puppet_agent_tasks.core.services.agent_install.detection.platform import detect_platform
from puppet_agent_tasks.core.services.agent_install.resolver.catalog import (
    Catalog,
    catalog_from_settings,
)
from puppet_agent_tasks.core.use_cases.context import host_facts, run_task


def list_versions(
    collection: str,
    *,
    config_path: Path | None = None,
    platform: str | None = None,
    catalog: Catalog | None = None,
) -> TaskResult:
    """Versions of ``collection`` available for the platform, oldest first.

    Only the platform is detected; no backend is needed to read a catalog.
    """

    def _body() -> dict[str, Any]:
        parsed = Collection.parse(collection)
        settings = load_settings(config_path)
        spec = detect_platform(host_facts(platform))
        source = catalog or catalog_from_settings(settings.catalog)
        versions = source.versions(parsed, spec)
        return {
            "collection": parsed.name,
            "platform": spec.tag,
            "versions": versions,
            "latest": versions[-1] if versions else None,
        }

    return run_task("catalog", _body)
