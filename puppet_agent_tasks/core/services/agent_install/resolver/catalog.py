"""
L2 Resolver — Package catalogs.

A catalog answers "which puppet-agent builds exist for this collection on
this platform, and where do I download them".  Two implementations:

    HttpCatalog  — reads the directory indexes of the Puppet package hosts
                   (yum/apt/downloads, or the nightlies host), one layout
                   per platform family.
    FileCatalog  — a YAML listing, for air-gapped sites and tests.
"""

from __future__ import annotations

import logging
import re
import urllib.error
import urllib.parse
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from puppet_agent_tasks.adapters.download import fetch_text
from puppet_agent_tasks.core.errors import CatalogUnavailable
from puppet_agent_tasks.core.models.platform import PlatformFamily, PlatformSpec
from puppet_agent_tasks.core.models.settings import CatalogSettings
from puppet_agent_tasks.core.models.version import Collection, SemVer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogEntry:
    """One downloadable build."""

    version: str  # package version as published, e.g. 7.0.0.79.g1a2b3c4
    semver: SemVer
    uri: str
    build: int = 0
    release: int = 0

    @property
    def sort_key(self) -> tuple[SemVer, int, int]:
        return (self.semver, self.build, self.release)


class Catalog(ABC):
    """Source of available package versions."""

    @abstractmethod
    def entries(self, collection: Collection, platform: PlatformSpec) -> list[CatalogEntry]:
        """All builds of ``collection`` for ``platform`` (any order, may be empty)."""

    def versions(self, collection: Collection, platform: PlatformSpec) -> list[str]:
        """Published version strings, oldest first."""
        ordered = sorted(self.entries(collection, platform), key=lambda e: e.sort_key)
        seen: dict[str, None] = {}
        for entry in ordered:
            seen.setdefault(entry.version, None)
        return list(seen)


# ── HTTP directory indexes ──────────────────────────────────────

_VER = r"(?P<version>(?P<semver>\d+\.\d+\.\d+)(?:\.(?P<build>\d+)(?:\.g[0-9a-f]+)?)?)"

_FILENAME_PATTERNS: dict[PlatformFamily, re.Pattern[str]] = {
    PlatformFamily.LINUX_RPM: re.compile(
        rf"^puppet-agent-{_VER}-(?P<release>\d+)\.(?P<dist>[a-z]+\d*)\.(?P<arch>\w+)\.rpm$"
    ),
    PlatformFamily.LINUX_DEB: re.compile(
        rf"^puppet-agent_{_VER}-(?P<release>\d+)(?P<dist>[a-z]+)_(?P<arch>\w+)\.deb$"
    ),
    PlatformFamily.WINDOWS: re.compile(rf"^puppet-agent-{_VER}-(?P<arch>x64|x86)\.msi$"),
    PlatformFamily.MACOS: re.compile(
        rf"^puppet-agent-{_VER}-(?P<release>\d+)\.osx(?P<dist>[\d.]+)\.dmg$"
    ),
    PlatformFamily.SOLARIS: re.compile(
        rf"^puppet-agent@{_VER},5\.11-(?P<release>\d+)\.(?P<arch>i386|sparc)\.p5p$"
    ),
}

# Distro → dist tag embedded in RPM file names
_RPM_DIST_TAGS: dict[str, str] = {"el": "el", "fedora": "fc", "sles": "sles", "amazon": "amazon"}

_HREF = re.compile(r'href\s*=\s*["\']([^"\'#?]+)["\']', re.IGNORECASE)


def parse_index(html: str) -> list[str]:
    """Extract linked file names from an autoindex page."""
    names = []
    for href in _HREF.findall(html):
        name = urllib.parse.unquote(href.rstrip("/").rsplit("/", 1)[-1])
        if name and not href.endswith("/"):
            names.append(name)
    return names


def match_filename(name: str, platform: PlatformSpec) -> re.Match[str] | None:
    """Match a package file name against the platform's naming scheme.

    Returns the match only when distro tag and architecture fit.
    """
    match = _FILENAME_PATTERNS[platform.family].match(name)
    if match is None:
        return None
    groups = match.groupdict()

    if platform.family is PlatformFamily.LINUX_RPM:
        expected = f"{_RPM_DIST_TAGS[platform.distro]}{platform.distro_version}"
        if groups["dist"] != expected or groups["arch"] not in (platform.arch, "noarch"):
            return None
    elif platform.family is PlatformFamily.LINUX_DEB:
        if groups["dist"] != platform.codename or groups["arch"] not in (platform.arch, "all"):
            return None
    elif platform.family is PlatformFamily.MACOS:
        if groups["dist"] != platform.distro_version:
            return None
    elif groups.get("arch") != platform.arch:
        return None
    return match


def entry_from_match(match: re.Match[str], uri: str) -> CatalogEntry:
    groups = match.groupdict()
    return CatalogEntry(
        version=groups["version"],
        semver=SemVer.parse(groups["semver"]),
        uri=uri,
        build=int(groups.get("build") or 0),
        release=int(groups.get("release") or 0),
    )


class HttpCatalog(Catalog):
    """Catalog backed by the package hosts' directory listings."""

    def __init__(
        self,
        settings: CatalogSettings,
        fetch: Callable[[str, int], str] = fetch_text,
    ):
        self._settings = settings
        self._fetch = fetch

    def _root(self, stable: str, nightly_subdir: str, collection: Collection) -> str:
        if collection.is_nightly:
            return f"{self._settings.nightly_source.rstrip('/')}/{nightly_subdir}"
        return stable.rstrip("/")

    def index_url(self, collection: Collection, platform: PlatformSpec) -> str:
        """Directory that holds the collection's packages for ``platform``."""
        s = self._settings
        c = collection.name
        family = platform.family

        if family is PlatformFamily.LINUX_RPM:
            root = self._root(s.yum_source, "yum", collection)
            return f"{root}/{c}/{platform.distro}/{platform.distro_version}/{platform.arch}/"
        if family is PlatformFamily.LINUX_DEB:
            root = self._root(s.apt_source, "apt", collection)
            return f"{root}/pool/{platform.codename}/{c}/p/puppet-agent/"
        if family is PlatformFamily.WINDOWS:
            root = self._root(s.windows_source, "downloads", collection)
            return f"{root}/windows/{c}/"
        if family is PlatformFamily.MACOS:
            root = self._root(s.mac_source, "downloads", collection)
            return f"{root}/mac/{c}/{platform.distro_version}/{platform.arch}/"
        root = self._root(s.solaris_source, "downloads", collection)
        return f"{root}/solaris/{c}/{platform.distro_version}/"

    def entries(self, collection: Collection, platform: PlatformSpec) -> list[CatalogEntry]:
        url = self.index_url(collection, platform)
        try:
            html = self._fetch(url, self._settings.timeout)
        except urllib.error.HTTPError as e:
            if e.code == 404:
                logger.info("No package index at %s", url)
                return []
            raise CatalogUnavailable(
                f"Cannot read package index {url}: HTTP {e.code}",
                details={"url": url, "status": e.code},
            ) from e
        except (urllib.error.URLError, OSError) as e:
            raise CatalogUnavailable(
                f"Cannot read package index {url}: {e}",
                details={"url": url},
            ) from e

        found = []
        for name in parse_index(html):
            match = match_filename(name, platform)
            if match is not None:
                found.append(entry_from_match(match, urllib.parse.urljoin(url, name)))

        logger.debug("%s: %d %s builds for %s", url, len(found), collection, platform)
        return found


# ── YAML listing ────────────────────────────────────────────────


class FileCatalog(Catalog):
    """Catalog read from a YAML file.

    Layout::

        puppet6:
          el-7-x86_64:
            - version: 6.4.2
              uri: https://yum.puppet.com/puppet6/el/7/x86_64/puppet-agent-6.4.2-1.el7.x86_64.rpm
          windows:            # a family name matches every platform of that family
            - version: 6.4.2
              uri: https://downloads.puppet.com/windows/puppet6/puppet-agent-6.4.2-x64.msi
          "*":                # any platform

    The platform tag is looked up first, then the family, then ``*``.
    """

    def __init__(self, path: Path):
        self._path = path

    def _load(self) -> dict[str, Any]:
        try:
            data = yaml.safe_load(self._path.read_text(encoding="utf-8"))
        except OSError as e:
            raise CatalogUnavailable(
                f"Cannot read catalog {self._path}: {e}", details={"path": str(self._path)}
            ) from e
        except yaml.YAMLError as e:
            raise CatalogUnavailable(
                f"Invalid YAML in catalog {self._path}: {e}", details={"path": str(self._path)}
            ) from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise CatalogUnavailable(
                f"Expected a YAML mapping in catalog {self._path}",
                details={"path": str(self._path)},
            )
        return data

    def entries(self, collection: Collection, platform: PlatformSpec) -> list[CatalogEntry]:
        platforms = self._load().get(collection.name) or {}
        listing = None
        for key in (platform.tag, platform.family.value, "*"):
            if key in platforms:
                listing = platforms[key]
                break

        found = []
        for item in listing or []:
            if not isinstance(item, dict):
                logger.warning("Skipping malformed catalog entry in %s: %r", self._path, item)
                continue
            version = str(item.get("version", ""))
            semver = SemVer.parse_loose(version)
            if semver is None or not item.get("uri"):
                logger.warning("Skipping malformed catalog entry in %s: %r", self._path, item)
                continue
            build = version.split(".")[3] if version.count(".") >= 3 else "0"
            found.append(CatalogEntry(
                version=version,
                semver=semver,
                uri=str(item["uri"]),
                build=int(build) if build.isdigit() else 0,
            ))
        return found


def catalog_from_settings(settings: CatalogSettings) -> Catalog:
    """Build the catalog selected by ``settings.source``."""
    if settings.source == "file":
        if not settings.path:
            raise CatalogUnavailable("catalog.source is 'file' but catalog.path is not set")
        return FileCatalog(Path(settings.path))
    return HttpCatalog(settings)
