"""
L3 Detection — Platform detector.

Pure normalization of raw host facts into a ``PlatformSpec``: canonical
distro, release, architecture and package-manager dialect.  No I/O here;
fact gathering lives in ``detection.facts``.
"""

from __future__ import annotations

import re

from puppet_agent_tasks.core.errors import UnsupportedPlatform
from puppet_agent_tasks.core.models.platform import HostFacts, PlatformFamily, PlatformSpec
from puppet_agent_tasks.core.services.agent_install.data.platforms import (
    ARCH_MAP,
    DEB_DISTROS,
    DEBIAN_CODENAMES,
    DISTRO_ALIASES,
    MACOS_VERSIONS,
    RPM_DISTROS,
    SOLARIS_VERSIONS,
    SUPPORTED_RPM_VERSIONS,
    UBUNTU_CODENAMES,
    WINDOWS_VERSIONS,
)

# "fedora-30", "sles 12", "ubuntu_1804": name with the release glued on
_NAME_WITH_VERSION = re.compile(r"^(?P<name>.*?[a-z])[-_ ]?(?P<version>\d[\w.]*)$")
_WINDOWS_VERSION = re.compile(r"^(\d+(?:\.\d+)?(?:r2)?)")


def detect_platform(facts: HostFacts) -> PlatformSpec:
    """Normalize host facts into a platform spec.

    Raises:
        UnsupportedPlatform: when the OS, release or architecture has no
            puppet-agent package mapping.
    """
    distro, version = _split_name(facts)

    if distro in RPM_DISTROS:
        return _rpm_platform(facts, distro, version)
    if distro in DEB_DISTROS:
        return _deb_platform(facts, distro, version)
    if distro == "windows":
        return _windows_platform(facts, version)
    if distro == "osx":
        return _macos_platform(facts, version)
    if distro == "solaris":
        return _solaris_platform(facts, version)

    raise _unsupported(facts)  # pragma: no cover - every alias maps to a family


def facts_from_platform_string(value: str) -> HostFacts:
    """Parse a beaker-style platform string such as ``el-7-x86_64``.

    Also accepts ``windows-2012r2-64``, ``osx-10.14-x86_64`` and
    ``ubuntu-1804-amd64``.  The last dash-separated field is the
    architecture, the one before it the release.
    """
    parts = value.strip().split("-")
    if len(parts) < 3:
        raise UnsupportedPlatform(
            f"Cannot parse platform string '{value}': expected <os>-<version>-<arch>",
            details={"platform": value},
        )
    return HostFacts(os_name="-".join(parts[:-2]), os_version=parts[-2], arch=parts[-1])


# ── Name / version splitting ────────────────────────────────────


def _normalize_name(name: str) -> str:
    return re.sub(r"[\s_\-]+", "", name.strip().lower())


def _split_name(facts: HostFacts) -> tuple[str, str]:
    """Return (canonical distro, raw release) from the facts."""
    key = _normalize_name(facts.os_name)
    distro = DISTRO_ALIASES.get(key)
    version = facts.os_version.strip()

    if distro is None:
        # Release embedded in the name: "fedora-30", "sles12"
        match = _NAME_WITH_VERSION.match(facts.os_name.strip().lower())
        if match:
            distro = DISTRO_ALIASES.get(_normalize_name(match.group("name")))
            version = version or match.group("version")

    if distro is None:
        raise _unsupported(facts)
    return distro, version


def _unsupported(facts: HostFacts, reason: str = "") -> UnsupportedPlatform:
    msg = (
        f"Unsupported platform: os={facts.os_name!r} version={facts.os_version!r} "
        f"arch={facts.arch!r}"
    )
    if reason:
        msg = f"{msg} ({reason})"
    return UnsupportedPlatform(msg, details=facts.model_dump())


def _arch(facts: HostFacts, style: int) -> str:
    """Map the raw arch through ARCH_MAP; style 0 = rpm, 1 = deb."""
    entry = ARCH_MAP.get(facts.arch.strip().lower())
    if entry is None:
        raise _unsupported(facts, "unknown architecture")
    return entry[style]


# ── Per-family builders ─────────────────────────────────────────


def _rpm_platform(facts: HostFacts, distro: str, version: str) -> PlatformSpec:
    major = version.split(".")[0]
    if major not in SUPPORTED_RPM_VERSIONS[distro]:
        raise _unsupported(facts, f"no packages for {distro} {version or '?'}")

    if distro == "sles":
        manager = "zypper"
    elif distro == "el":
        manager = "yum" if int(major) < 8 else "dnf"
    elif distro == "amazon":
        manager = "yum" if major == "2" else "dnf"
    else:
        manager = "dnf"

    return PlatformSpec(
        family=PlatformFamily.LINUX_RPM,
        distro=distro,
        distro_version=major,
        arch=_arch(facts, 0),
        package_manager=manager,
    )


def _deb_platform(facts: HostFacts, distro: str, version: str) -> PlatformSpec:
    table = DEBIAN_CODENAMES if distro == "debian" else UBUNTU_CODENAMES
    release = version.lower()

    if release in table.values():
        # Codename given directly ("buster")
        release = next(k for k, v in table.items() if v == release)
    elif distro == "debian":
        release = release.split(".")[0]
    else:
        if re.fullmatch(r"\d{4}", release):
            release = f"{release[:2]}.{release[2:]}"
        release = ".".join(release.split(".")[:2])

    codename = table.get(release)
    if codename is None:
        raise _unsupported(facts, f"no packages for {distro} {version or '?'}")

    return PlatformSpec(
        family=PlatformFamily.LINUX_DEB,
        distro=distro,
        distro_version=release,
        codename=codename,
        arch=_arch(facts, 1),
        package_manager="apt",
    )


def _windows_platform(facts: HostFacts, version: str) -> PlatformSpec:
    raw = version.lower().replace("server", "").replace(" ", "")
    match = _WINDOWS_VERSION.match(raw)
    release = match.group(1) if match else ""
    if release not in WINDOWS_VERSIONS:
        # Kernel-style versions such as 10.0.17763
        release = release.split(".")[0]
    if release not in WINDOWS_VERSIONS:
        raise _unsupported(facts, "unknown Windows release")

    raw_arch = facts.arch.strip().lower() or "x64"
    if raw_arch not in ARCH_MAP:
        raise _unsupported(facts, "unknown architecture")
    arch = "x64" if ARCH_MAP[raw_arch][0] in ("x86_64", "aarch64") else "x86"

    return PlatformSpec(
        family=PlatformFamily.WINDOWS,
        distro="windows",
        distro_version=release,
        arch=arch,
        package_manager="msi",
    )


def _macos_platform(facts: HostFacts, version: str) -> PlatformSpec:
    parts = version.split(".")
    release = ".".join(parts[:2]) if parts[0] == "10" else parts[0]
    if release not in MACOS_VERSIONS:
        raise _unsupported(facts, f"no packages for macOS {version or '?'}")

    arch = _arch(facts, 0)
    if arch == "aarch64":
        arch = "arm64"
    elif arch != "x86_64":
        raise _unsupported(facts, "unknown architecture")

    return PlatformSpec(
        family=PlatformFamily.MACOS,
        distro="osx",
        distro_version=release,
        arch=arch,
        package_manager="pkg",
    )


def _solaris_platform(facts: HostFacts, version: str) -> PlatformSpec:
    # SunOS kernel release "5.11" → Solaris 11
    release = version[2:] if version.startswith("5.") else version
    release = release.split(".")[0]
    if release not in SOLARIS_VERSIONS:
        raise _unsupported(facts, f"no packages for Solaris {version or '?'}")

    arch = _arch(facts, 0)
    if arch not in ("i386", "x86_64", "sparc"):
        raise _unsupported(facts, "unknown architecture")

    return PlatformSpec(
        family=PlatformFamily.SOLARIS,
        distro="solaris",
        distro_version=release,
        arch="sparc" if arch == "sparc" else "i386",
        package_manager="ips",
    )
