"""
L0 Data — Platform normalization tables.

Pure data. No logic. No imports beyond stdlib.
"""

from __future__ import annotations

# OS name aliases → canonical distro name.  Keys are lower-cased and
# stripped of spaces/underscores before lookup.
DISTRO_ALIASES: dict[str, str] = {
    # Enterprise Linux
    "el": "el",
    "rhel": "el",
    "redhat": "el",
    "redhatenterpriselinux": "el",
    "redhatenterpriseserver": "el",
    "centos": "el",
    "centoslinux": "el",
    "centosstream": "el",
    "oracle": "el",
    "oraclelinux": "el",
    "ol": "el",
    "scientific": "el",
    "rocky": "el",
    "almalinux": "el",
    # Other RPM distros
    "fedora": "fedora",
    "amazon": "amazon",
    "amzn": "amazon",
    "amazonlinux": "amazon",
    "sles": "sles",
    "sled": "sles",
    "suse": "sles",
    "opensuse": "sles",
    "opensuseleap": "sles",
    # Debian family
    "debian": "debian",
    "ubuntu": "ubuntu",
    # Others
    "windows": "windows",
    "win": "windows",
    "windowsserver": "windows",
    "osx": "osx",
    "macos": "osx",
    "macosx": "osx",
    "darwin": "osx",
    "solaris": "solaris",
    "sunos": "solaris",
}

RPM_DISTROS: frozenset[str] = frozenset({"el", "fedora", "amazon", "sles"})
DEB_DISTROS: frozenset[str] = frozenset({"debian", "ubuntu"})

# Major versions with published puppet-agent packages.
SUPPORTED_RPM_VERSIONS: dict[str, frozenset[str]] = {
    "el": frozenset({"5", "6", "7", "8", "9"}),
    "fedora": frozenset({"26", "27", "28", "29", "30", "31", "32", "34", "36", "40"}),
    "amazon": frozenset({"2", "2023"}),
    "sles": frozenset({"11", "12", "15"}),
}

# Debian/Ubuntu release → codename used in apt pool paths and package names.
DEBIAN_CODENAMES: dict[str, str] = {
    "8": "jessie",
    "9": "stretch",
    "10": "buster",
    "11": "bullseye",
    "12": "bookworm",
}

UBUNTU_CODENAMES: dict[str, str] = {
    "14.04": "trusty",
    "16.04": "xenial",
    "18.04": "bionic",
    "20.04": "focal",
    "22.04": "jammy",
    "24.04": "noble",
}

# Windows editions: product/kernel versions are all served by the same MSI.
WINDOWS_VERSIONS: frozenset[str] = frozenset({
    "2008", "2008r2", "2012", "2012r2", "2016", "2019", "2022",
    "7", "8", "8.1", "10", "11",
})

# macOS releases with their own puppet-agent dmg builds.
MACOS_VERSIONS: frozenset[str] = frozenset({
    "10.12", "10.13", "10.14", "10.15", "11", "12", "13", "14",
})

SOLARIS_VERSIONS: frozenset[str] = frozenset({"11"})

# Raw architecture names → (rpm-style, deb-style).  Windows and Solaris
# have their own short vocabularies handled in the detector.
ARCH_MAP: dict[str, tuple[str, str]] = {
    "x86_64": ("x86_64", "amd64"),
    "amd64": ("x86_64", "amd64"),
    "x64": ("x86_64", "amd64"),
    "64": ("x86_64", "amd64"),
    "aarch64": ("aarch64", "arm64"),
    "arm64": ("aarch64", "arm64"),
    "ppc64le": ("ppc64le", "ppc64el"),
    "ppc64el": ("ppc64le", "ppc64el"),
    "s390x": ("s390x", "s390x"),
    "i386": ("i386", "i386"),
    "i686": ("i386", "i386"),
    "i86pc": ("i386", "i386"),  # Solaris x86 platform.machine()
    "x86": ("i386", "i386"),
    "32": ("i386", "i386"),
    "sparc": ("sparc", "sparc"),
    "sun4v": ("sparc", "sparc"),
}
