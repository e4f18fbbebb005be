"""
HTTP(S) and file:// fetching for catalog indexes and package artifacts.

Thin wrappers over ``urllib.request``.  Errors propagate as
``urllib.error.URLError`` / ``OSError``; callers map them onto their own
failure kinds (catalog unavailable, install error).
"""

from __future__ import annotations

import logging
import shutil
import urllib.parse
import urllib.request
from pathlib import Path

from puppet_agent_tasks import __version__

logger = logging.getLogger(__name__)

_USER_AGENT = f"puppet-agent-tasks/{__version__}"
_CHUNK = 64 * 1024


def _open(url: str, timeout: int):
    req = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
    return urllib.request.urlopen(req, timeout=timeout)  # noqa: S310


def fetch_text(url: str, timeout: int = 30) -> str:
    """GET ``url`` and decode the body as UTF-8."""
    logger.debug("GET %s", url)
    with _open(url, timeout) as resp:
        return resp.read().decode("utf-8", errors="replace")


def artifact_name(uri: str) -> str:
    """File name component of a package URI."""
    path = urllib.parse.urlparse(uri).path
    return urllib.parse.unquote(path.rsplit("/", 1)[-1]) or "artifact"


def fetch_file(uri: str, dest_dir: Path, timeout: int = 300) -> Path:
    """Download ``uri`` into ``dest_dir`` and return the local path.

    Plain local paths are used in place without copying.
    """
    parsed = urllib.parse.urlparse(uri)
    if len(parsed.scheme) == 1:
        # Windows drive letter, e.g. C:\packages\puppet-agent.msi
        local = Path(uri)
        if not local.is_file():
            raise FileNotFoundError(f"Package file not found: {local}")
        return local
    if parsed.scheme in ("", "file") and not parsed.netloc:
        local = Path(urllib.parse.unquote(parsed.path))
        if not local.is_file():
            raise FileNotFoundError(f"Package file not found: {local}")
        return local

    target = dest_dir / artifact_name(uri)
    logger.info("Downloading %s", uri)
    with _open(uri, timeout) as resp, open(target, "wb") as out:
        shutil.copyfileobj(resp, out, _CHUNK)
    logger.debug("Downloaded %d bytes to %s", target.stat().st_size, target)
    return target
