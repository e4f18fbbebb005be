"""
L3 Detection — ``__init__.py`` re-exports all detection functions.

These functions READ host state but never WRITE.
"""

from puppet_agent_tasks.core.services.agent_install.detection.facts import (  # noqa: F401
    gather_local_facts,
    parse_os_release,
)
from puppet_agent_tasks.core.services.agent_install.detection.installed_state import (  # noqa: F401
    read_installed_state,
)
from puppet_agent_tasks.core.services.agent_install.detection.platform import (  # noqa: F401
    detect_platform,
    facts_from_platform_string,
)
