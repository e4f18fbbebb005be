"""
Agent install service — package re-exports.

Each symbol lives in its single-responsibility module inside the
appropriate onion layer (data → domain → resolver → detection →
execution → orchestration)::

    from puppet_agent_tasks.core.services.agent_install import reconcile_agent
"""

# ── L1: Domain ──
from puppet_agent_tasks.core.services.agent_install.domain.reconcile import (  # noqa: F401
    decide,
    needs_resolution,
)

# ── L2: Resolver ──
from puppet_agent_tasks.core.services.agent_install.resolver.catalog import (  # noqa: F401
    Catalog,
    FileCatalog,
    HttpCatalog,
    catalog_from_settings,
)
from puppet_agent_tasks.core.services.agent_install.resolver.version_source import (  # noqa: F401
    resolve,
)

# ── L3: Detection ──
from puppet_agent_tasks.core.services.agent_install.detection.facts import (  # noqa: F401
    gather_local_facts,
)
from puppet_agent_tasks.core.services.agent_install.detection.installed_state import (  # noqa: F401
    read_installed_state,
)
from puppet_agent_tasks.core.services.agent_install.detection.platform import (  # noqa: F401
    detect_platform,
    facts_from_platform_string,
)

# ── L4: Execution ──
from puppet_agent_tasks.core.services.agent_install.execution.service_control import (  # noqa: F401
    ensure_services_stopped,
    stop_and_wait,
)

# ── L5: Orchestration ──
from puppet_agent_tasks.core.services.agent_install.orchestration.orchestrator import (  # noqa: F401
    InstallOutcome,
    reconcile_agent,
)
