"""
L5 Orchestration — top-level coordinator.
"""

from puppet_agent_tasks.core.services.agent_install.orchestration.orchestrator import (  # noqa: F401
    InstallOutcome,
    describe,
    reconcile_agent,
)
