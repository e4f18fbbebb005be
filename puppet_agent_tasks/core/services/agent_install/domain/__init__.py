"""
L1 Domain — pure decision logic, no I/O.
"""

from puppet_agent_tasks.core.services.agent_install.domain.reconcile import (  # noqa: F401
    NO_VERSION_REQUESTED,
    decide,
    needs_resolution,
)
