"""
L4 Execution — operations that change host state.
"""

from puppet_agent_tasks.core.services.agent_install.execution.service_control import (  # noqa: F401
    ensure_services_stopped,
    running_services,
    stop_and_wait,
)
