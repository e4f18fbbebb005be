"""Adapters — platform backends for the agent package.

Public re-exports for convenient access.
"""

from puppet_agent_tasks.adapters.base import PlatformBackend
from puppet_agent_tasks.adapters.mock import MockBackend
from puppet_agent_tasks.adapters.registry import BACKENDS, backend_for

__all__ = [
    "BACKENDS",
    "MockBackend",
    "PlatformBackend",
    "backend_for",
]
