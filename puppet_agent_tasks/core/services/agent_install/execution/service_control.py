"""
L4 Execution — Agent service control.

Checks the services that hold the agent binaries open, and stops the
agent service after an install with bounded polling.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable

from puppet_agent_tasks.adapters.base import PlatformBackend
from puppet_agent_tasks.core.errors import ServiceRunning, ServiceStopFailed
from puppet_agent_tasks.core.models.settings import ServiceStopSettings
from puppet_agent_tasks.core.models.state import ServiceStatus

logger = logging.getLogger(__name__)


def running_services(backend: PlatformBackend, services: Iterable[str]) -> list[str]:
    """Services from ``services`` the backend reports as running."""
    running = []
    for service in services:
        status = backend.service_status(service)
        logger.debug("Service %s: %s", service, status.value)
        if status is ServiceStatus.RUNNING:
            running.append(service)
    return running


def ensure_services_stopped(backend: PlatformBackend, services: Iterable[str]) -> None:
    """Refuse to touch the package while blocking services run.

    Only applies to backends that set ``blocks_while_services_run``.

    Raises:
        ServiceRunning: naming every running service.
    """
    if not backend.blocks_while_services_run:
        return
    running = running_services(backend, services)
    if running:
        raise ServiceRunning(
            "Puppet Agent upgrade cannot be done while Puppet services are still running. "
            f"Stop these services first: {', '.join(running)}",
            details={"services": running},
        )


def stop_and_wait(
    backend: PlatformBackend,
    service: str,
    settings: ServiceStopSettings,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> ServiceStatus:
    """Stop ``service`` and poll until it reports stopped.

    Raises:
        ServiceStopFailed: if it is not stopped after ``settings.checks`` polls.
    """
    logger.info("Stopping service %s", service)
    backend.stop_service(service)

    status = ServiceStatus.UNKNOWN
    for check in range(1, settings.checks + 1):
        status = backend.service_status(service)
        if status is ServiceStatus.STOPPED:
            logger.info("Service %s stopped (check %d/%d)", service, check, settings.checks)
            return status
        if check < settings.checks:
            sleep(settings.interval)

    raise ServiceStopFailed(
        f"Service '{service}' did not reach 'stopped' after {settings.checks} checks "
        f"(last status: {status.value})",
        details={"service": service, "checks": settings.checks, "status": status.value},
    )
