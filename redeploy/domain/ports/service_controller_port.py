"""
Service Controller Port

Architectural Intent:
- Port interface for stopping, starting and querying a named background service
- Implemented by adapters (systemd over subprocess or SSH, test fakes)

Contract relied on by the deployment use case:
- stop/start are idempotent: already in the target state returns True at once
- stop/start honor timeout_seconds by returning False, never blocking forever
- get_status returns None when the status cannot be read
"""

from abc import ABC, abstractmethod
from typing import Optional
from redeploy.domain.cancellation import CancellationToken
from redeploy.domain.value_objects.remote_host import RemoteHost
from redeploy.domain.value_objects.service_status import ServiceStatus


class ServiceControllerPort(ABC):
    """
    Port interface for controlling a service locally or on a remote host.
    """

    @abstractmethod
    async def stop(
        self,
        service_name: str,
        host: Optional[RemoteHost] = None,
        timeout_seconds: float = 60,
        cancellation: Optional[CancellationToken] = None,
    ) -> bool:
        """
        Stops the service and waits until it reports STOPPED.
        Returns False on error or timeout.
        """
        pass

    @abstractmethod
    async def start(
        self,
        service_name: str,
        host: Optional[RemoteHost] = None,
        timeout_seconds: float = 60,
        cancellation: Optional[CancellationToken] = None,
    ) -> bool:
        """
        Starts the service and waits until it reports RUNNING.
        Returns False on error or timeout.
        """
        pass

    @abstractmethod
    async def get_status(
        self, service_name: str, host: Optional[RemoteHost] = None
    ) -> Optional[ServiceStatus]:
        """
        Reads the current service status. Returns None on error.
        """
        pass
