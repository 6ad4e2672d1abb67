"""
Systemd Service Controller

Architectural Intent:
- Infrastructure adapter implementing ServiceControllerPort with systemctl
- Local hosts use subprocess; remote hosts go over SSH with a Fabric Connection
- Blocking calls run in the default executor so the event loop stays free

Behavior:
- stop/start are issued with --no-block and then polled every
  poll_interval_seconds until the target state or the timeout
- The poll is interruptible by the cancellation token; a command already
  sent to systemd is not reversed

Security:
- SSH connections use connect_timeout, allow_agent, look_for_keys
- Service names are shell-quoted for remote execution
"""

from __future__ import annotations
import asyncio
import logging
import shlex
import subprocess
from typing import FrozenSet, List, Optional, Tuple

from fabric import Connection

from redeploy.domain.cancellation import CancellationToken
from redeploy.domain.ports.service_controller_port import ServiceControllerPort
from redeploy.domain.value_objects.remote_host import RemoteHost
from redeploy.domain.value_objects.service_status import ServiceStatus

logger = logging.getLogger(__name__)

_RUNNING: FrozenSet[ServiceStatus] = frozenset({ServiceStatus.RUNNING})
_STOPPED: FrozenSet[ServiceStatus] = frozenset({ServiceStatus.STOPPED, ServiceStatus.FAILED})


class SystemdServiceController(ServiceControllerPort):
    """Adapter implementing ServiceControllerPort via systemctl."""

    def __init__(
        self,
        poll_interval_seconds: float = 1.0,
        command_timeout_seconds: float = 30,
        use_sudo: bool = False,
    ):
        self.poll_interval_seconds = poll_interval_seconds
        self.command_timeout_seconds = command_timeout_seconds
        self.use_sudo = use_sudo

    def _get_connection(self, host: RemoteHost) -> Connection:
        return Connection(
            host=host.host,
            user=host.user,
            port=host.port,
            connect_timeout=30,
            connect_kwargs={
                "allow_agent": True,
                "look_for_keys": True,
            },
        )

    def _run_local(self, args: List[str]) -> Tuple[int, str]:
        cmd = ["systemctl", *args]
        if self.use_sudo:
            cmd = ["sudo", "-n", *cmd]
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=self.command_timeout_seconds,
        )
        return result.returncode, result.stdout.strip() or result.stderr.strip()

    def _run_remote(self, host: RemoteHost, args: List[str]) -> Tuple[int, str]:
        command = "systemctl " + " ".join(shlex.quote(a) for a in args)
        conn = self._get_connection(host)
        try:
            runner = conn.sudo if self.use_sudo else conn.run
            result = runner(command, hide=True, warn=True, timeout=self.command_timeout_seconds)
            return result.return_code, result.stdout.strip() or result.stderr.strip()
        finally:
            conn.close()

    async def _systemctl(self, host: Optional[RemoteHost], *args: str) -> Tuple[int, str]:
        loop = asyncio.get_event_loop()
        if host is None:
            return await loop.run_in_executor(None, self._run_local, list(args))
        return await loop.run_in_executor(None, self._run_remote, host, list(args))

    async def get_status(
        self, service_name: str, host: Optional[RemoteHost] = None
    ) -> Optional[ServiceStatus]:
        try:
            # is-active exits non-zero for anything but active; stdout still names the state
            _, output = await self._systemctl(host, "is-active", service_name)
        except Exception as e:
            logger.error("Failed to read status of %s: %s", service_name, e)
            return None
        return ServiceStatus.from_systemd(output.splitlines()[0] if output else "")

    async def stop(
        self,
        service_name: str,
        host: Optional[RemoteHost] = None,
        timeout_seconds: float = 60,
        cancellation: Optional[CancellationToken] = None,
    ) -> bool:
        return await self._transition(
            service_name, host, "stop", _STOPPED, timeout_seconds, cancellation
        )

    async def start(
        self,
        service_name: str,
        host: Optional[RemoteHost] = None,
        timeout_seconds: float = 60,
        cancellation: Optional[CancellationToken] = None,
    ) -> bool:
        return await self._transition(
            service_name, host, "start", _RUNNING, timeout_seconds, cancellation
        )

    async def _transition(
        self,
        service_name: str,
        host: Optional[RemoteHost],
        action: str,
        targets: FrozenSet[ServiceStatus],
        timeout_seconds: float,
        cancellation: Optional[CancellationToken],
    ) -> bool:
        cancellation = cancellation or CancellationToken()
        where = str(host) if host else "localhost"

        status = await self.get_status(service_name, host)
        if status is None:
            return False
        if status in targets:
            logger.info("Service %s on %s already %s", service_name, where, status.name)
            return True

        cancellation.raise_if_cancelled()
        logger.info("Sending %s to %s on %s", action, service_name, where)
        try:
            code, output = await self._systemctl(host, action, "--no-block", service_name)
        except Exception as e:
            logger.error("systemctl %s %s failed on %s: %s", action, service_name, where, e)
            return False
        if code != 0:
            logger.error("systemctl %s %s exited %d: %s", action, service_name, code, output)
            return False

        return await self._wait_for(service_name, host, targets, timeout_seconds, cancellation)

    async def _wait_for(
        self,
        service_name: str,
        host: Optional[RemoteHost],
        targets: FrozenSet[ServiceStatus],
        timeout_seconds: float,
        cancellation: CancellationToken,
    ) -> bool:
        loop = asyncio.get_event_loop()
        deadline = loop.time() + timeout_seconds

        while True:
            status = await self.get_status(service_name, host)
            if status in targets:
                return True
            if ServiceStatus.RUNNING in targets and status == ServiceStatus.FAILED:
                logger.error("Service %s entered FAILED while starting", service_name)
                return False

            remaining = deadline - loop.time()
            if remaining <= 0:
                logger.error(
                    "Timed out after %ss waiting for %s (last status: %s)",
                    timeout_seconds, service_name, status.name if status else "unknown",
                )
                return False
            await cancellation.sleep(min(self.poll_interval_seconds, remaining))
