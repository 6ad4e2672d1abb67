from enum import Enum


class ServiceStatus(Enum):
    RUNNING = "running"
    STOPPED = "stopped"
    START_PENDING = "start_pending"
    STOP_PENDING = "stop_pending"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @staticmethod
    def from_systemd(state: str) -> "ServiceStatus":
        """Maps `systemctl is-active` output to a status."""
        return _SYSTEMD_STATES.get(state.strip().lower(), ServiceStatus.UNKNOWN)


_SYSTEMD_STATES = {
    "active": ServiceStatus.RUNNING,
    "reloading": ServiceStatus.RUNNING,
    "inactive": ServiceStatus.STOPPED,
    "activating": ServiceStatus.START_PENDING,
    "deactivating": ServiceStatus.STOP_PENDING,
    "failed": ServiceStatus.FAILED,
}
