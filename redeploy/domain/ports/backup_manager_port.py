"""
Backup Manager Port

Architectural Intent:
- Port interface for the backup lifecycle: create, restore, age-based cleanup
- Failures are reported through return values; only cancellation propagates
"""

from abc import ABC, abstractmethod
from typing import List, Optional
from redeploy.domain.cancellation import CancellationToken
from redeploy.domain.value_objects.backup_record import BackupRecord


class BackupManagerPort(ABC):
    """
    Port interface for managing dated snapshots of a destination directory.
    """

    @abstractmethod
    async def create_backup(
        self,
        source_path: str,
        version_tag: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> Optional[str]:
        """
        Snapshots source_path into the sibling Backups directory.
        Returns the backup path, or None when there is nothing to back up
        or the copy failed.
        """
        pass

    @abstractmethod
    async def restore_backup(
        self,
        backup_path: str,
        destination_path: str,
        cancellation: Optional[CancellationToken] = None,
    ) -> bool:
        """
        Replaces destination_path with the contents of backup_path.
        """
        pass

    @abstractmethod
    async def clean_old_backups(
        self,
        backup_parent_path: str,
        retention_days: int,
        cancellation: Optional[CancellationToken] = None,
    ) -> int:
        """
        Deletes backups older than retention_days. Never raises.
        Returns the number of backups removed.
        """
        pass

    @abstractmethod
    def list_backups(self, backup_parent_path: str) -> List[BackupRecord]:
        """
        Lists backups under backup_parent_path, newest first.
        """
        pass
