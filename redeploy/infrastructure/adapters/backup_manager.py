"""
Backup Manager Adapter

Architectural Intent:
- Infrastructure adapter implementing BackupManagerPort on the local filesystem
- Snapshots go to <parent of destination>/Backups/<backup name>
- All tree copies and deletes go through FileOperationsPort
"""

from __future__ import annotations
import logging
import os
from datetime import datetime, timedelta
from typing import List, Optional

from redeploy.domain.cancellation import CancellationToken
from redeploy.domain.ports.backup_manager_port import BackupManagerPort
from redeploy.domain.ports.file_operations_port import FileOperationsPort
from redeploy.domain.value_objects.backup_record import BACKUPS_DIR_NAME, BackupRecord

logger = logging.getLogger(__name__)


def backups_dir_for(destination_path: str) -> str:
    """The Backups directory that sits next to destination_path."""
    parent = os.path.dirname(os.path.normpath(destination_path))
    return os.path.join(parent, BACKUPS_DIR_NAME)


def creation_time(path: str) -> datetime:
    """Directory creation time.

    st_birthtime where the platform records it, otherwise the timestamp in a
    backup folder name, and st_ctime as a last resort.
    """
    stat = os.stat(path)
    birth = getattr(stat, "st_birthtime", None)
    if birth is not None:
        return datetime.fromtimestamp(birth)
    name = os.path.basename(os.path.normpath(path))
    if BackupRecord.is_backup_name(name):
        return BackupRecord.parse(name).created_at
    return datetime.fromtimestamp(stat.st_ctime)


class BackupManager(BackupManagerPort):
    def __init__(self, file_operations: FileOperationsPort, concurrency_limit: int = 8):
        self.file_operations = file_operations
        self.concurrency_limit = concurrency_limit

    async def create_backup(
        self,
        source_path: str,
        version_tag: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> Optional[str]:
        if not os.path.isdir(source_path):
            logger.info("Nothing to back up, %s does not exist", source_path)
            return None

        record = BackupRecord.now(version_tag)
        backup_path = os.path.join(backups_dir_for(source_path), record.folder_name)
        logger.info("Creating backup %s", backup_path)

        result = await self.file_operations.copy_directory(
            source_path,
            backup_path,
            self.concurrency_limit,
            cancellation=cancellation,
        )
        if not result.success:
            logger.error("Backup of %s to %s failed", source_path, backup_path)
            return None

        logger.info("Backup created: %s (%d files)", backup_path, result.files_copied)
        return backup_path

    async def restore_backup(
        self,
        backup_path: str,
        destination_path: str,
        cancellation: Optional[CancellationToken] = None,
    ) -> bool:
        logger.info("Restoring %s from %s", destination_path, backup_path)

        if not await self.file_operations.delete_directory(destination_path, cancellation):
            logger.error("Could not clear %s before restore", destination_path)
            return False

        result = await self.file_operations.copy_directory(
            backup_path,
            destination_path,
            self.concurrency_limit,
            cancellation=cancellation,
        )
        if not result.success:
            logger.error("Restore from %s failed", backup_path)
            return False
        return True

    async def clean_old_backups(
        self,
        backup_parent_path: str,
        retention_days: int,
        cancellation: Optional[CancellationToken] = None,
    ) -> int:
        try:
            names = os.listdir(backup_parent_path)
        except OSError as e:
            logger.warning("Cannot list backups in %s: %s", backup_parent_path, e)
            return 0

        cutoff = datetime.now() - timedelta(days=retention_days)
        removed = 0

        for name in sorted(names):
            if cancellation and cancellation.is_cancelled:
                logger.warning("Backup cleanup cancelled after removing %d", removed)
                break

            path = os.path.join(backup_parent_path, name)
            if not BackupRecord.is_backup_name(name) or not os.path.isdir(path):
                continue

            try:
                if creation_time(path) >= cutoff:
                    continue
                if await self.file_operations.delete_directory(path):
                    logger.info("Deleted old backup: %s", name)
                    removed += 1
                else:
                    logger.warning("Failed to delete old backup: %s", name)
            except Exception as e:
                logger.warning("Failed to delete old backup %s: %s", name, e)

        return removed

    def list_backups(self, backup_parent_path: str) -> List[BackupRecord]:
        try:
            names = os.listdir(backup_parent_path)
        except OSError:
            return []

        records = [
            BackupRecord.parse(name)
            for name in names
            if BackupRecord.is_backup_name(name)
            and os.path.isdir(os.path.join(backup_parent_path, name))
        ]
        return sorted(records, key=lambda r: r.created_at, reverse=True)
