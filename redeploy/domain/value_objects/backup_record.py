"""
Backup Record Value Object

Architectural Intent:
- A backup is identified only by its directory name
- Name encodes the creation timestamp and an optional version tag:
  Backup_<YYYYMMDD_HHMMSS> or Backup_v<tag>_<YYYYMMDD_HHMMSS>
- Records are never mutated; cleanup deletes whole directories
"""

from __future__ import annotations
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

BACKUPS_DIR_NAME = "Backups"
BACKUP_PREFIX = "Backup_"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

_NAME_RE = re.compile(
    r"^Backup_(?:v(?P<tag>.+)_)?(?P<timestamp>\d{8}_\d{6})$"
)


@dataclass(frozen=True)
class BackupRecord:
    """
    Value Object for a dated snapshot directory.
    """
    created_at: datetime
    version_tag: Optional[str] = None

    def __post_init__(self) -> None:
        if self.version_tag is not None and not self.version_tag:
            raise ValueError("Version tag cannot be empty; use None")
        if self.version_tag and re.search(r"[\\/]", self.version_tag):
            raise ValueError(f"Version tag cannot contain path separators: {self.version_tag!r}")

    @property
    def folder_name(self) -> str:
        timestamp = self.created_at.strftime(TIMESTAMP_FORMAT)
        if self.version_tag:
            return f"{BACKUP_PREFIX}v{self.version_tag}_{timestamp}"
        return f"{BACKUP_PREFIX}{timestamp}"

    def __str__(self) -> str:
        return self.folder_name

    @staticmethod
    def is_backup_name(name: str) -> bool:
        return bool(_NAME_RE.match(name))

    @staticmethod
    def parse(name: str) -> "BackupRecord":
        m = _NAME_RE.match(name)
        if not m:
            raise ValueError(f"Not a backup folder name: {name!r}")
        return BackupRecord(
            created_at=datetime.strptime(m.group("timestamp"), TIMESTAMP_FORMAT),
            version_tag=m.group("tag"),
        )

    @staticmethod
    def now(version_tag: Optional[str] = None) -> "BackupRecord":
        # Second precision; the name cannot carry anything finer
        return BackupRecord(
            created_at=datetime.now().replace(microsecond=0),
            version_tag=version_tag or None,
        )
