"""
File Operations Port

Architectural Intent:
- Port interface for the bounded-parallel transfer engine and content verifier
- Reused for the deployment copy and for backup/restore copies
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional
from redeploy.domain.cancellation import CancellationToken
from redeploy.domain.value_objects.transfer_results import CopyResult, VerificationResult

CopyProgressCallback = Callable[[int, int], None]


class FileOperationsPort(ABC):
    """
    Port interface for directory-level file operations.
    """

    @abstractmethod
    async def copy_directory(
        self,
        source_path: str,
        destination_path: str,
        concurrency_limit: int = 8,
        progress: Optional[CopyProgressCallback] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> CopyResult:
        """
        Copies every file under source_path into destination_path, overwriting.
        progress receives (files_copied, total_files) after each file.
        Raises OperationCancelledError when cancelled; copied files stay.
        """
        pass

    @abstractmethod
    async def verify_files(
        self,
        source_path: str,
        destination_path: str,
        concurrency_limit: int = 8,
        cancellation: Optional[CancellationToken] = None,
    ) -> VerificationResult:
        """
        Compares the content digest of every source file with its copy.
        """
        pass

    @abstractmethod
    async def delete_directory(
        self, path: str, cancellation: Optional[CancellationToken] = None
    ) -> bool:
        """
        Removes a directory tree. A missing path counts as success.
        """
        pass
