"""
File Transfer Adapter

Architectural Intent:
- Infrastructure adapter implementing FileOperationsPort on the local filesystem
- Copies and verifies directory trees with a bounded pool of worker coroutines
- Blocking file I/O runs in a ThreadPoolExecutor sized to the concurrency limit

Concurrency:
- N workers pull relative paths from a shared queue; at most N units in flight
- Counters and the first-failure record are only touched on the event loop
  thread (after each run_in_executor returns), so no lock is needed
- Workers check the cancellation token between files, never mid-file
- The executor is shut down with wait=True, so no unit is still writing when
  a call returns
"""

from __future__ import annotations
import asyncio
import hashlib
import logging
import os
import shutil
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional, Tuple

from redeploy.domain.cancellation import CancellationToken
from redeploy.domain.ports.file_operations_port import (
    CopyProgressCallback,
    FileOperationsPort,
)
from redeploy.domain.value_objects.content_digest import ContentDigest
from redeploy.domain.value_objects.transfer_results import (
    CopyResult,
    VerificationFailureKind,
    VerificationResult,
)

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def compute_digest(path: str, chunk_size: int = CHUNK_SIZE) -> ContentDigest:
    """SHA-256 of a file's contents, read in chunks."""
    hash_func = hashlib.sha256()
    with open(path, "rb") as f:
        while chunk := f.read(chunk_size):
            hash_func.update(chunk)
    return ContentDigest(hash_func.hexdigest())


def scan_tree(root: str) -> Tuple[List[str], List[str]]:
    """Returns (directories, files) under root as sorted relative paths."""
    directories: List[str] = []
    files: List[str] = []
    for current, dirnames, filenames in os.walk(root):
        rel_dir = os.path.relpath(current, root)
        for name in dirnames:
            directories.append(os.path.normpath(os.path.join(rel_dir, name)))
        for name in filenames:
            files.append(os.path.normpath(os.path.join(rel_dir, name)))
    return sorted(directories), sorted(files)


async def run_bounded(
    items: List[Any],
    unit: Callable[[Any], Any],
    on_result: Callable[[Any, Any], bool],
    concurrency_limit: int,
    cancellation: CancellationToken,
) -> None:
    """
    Runs unit(item) in threads for every item, at most concurrency_limit at once.

    on_result(item, value) runs on the event loop thread after each unit; it
    returns False to stop workers from taking new items. Units already in
    flight still finish. Raises OperationCancelledError when cancelled.
    """
    if not items:
        return

    queue: asyncio.Queue = asyncio.Queue()
    for item in items:
        queue.put_nowait(item)

    loop = asyncio.get_running_loop()
    stopped = False

    async def worker(executor: ThreadPoolExecutor) -> None:
        nonlocal stopped
        while not stopped:
            cancellation.raise_if_cancelled()
            try:
                item = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            value = await loop.run_in_executor(executor, unit, item)
            if not on_result(item, value):
                stopped = True

    worker_count = min(concurrency_limit, len(items))
    with ThreadPoolExecutor(max_workers=worker_count) as executor:
        tasks = [asyncio.create_task(worker(executor)) for _ in range(worker_count)]
        try:
            await asyncio.gather(*tasks)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)


class FileTransferAdapter(FileOperationsPort):
    """Adapter implementing FileOperationsPort with shutil and hashlib."""

    async def copy_directory(
        self,
        source_path: str,
        destination_path: str,
        concurrency_limit: int = 8,
        progress: Optional[CopyProgressCallback] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> CopyResult:
        cancellation = cancellation or CancellationToken()
        if concurrency_limit < 1:
            raise ValueError(f"concurrency_limit must be >= 1, got {concurrency_limit}")

        if not os.path.isdir(source_path):
            logger.error("Source directory does not exist: %s", source_path)
            return CopyResult(success=False)

        loop = asyncio.get_running_loop()
        try:
            directories, files = await loop.run_in_executor(None, scan_tree, source_path)
            os.makedirs(destination_path, exist_ok=True)
            for rel in directories:
                os.makedirs(os.path.join(destination_path, rel), exist_ok=True)
        except OSError as e:
            logger.error("Failed to prepare copy to %s: %s", destination_path, e)
            return CopyResult(success=False)

        total = len(files)
        copied = 0
        failed = False
        logger.info("Copying %d files from %s to %s", total, source_path, destination_path)

        def copy_one(rel: str) -> Optional[OSError]:
            try:
                target = os.path.join(destination_path, rel)
                os.makedirs(os.path.dirname(target), exist_ok=True)
                shutil.copy2(os.path.join(source_path, rel), target)
                return None
            except OSError as e:
                return e

        def on_copied(rel: str, error: Optional[OSError]) -> bool:
            nonlocal copied, failed
            if error is not None:
                logger.error("Failed to copy %s: %s", rel, error)
                failed = True
                return False
            copied += 1
            if progress:
                progress(copied, total)
            return True

        await run_bounded(files, copy_one, on_copied, concurrency_limit, cancellation)

        if failed:
            return CopyResult(success=False, files_copied=copied)
        logger.info("Copied %d files to %s", copied, destination_path)
        return CopyResult(success=True, files_copied=copied)

    async def verify_files(
        self,
        source_path: str,
        destination_path: str,
        concurrency_limit: int = 8,
        cancellation: Optional[CancellationToken] = None,
    ) -> VerificationResult:
        cancellation = cancellation or CancellationToken()
        if concurrency_limit < 1:
            raise ValueError(f"concurrency_limit must be >= 1, got {concurrency_limit}")

        if not os.path.isdir(source_path):
            logger.error("Source directory does not exist: %s", source_path)
            return VerificationResult.failed(VerificationFailureKind.MISSING, source_path)

        loop = asyncio.get_running_loop()
        _, files = await loop.run_in_executor(None, scan_tree, source_path)

        checked = 0
        first_failure: Optional[Tuple[VerificationFailureKind, str]] = None

        def check_one(rel: str) -> Optional[VerificationFailureKind]:
            target = os.path.join(destination_path, rel)
            if not os.path.isfile(target):
                return VerificationFailureKind.MISSING
            try:
                if compute_digest(os.path.join(source_path, rel)) != compute_digest(target):
                    return VerificationFailureKind.MISMATCH
            except OSError as e:
                logger.error("Failed to hash %s: %s", rel, e)
                return VerificationFailureKind.MISMATCH
            return None

        def on_checked(rel: str, failure: Optional[VerificationFailureKind]) -> bool:
            nonlocal checked, first_failure
            checked += 1
            if failure is None:
                return True
            if first_failure is None:
                first_failure = (failure, rel)
                logger.error("Verification failed: %s: %s", failure.value, rel)
            return False

        await run_bounded(files, check_one, on_checked, concurrency_limit, cancellation)

        if first_failure is not None:
            kind, rel = first_failure
            return VerificationResult.failed(kind, rel, files_checked=checked)
        logger.info("Verified %d files in %s", checked, destination_path)
        return VerificationResult.ok(checked)

    async def delete_directory(
        self, path: str, cancellation: Optional[CancellationToken] = None
    ) -> bool:
        if cancellation:
            cancellation.raise_if_cancelled()
        if not os.path.exists(path):
            return True
        try:
            await asyncio.get_running_loop().run_in_executor(None, shutil.rmtree, path)
            return True
        except OSError as e:
            logger.error("Failed to delete %s: %s", path, e)
            return False
