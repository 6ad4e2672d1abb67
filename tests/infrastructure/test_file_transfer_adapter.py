"""Tests for FileTransferAdapter against a real temporary filesystem."""

import hashlib
import shutil
import threading
import time

import pytest
from unittest.mock import patch

from redeploy.domain.cancellation import CancellationToken
from redeploy.domain.exceptions import OperationCancelledError
from redeploy.domain.value_objects.transfer_results import VerificationFailureKind
from redeploy.infrastructure.adapters.file_transfer_adapter import (
    FileTransferAdapter,
    compute_digest,
    scan_tree,
)


@pytest.fixture
def source(tmp_path):
    root = tmp_path / "build"
    (root / "sub").mkdir(parents=True)
    (root / "a.txt").write_text("A")
    (root / "b.txt").write_text("B")
    (root / "sub" / "c.txt").write_text("C")
    return root


def _tree(root):
    return {
        str(p.relative_to(root)): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


class TestComputeDigest:
    def test_matches_hashlib(self, tmp_path):
        f = tmp_path / "data.bin"
        f.write_bytes(b"x" * 3000)
        assert compute_digest(str(f), chunk_size=1024).value == hashlib.sha256(b"x" * 3000).hexdigest()

    def test_empty_file(self, tmp_path):
        f = tmp_path / "empty"
        f.write_bytes(b"")
        assert compute_digest(str(f)).value == hashlib.sha256(b"").hexdigest()


class TestScanTree:
    def test_relative_paths(self, source):
        directories, files = scan_tree(str(source))
        assert directories == ["sub"]
        assert [f.replace("\\", "/") for f in files] == ["a.txt", "b.txt", "sub/c.txt"]


class TestCopyDirectory:
    @pytest.mark.asyncio
    async def test_copies_into_fresh_destination(self, source, tmp_path):
        destination = tmp_path / "app"
        progress = []

        result = await FileTransferAdapter().copy_directory(
            str(source), str(destination), 2, lambda c, t: progress.append((c, t))
        )

        assert result.success is True
        assert result.files_copied == 3
        assert _tree(destination) == _tree(source)
        assert progress == [(1, 3), (2, 3), (3, 3)]

    @pytest.mark.asyncio
    async def test_overwrites_existing(self, source, tmp_path):
        destination = tmp_path / "app"
        destination.mkdir()
        (destination / "a.txt").write_text("OLD")
        (destination / "extra.log").write_text("keep")

        await FileTransferAdapter().copy_directory(str(source), str(destination))

        assert (destination / "a.txt").read_text() == "A"
        assert (destination / "extra.log").read_text() == "keep"

    @pytest.mark.asyncio
    async def test_copy_is_idempotent(self, source, tmp_path):
        destination = tmp_path / "app"
        adapter = FileTransferAdapter()

        await adapter.copy_directory(str(source), str(destination))
        first = _tree(destination)
        result = await adapter.copy_directory(str(source), str(destination))

        assert result.success is True
        assert _tree(destination) == first

    @pytest.mark.asyncio
    async def test_creates_empty_directories(self, source, tmp_path):
        (source / "logs").mkdir()
        destination = tmp_path / "app"

        await FileTransferAdapter().copy_directory(str(source), str(destination))

        assert (destination / "logs").is_dir()

    @pytest.mark.asyncio
    async def test_missing_source(self, tmp_path):
        result = await FileTransferAdapter().copy_directory(
            str(tmp_path / "missing"), str(tmp_path / "app")
        )
        assert result.success is False
        assert result.files_copied == 0

    @pytest.mark.asyncio
    async def test_empty_source(self, tmp_path):
        (tmp_path / "empty").mkdir()
        result = await FileTransferAdapter().copy_directory(
            str(tmp_path / "empty"), str(tmp_path / "app")
        )
        assert result.success is True
        assert result.files_copied == 0
        assert (tmp_path / "app").is_dir()

    @pytest.mark.asyncio
    async def test_single_failure_fails_operation(self, source, tmp_path):
        import shutil as real_shutil
        real_copy2 = real_shutil.copy2

        def flaky_copy2(src, dst, *args, **kwargs):
            if src.endswith("b.txt"):
                raise PermissionError("locked")
            return real_copy2(src, dst, *args, **kwargs)

        with patch(
            "redeploy.infrastructure.adapters.file_transfer_adapter.shutil.copy2",
            side_effect=flaky_copy2,
        ):
            result = await FileTransferAdapter().copy_directory(
                str(source), str(tmp_path / "app"), 1
            )

        assert result.success is False
        assert result.files_copied == 1
        assert (tmp_path / "app" / "a.txt").read_text() == "A"

    @pytest.mark.asyncio
    async def test_cancelled_copy_raises(self, source, tmp_path):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(OperationCancelledError):
            await FileTransferAdapter().copy_directory(
                str(source), str(tmp_path / "app"), cancellation=token
            )

    @pytest.mark.asyncio
    async def test_cancel_mid_copy_keeps_copied_files(self, source, tmp_path):
        token = CancellationToken()

        def cancel_after_first(copied, total):
            token.cancel()

        with pytest.raises(OperationCancelledError):
            await FileTransferAdapter().copy_directory(
                str(source), str(tmp_path / "app"), 1, cancel_after_first, token
            )
        assert (tmp_path / "app" / "a.txt").exists()
        assert not (tmp_path / "app" / "sub" / "c.txt").exists()

    @pytest.mark.asyncio
    async def test_invalid_limit(self, source, tmp_path):
        with pytest.raises(ValueError):
            await FileTransferAdapter().copy_directory(str(source), str(tmp_path / "app"), 0)


class TestVerifyFiles:
    @pytest.mark.asyncio
    async def test_passes_for_identical_trees(self, source, tmp_path):
        adapter = FileTransferAdapter()
        await adapter.copy_directory(str(source), str(tmp_path / "app"))

        result = await adapter.verify_files(str(source), str(tmp_path / "app"))

        assert result.passed is True
        assert result.files_checked == 3

    @pytest.mark.asyncio
    async def test_extra_destination_files_ignored(self, source, tmp_path):
        adapter = FileTransferAdapter()
        await adapter.copy_directory(str(source), str(tmp_path / "app"))
        (tmp_path / "app" / "runtime.pid").write_text("42")

        result = await adapter.verify_files(str(source), str(tmp_path / "app"))

        assert result.passed is True

    @pytest.mark.asyncio
    async def test_detects_mismatch(self, source, tmp_path):
        adapter = FileTransferAdapter()
        await adapter.copy_directory(str(source), str(tmp_path / "app"))
        (tmp_path / "app" / "sub" / "c.txt").write_text("tampered")

        result = await adapter.verify_files(str(source), str(tmp_path / "app"), 1)

        assert result.passed is False
        assert result.failure_kind == VerificationFailureKind.MISMATCH
        assert result.relative_path.replace("\\", "/") == "sub/c.txt"

    @pytest.mark.asyncio
    async def test_detects_missing(self, source, tmp_path):
        adapter = FileTransferAdapter()
        await adapter.copy_directory(str(source), str(tmp_path / "app"))
        (tmp_path / "app" / "b.txt").unlink()

        result = await adapter.verify_files(str(source), str(tmp_path / "app"))

        assert result.passed is False
        assert result.failure_kind == VerificationFailureKind.MISSING
        assert result.relative_path == "b.txt"
        assert result.reason == "Missing file: b.txt"

    @pytest.mark.asyncio
    async def test_stops_after_first_failure(self, source, tmp_path):
        (tmp_path / "app").mkdir()

        result = await FileTransferAdapter().verify_files(str(source), str(tmp_path / "app"), 1)

        assert result.passed is False
        assert result.relative_path == "a.txt"
        assert result.files_checked == 1

    @pytest.mark.asyncio
    async def test_cancelled(self, source, tmp_path):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(OperationCancelledError):
            await FileTransferAdapter().verify_files(
                str(source), str(source), cancellation=token
            )


class TestDeleteDirectory:
    @pytest.mark.asyncio
    async def test_deletes_tree(self, source):
        assert await FileTransferAdapter().delete_directory(str(source)) is True
        assert not source.exists()

    @pytest.mark.asyncio
    async def test_missing_is_success(self, tmp_path):
        assert await FileTransferAdapter().delete_directory(str(tmp_path / "nope")) is True

    @pytest.mark.asyncio
    async def test_failure_returns_false(self, source):
        with patch(
            "redeploy.infrastructure.adapters.file_transfer_adapter.shutil.rmtree",
            side_effect=PermissionError("busy"),
        ):
            assert await FileTransferAdapter().delete_directory(str(source)) is False


class _InFlightCounter:
    """Wraps a blocking function and records how many calls overlap."""

    def __init__(self, func, delay=0.02):
        self.func = func
        self.delay = delay
        self.current = 0
        self.peak = 0
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self, *args, **kwargs):
        with self._lock:
            self.current += 1
            self.calls += 1
            self.peak = max(self.peak, self.current)
        try:
            time.sleep(self.delay)
            return self.func(*args, **kwargs)
        finally:
            with self._lock:
                self.current -= 1


@pytest.fixture
def wide_source(tmp_path):
    root = tmp_path / "wide"
    root.mkdir()
    for i in range(20):
        (root / f"f{i:02d}.bin").write_bytes(bytes([i]) * 64)
    return root


class TestConcurrencyLimit:
    @pytest.mark.asyncio
    async def test_copy_never_exceeds_limit(self, wide_source, tmp_path):
        counter = _InFlightCounter(shutil.copy2)

        with patch(
            "redeploy.infrastructure.adapters.file_transfer_adapter.shutil.copy2", counter
        ):
            result = await FileTransferAdapter().copy_directory(
                str(wide_source), str(tmp_path / "out"), 3
            )

        assert result.success
        assert result.files_copied == 20
        assert counter.calls == 20
        assert 1 < counter.peak <= 3

    @pytest.mark.asyncio
    async def test_verify_never_exceeds_limit(self, wide_source, tmp_path):
        dest = tmp_path / "out"
        shutil.copytree(wide_source, dest)
        counter = _InFlightCounter(compute_digest)

        with patch(
            "redeploy.infrastructure.adapters.file_transfer_adapter.compute_digest", counter
        ):
            result = await FileTransferAdapter().verify_files(str(wide_source), str(dest), 3)

        assert result.success
        assert counter.calls == 40
        assert 1 < counter.peak <= 3

    @pytest.mark.asyncio
    async def test_limit_of_one_is_sequential(self, wide_source, tmp_path):
        counter = _InFlightCounter(shutil.copy2, delay=0.005)

        with patch(
            "redeploy.infrastructure.adapters.file_transfer_adapter.shutil.copy2", counter
        ):
            result = await FileTransferAdapter().copy_directory(
                str(wide_source), str(tmp_path / "out"), 1
            )

        assert result.success
        assert counter.peak == 1
