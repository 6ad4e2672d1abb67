"""
Deploy Service Use Case

Architectural Intent:
- Runs the six-stage redeployment workflow for one DeploymentOptions value:
  stop -> backup -> copy -> verify -> start -> clean old backups
- Single logical thread of control; parallelism lives in the file operations port
- Never raises to the caller: every failure becomes a failed DeploymentResult
- Rolls back from the backup when a stage after the backup fails
- Depends only on ports, so it runs against fakes in tests

Ownership:
- One run owns its DeploymentOptions. Two runs against the same destination
  in the same DeployService are refused; the second returns a failed result
  without touching the service or the filesystem.

Known limitations:
- A failed copy leaves already-copied files in place until rollback replaces them
- Rollback is best-effort: restore may succeed while the restart fails. That
  state is logged as CRITICAL and the result stays failed.
- Cancelling during a service wait abandons the wait; a stop/start command
  already sent is not reversed. Rollback runs with its own token so a
  cancelled run still gets its destination restored.
"""

from __future__ import annotations
import logging
import os
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from redeploy.application.dtos.deployment_dtos import (
    DeploymentOptions,
    DeploymentProgress,
    DeploymentResult,
    ProgressSink,
)
from redeploy.application.orchestration.retry_policy import RetryPolicy
from redeploy.domain.cancellation import CancellationToken
from redeploy.domain.entities.deployment import Deployment
from redeploy.domain.exceptions import (
    BackupError,
    DeploymentError,
    DeploymentInProgressError,
    OperationCancelledError,
    ServiceControlError,
    SourceNotFoundError,
    TransferError,
    VerificationError,
)
from redeploy.domain.ports.audit_log_port import AuditLogPort
from redeploy.domain.ports.backup_manager_port import BackupManagerPort
from redeploy.domain.ports.event_bus_port import EventBusPort
from redeploy.domain.ports.file_operations_port import FileOperationsPort
from redeploy.domain.ports.service_controller_port import ServiceControllerPort
from redeploy.domain.ports.telemetry_port import TelemetryPort
from redeploy.domain.value_objects.deployment_stage import DeploymentStage
from redeploy.domain.value_objects.remote_host import RemoteHost
from redeploy.domain.value_objects.service_status import ServiceStatus

logger = logging.getLogger(__name__)

STAGE_PERCENT = {
    DeploymentStage.STARTING: 0,
    DeploymentStage.STOPPING_SERVICE: 10,
    DeploymentStage.CREATING_BACKUP: 25,
    DeploymentStage.COPYING_FILES: 40,
    DeploymentStage.VERIFYING_FILES: 75,
    DeploymentStage.STARTING_SERVICE: 85,
    DeploymentStage.COMPLETED: 100,
    DeploymentStage.FAILED: 100,
}
COPY_PERCENT_SPAN = 30

DEFAULT_STATUS_SETTLE_SECONDS = 5.0


class _ProgressReporter:
    """Forwards progress to the caller's sink, clamped to be non-decreasing."""

    def __init__(self, sink: Optional[ProgressSink]) -> None:
        self._sink = sink
        self._last = 0.0

    def report(self, message: str, percent: float, stage: DeploymentStage) -> None:
        percent = max(self._last, min(100.0, float(percent)))
        self._last = percent
        logger.info("%s (%.0f%%)", message, percent)
        if self._sink is None:
            return
        try:
            self._sink(DeploymentProgress(message=message, percent=percent, stage=stage))
        except Exception as e:
            logger.warning("Progress sink raised: %s", e)


@dataclass
class _RunState:
    deployment: Deployment
    host: Optional[RemoteHost] = None
    backup_path: Optional[str] = None
    files_copied: int = 0
    service_running: bool = False
    stage_started: float = field(default_factory=time.perf_counter)
    timings_ms: dict[DeploymentStage, int] = field(default_factory=dict)


class DeployService:
    def __init__(
        self,
        service_controller: ServiceControllerPort,
        file_operations: FileOperationsPort,
        backup_manager: BackupManagerPort,
        audit_log: AuditLogPort,
        event_bus: Optional[EventBusPort] = None,
        telemetry: Optional[TelemetryPort] = None,
        status_settle_seconds: float = DEFAULT_STATUS_SETTLE_SECONDS,
    ):
        self.service_controller = service_controller
        self.file_operations = file_operations
        self.backup_manager = backup_manager
        self.audit_log = audit_log
        self.event_bus = event_bus
        self.telemetry = telemetry
        self.status_settle_seconds = status_settle_seconds
        self._active_destinations: set[str] = set()

    async def execute(
        self,
        options: DeploymentOptions,
        progress: Optional[ProgressSink] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> DeploymentResult:
        key = os.path.normcase(os.path.normpath(options.destination_path))
        if key in self._active_destinations:
            error = DeploymentInProgressError(options.destination_path)
            logger.error("%s", error)
            return DeploymentResult(success=False, error_message=str(error))

        self._active_destinations.add(key)
        try:
            return await self._run(options, progress, cancellation or CancellationToken())
        finally:
            self._active_destinations.discard(key)

    async def _run(
        self,
        options: DeploymentOptions,
        progress: Optional[ProgressSink],
        cancellation: CancellationToken,
    ) -> DeploymentResult:
        started = time.perf_counter()
        reporter = _ProgressReporter(progress)
        state = _RunState(
            deployment=Deployment(options.service_name).start(
                options.source_path, options.destination_path, options.what_if
            )
        )

        logger.info("Starting deployment for service: %s", options.service_name)
        self.audit_log.write(f"========== Deployment Started: {datetime.now():%Y-%m-%d %H:%M:%S} ==========")
        self.audit_log.write(f"Service: {options.service_name}")
        self.audit_log.write(f"Source: {options.source_path}")
        self.audit_log.write(f"Destination: {options.destination_path}")
        self.audit_log.write(f"WhatIf: {options.what_if}")
        reporter.report("Starting deployment...", 0, DeploymentStage.STARTING)

        try:
            if not os.path.isdir(options.source_path):
                raise SourceNotFoundError(options.source_path)

            state.host = RemoteHost.resolve(options.destination_path, options.remote_host)
            if state.host:
                logger.info("Controlling service on remote host %s", state.host)
                self.audit_log.write(f"Remote host: {state.host}")

            retry = RetryPolicy(options.max_retries, options.retry_delay_seconds)

            await self._stop_service(state, options, retry, reporter, cancellation)
            if options.backup_enabled:
                await self._create_backup(state, options, reporter, cancellation)
            await self._copy_files(state, options, reporter, cancellation)
            if options.verify_after_copy and not options.what_if:
                await self._verify_files(state, options, reporter, cancellation)
            await self._start_service(state, options, retry, reporter, cancellation)
            if options.backup_enabled and state.backup_path and not options.what_if:
                await self._clean_old_backups(state, options, cancellation)

        except OperationCancelledError:
            return await self._fail(state, options, reporter, started, "Deployment cancelled")
        except DeploymentError as e:
            return await self._fail(state, options, reporter, started, str(e))
        except Exception as e:
            logger.exception("Deployment failed")
            return await self._fail(state, options, reporter, started, str(e) or type(e).__name__)

        state.deployment = state.deployment.complete(state.files_copied)
        duration = time.perf_counter() - started
        reporter.report("Deployment completed successfully!", 100, DeploymentStage.COMPLETED)
        self._log_success_summary(state, options, duration)
        await self._finish(state, options, success=True, duration=duration)

        return DeploymentResult(
            success=True,
            backup_path=state.backup_path,
            files_copied=state.files_copied,
            duration_seconds=duration,
            service_running=state.service_running,
        )

    def _enter_stage(self, state: _RunState, stage: DeploymentStage) -> None:
        state.deployment = state.deployment.advance_to(stage)
        state.stage_started = time.perf_counter()

    def _complete_stage(self, state: _RunState) -> int:
        elapsed_ms = int((time.perf_counter() - state.stage_started) * 1000)
        stage = state.deployment.stage
        state.deployment = state.deployment.stage_completed(elapsed_ms)
        state.timings_ms[stage] = elapsed_ms
        if self.telemetry:
            self.telemetry.record_stage(stage.name, elapsed_ms, True)
        return elapsed_ms

    async def _stop_service(
        self,
        state: _RunState,
        options: DeploymentOptions,
        retry: RetryPolicy,
        reporter: _ProgressReporter,
        cancellation: CancellationToken,
    ) -> None:
        self._enter_stage(state, DeploymentStage.STOPPING_SERVICE)
        reporter.report("Stopping service...", STAGE_PERCENT[DeploymentStage.STOPPING_SERVICE],
                        DeploymentStage.STOPPING_SERVICE)

        if options.what_if:
            logger.info("[WhatIf] Would stop service: %s", options.service_name)
            self.audit_log.write(f"[WhatIf] Would stop service: {options.service_name}")
            self._complete_stage(state)
            return

        stopped = await retry.execute(
            lambda: self.service_controller.stop(
                options.service_name, state.host, options.service_timeout_seconds, cancellation
            ),
            "Stop Service",
            cancellation,
        )
        if not stopped:
            raise ServiceControlError(f"Failed to stop service: {options.service_name}")

        elapsed = self._complete_stage(state)
        self.audit_log.write(f"✓ Service stopped successfully (took {elapsed}ms)")

    async def _create_backup(
        self,
        state: _RunState,
        options: DeploymentOptions,
        reporter: _ProgressReporter,
        cancellation: CancellationToken,
    ) -> None:
        self._enter_stage(state, DeploymentStage.CREATING_BACKUP)
        reporter.report("Creating backup...", STAGE_PERCENT[DeploymentStage.CREATING_BACKUP],
                        DeploymentStage.CREATING_BACKUP)

        if options.what_if:
            logger.info("[WhatIf] Would create backup of: %s", options.destination_path)
            self.audit_log.write(f"[WhatIf] Would create backup of: {options.destination_path}")
            self._complete_stage(state)
            return

        try:
            state.backup_path = await self.backup_manager.create_backup(
                options.destination_path, options.version_tag, cancellation
            )
        except OperationCancelledError:
            raise
        except Exception as e:
            raise BackupError(f"Failed to create backup: {e}") from e

        elapsed = self._complete_stage(state)
        if state.backup_path:
            self.audit_log.write(f"✓ Backup created: {state.backup_path} (took {elapsed}ms)")
        elif os.path.isdir(options.destination_path):
            logger.warning("Backup of %s failed, continuing without one", options.destination_path)
            self.audit_log.write("⚠ Backup failed, continuing without a backup")
        else:
            self.audit_log.write("⚠ Backup skipped (destination doesn't exist yet)")

    async def _copy_files(
        self,
        state: _RunState,
        options: DeploymentOptions,
        reporter: _ProgressReporter,
        cancellation: CancellationToken,
    ) -> None:
        self._enter_stage(state, DeploymentStage.COPYING_FILES)
        base = STAGE_PERCENT[DeploymentStage.COPYING_FILES]
        reporter.report("Copying service files...", base, DeploymentStage.COPYING_FILES)

        if options.what_if:
            logger.info("[WhatIf] Would copy files from %s to %s",
                        options.source_path, options.destination_path)
            self.audit_log.write(
                f"[WhatIf] Would copy files from {options.source_path} to {options.destination_path}"
            )
            self._complete_stage(state)
            return

        def on_copied(current: int, total: int) -> None:
            percent = base + current * COPY_PERCENT_SPAN / total if total else base
            reporter.report(f"Copying files ({current}/{total})...", percent,
                            DeploymentStage.COPYING_FILES)

        result = await self.file_operations.copy_directory(
            options.source_path,
            options.destination_path,
            options.max_parallelism,
            on_copied,
            cancellation,
        )
        if not result.success:
            raise TransferError("Failed to copy files")

        state.files_copied = result.files_copied
        elapsed = self._complete_stage(state)
        self.audit_log.write(f"✓ Copied {result.files_copied} files successfully (took {elapsed}ms)")

    async def _verify_files(
        self,
        state: _RunState,
        options: DeploymentOptions,
        reporter: _ProgressReporter,
        cancellation: CancellationToken,
    ) -> None:
        self._enter_stage(state, DeploymentStage.VERIFYING_FILES)
        reporter.report("Verifying file integrity...", STAGE_PERCENT[DeploymentStage.VERIFYING_FILES],
                        DeploymentStage.VERIFYING_FILES)

        verification = await self.file_operations.verify_files(
            options.source_path,
            options.destination_path,
            options.max_parallelism,
            cancellation,
        )
        if not verification.passed:
            raise VerificationError(verification.reason or "unknown", verification.relative_path)

        elapsed = self._complete_stage(state)
        self.audit_log.write(
            f"✓ File integrity verified ({verification.files_checked} files, took {elapsed}ms)"
        )

    async def _start_service(
        self,
        state: _RunState,
        options: DeploymentOptions,
        retry: RetryPolicy,
        reporter: _ProgressReporter,
        cancellation: CancellationToken,
    ) -> None:
        self._enter_stage(state, DeploymentStage.STARTING_SERVICE)
        reporter.report("Starting service...", STAGE_PERCENT[DeploymentStage.STARTING_SERVICE],
                        DeploymentStage.STARTING_SERVICE)

        if options.what_if:
            logger.info("[WhatIf] Would start service: %s", options.service_name)
            self.audit_log.write(f"[WhatIf] Would start service: {options.service_name}")
            self._complete_stage(state)
            return

        started = await retry.execute(
            lambda: self.service_controller.start(
                options.service_name, state.host, options.service_timeout_seconds, cancellation
            ),
            "Start Service",
            cancellation,
        )
        if not started:
            raise ServiceControlError(f"Failed to start service: {options.service_name}")

        settle_started = time.perf_counter()
        await cancellation.sleep(self.status_settle_seconds)
        status = await self.service_controller.get_status(options.service_name, state.host)
        state.service_running = status == ServiceStatus.RUNNING
        verify_ms = int((time.perf_counter() - settle_started) * 1000)

        elapsed = self._complete_stage(state)
        status_name = status.name if status else "UNKNOWN"
        self.audit_log.write(
            f"✓ Service started successfully (Status: {status_name}, took {elapsed}ms, verify: {verify_ms}ms)"
        )

    async def _clean_old_backups(
        self,
        state: _RunState,
        options: DeploymentOptions,
        cancellation: CancellationToken,
    ) -> None:
        backup_parent = os.path.dirname(state.backup_path)
        if not backup_parent:
            return

        cleanup_started = time.perf_counter()
        removed = await self.backup_manager.clean_old_backups(
            backup_parent, options.backup_retention_days, cancellation
        )
        elapsed = int((time.perf_counter() - cleanup_started) * 1000)
        self.audit_log.write(
            f"✓ Cleaned old backups (removed {removed}, retention: "
            f"{options.backup_retention_days} days, took {elapsed}ms)"
        )

    async def _fail(
        self,
        state: _RunState,
        options: DeploymentOptions,
        reporter: _ProgressReporter,
        started: float,
        message: str,
    ) -> DeploymentResult:
        failed_stage = state.deployment.stage
        if self.telemetry and failed_stage != DeploymentStage.STARTING:
            elapsed_ms = int((time.perf_counter() - state.stage_started) * 1000)
            self.telemetry.record_stage(failed_stage.name, elapsed_ms, False)

        state.deployment = state.deployment.fail(message)
        logger.error("Deployment failed during %s: %s", failed_stage.name, message)
        self.audit_log.write(f"✗ ERROR: {message}")

        if options.rollback_enabled and state.backup_path and not options.what_if:
            await self._rollback(state, options)

        duration = time.perf_counter() - started
        reporter.report(f"Deployment failed: {message}", 100, DeploymentStage.FAILED)
        self.audit_log.write("========== Deployment Failed ==========")
        await self._finish(state, options, success=False, duration=duration)

        return DeploymentResult(
            success=False,
            error_message=message,
            backup_path=state.backup_path,
            files_copied=state.files_copied,
            duration_seconds=duration,
            service_running=state.service_running,
        )

    async def _rollback(self, state: _RunState, options: DeploymentOptions) -> None:
        # The run's token may already be cancelled; rollback gets its own
        rollback_token = CancellationToken()
        logger.warning("Attempting rollback from backup %s", state.backup_path)
        self.audit_log.write("⚠ Attempting rollback...")

        try:
            restored = await self.backup_manager.restore_backup(
                state.backup_path, options.destination_path, rollback_token
            )
            if not restored:
                logger.critical("Rollback failed: could not restore %s", state.backup_path)
                self.audit_log.write(
                    f"✗ CRITICAL: Rollback failed, could not restore {state.backup_path}"
                )
                state.deployment = state.deployment.record_rollback(state.backup_path, False)
                return

            self.audit_log.write("✓ Rollback completed, attempting to restart service...")
            retry = RetryPolicy(options.max_retries, options.retry_delay_seconds)
            restarted = await retry.execute(
                lambda: self.service_controller.start(
                    options.service_name, state.host, options.service_timeout_seconds, rollback_token
                ),
                "Start Service After Rollback",
                rollback_token,
            )
            if restarted:
                self.audit_log.write("✓ Service restarted after rollback")
            else:
                logger.critical(
                    "Service %s failed to start after rollback", options.service_name
                )
                self.audit_log.write("✗ CRITICAL: Service failed to start after rollback")
            state.deployment = state.deployment.record_rollback(
                state.backup_path, True, restarted
            )
        except Exception as e:
            logger.exception("Rollback failed")
            self.audit_log.write(f"✗ CRITICAL: Rollback error: {e}")
            state.deployment = state.deployment.record_rollback(state.backup_path, False)

    def _log_success_summary(
        self, state: _RunState, options: DeploymentOptions, duration: float
    ) -> None:
        timings = state.timings_ms
        self.audit_log.write("========== Deployment Completed Successfully ==========")
        self.audit_log.write(f"Total Time: {duration:.2f}s ({int(duration * 1000)}ms)")
        self.audit_log.write("Performance Breakdown:")
        self.audit_log.write(f"  - Stop Service: {timings.get(DeploymentStage.STOPPING_SERVICE, 0)}ms")
        self.audit_log.write(f"  - Backup: {'included' if options.backup_enabled else 'skipped'}")
        self.audit_log.write(f"  - Copy Files: {timings.get(DeploymentStage.COPYING_FILES, 0)}ms")
        self.audit_log.write(f"  - Verify: {'included' if options.verify_after_copy else 'skipped'}")
        self.audit_log.write(f"  - Start Service: {timings.get(DeploymentStage.STARTING_SERVICE, 0)}ms")
        self.audit_log.write("=======================================================")

    async def _finish(
        self, state: _RunState, options: DeploymentOptions, success: bool, duration: float
    ) -> None:
        if self.telemetry:
            self.telemetry.record_deployment(
                options.service_name, success, duration, state.files_copied
            )
        if self.event_bus:
            try:
                await self.event_bus.publish(list(state.deployment.domain_events))
            except Exception as e:
                logger.warning("Failed to publish deployment events: %s", e)
