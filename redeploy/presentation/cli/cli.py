"""
CLI Module

Architectural Intent:
- Command-line interface for redeploy
- Entry point for all user interactions
- Delegates to the DeployService use case via the composition root
- Supports --verbose/--debug flags for log level control

Commands:
- deploy   run a deployment with configured settings and flag overrides
- whatif   same inputs, dry run only
- log      print the tail of the audit log
- config   print the effective configuration
- backups  list backups next to the destination
"""

import argparse
import asyncio
import json
import logging
import os
import signal
import sys
import traceback
from dataclasses import asdict

from redeploy.application.dtos.deployment_dtos import DeploymentProgress
from redeploy.composition_root import create_container
from redeploy.domain.cancellation import CancellationToken
from redeploy.infrastructure.adapters.backup_manager import backups_dir_for
from redeploy.infrastructure.config import load_config
from redeploy.infrastructure.logging import configure_logging, level_from_name

logger = logging.getLogger(__name__)


def _add_deployment_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--service", "-s", dest="service_name", help="Service name")
    parser.add_argument("--source", dest="source_path", help="Directory holding the new build")
    parser.add_argument(
        "--destination", "-d", dest="destination_path", help="Directory the service runs from"
    )
    parser.add_argument(
        "--remote-host", dest="remote_host", help="user@host:port to control the service on"
    )
    parser.add_argument("--version-tag", dest="version_tag", help="Label for the backup name")
    parser.add_argument(
        "--no-backup", dest="backup_enabled", action="store_false", default=None,
        help="Skip the backup stage",
    )
    parser.add_argument(
        "--no-verify", dest="verify_after_copy", action="store_false", default=None,
        help="Skip hash verification after copy",
    )
    parser.add_argument(
        "--no-rollback", dest="rollback_enabled", action="store_false", default=None,
        help="Do not restore the backup on failure",
    )
    parser.add_argument("--retries", dest="max_retries", type=int, help="Attempts per service operation")
    parser.add_argument(
        "--retry-delay", dest="retry_delay_seconds", type=float, help="Seconds between attempts"
    )
    parser.add_argument(
        "--parallelism", dest="max_parallelism", type=int, help="Concurrent file copies"
    )
    parser.add_argument(
        "--retention-days", dest="backup_retention_days", type=int,
        help="Delete backups older than this many days",
    )


_OVERRIDE_FIELDS = (
    "service_name",
    "source_path",
    "destination_path",
    "remote_host",
    "version_tag",
    "backup_enabled",
    "verify_after_copy",
    "rollback_enabled",
    "max_retries",
    "retry_delay_seconds",
    "max_parallelism",
    "backup_retention_days",
)


def _print_progress(progress: DeploymentProgress) -> None:
    print(f"[{progress.percent:5.1f}%] {progress.message}")


def _install_interrupt(token: CancellationToken) -> None:
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
    except (NotImplementedError, RuntimeError):
        logger.debug("SIGINT handler unavailable; Ctrl+C will abort without rollback")


async def _run_deployment(container, args, what_if: bool, verbose: bool) -> None:
    overrides = {name: getattr(args, name) for name in _OVERRIDE_FIELDS}
    try:
        options = container.config.deployment.to_options(what_if=what_if, **overrides)
    except ValueError as e:
        print(f"[-] Invalid deployment options: {e}")
        sys.exit(1)

    label = "What-if deployment" if what_if else "Deployment"
    print(f"[*] {label} of '{options.service_name}'")
    print(f"[*] {options.source_path} -> {options.destination_path}")

    token = CancellationToken()
    _install_interrupt(token)

    try:
        result = await container.deploy_service.execute(
            options, progress=_print_progress, cancellation=token
        )
    except Exception as e:
        print(f"[-] {label} Failed: {e}")
        if verbose:
            traceback.print_exc()
        sys.exit(1)
    finally:
        container.telemetry.flush()

    print(f"[*] Duration: {result.duration_seconds:.2f}s")
    if result.backup_path:
        print(f"[*] Backup: {result.backup_path}")
    if result.success:
        print(f"[+] {label} Successful. Files copied: {result.files_copied}, "
              f"service running: {result.service_running}")
        return

    print(f"[-] {label} Failed: {result.error_message}")
    sys.exit(1)


async def async_main():
    parser = argparse.ArgumentParser(
        description="redeploy: stop, back up, copy, verify and restart a service"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug output with tracebacks"
    )
    parser.add_argument(
        "--config", "-c", default=None, help="Path to redeploy.json"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    deploy_parser = subparsers.add_parser("deploy", help="Deploy the service")
    _add_deployment_arguments(deploy_parser)

    whatif_parser = subparsers.add_parser(
        "whatif", help="Show what a deployment would do without changing anything"
    )
    _add_deployment_arguments(whatif_parser)

    log_parser = subparsers.add_parser("log", help="Show the deployment audit log")
    log_parser.add_argument(
        "--lines", "-n", type=int, default=50, help="Number of lines to show"
    )

    subparsers.add_parser("config", help="Show the effective configuration")

    backups_parser = subparsers.add_parser("backups", help="List available backups")
    backups_parser.add_argument(
        "--destination", "-d", dest="destination_path", help="Directory the service runs from"
    )

    args = parser.parse_args()
    config = load_config(args.config)

    # Configure logging based on flags
    if args.debug:
        configure_logging(level=logging.DEBUG)
    elif args.verbose:
        configure_logging(level=logging.INFO)
    else:
        configure_logging(level=level_from_name(config.log_level))

    verbose = args.verbose or args.debug

    if args.command in ("deploy", "whatif"):
        container = create_container(config)
        await _run_deployment(container, args, args.command == "whatif", verbose)
        return

    if args.command == "log":
        container = create_container(config)
        lines = container.audit_log.tail(args.lines)
        if not lines:
            print(f"[*] No log entries in {container.audit_log.path}")
            return
        for line in lines:
            print(line)
        return

    if args.command == "config":
        print(json.dumps(asdict(config), indent=2))
        return

    if args.command == "backups":
        container = create_container(config)
        destination = args.destination_path or config.deployment.destination_path
        if not destination:
            print("[-] No destination configured; pass --destination")
            sys.exit(1)
        backup_parent = backups_dir_for(destination)
        records = container.backup_manager.list_backups(backup_parent)
        if not records:
            print(f"[*] No backups in {backup_parent}")
            return
        print(f"[*] Backups in {backup_parent}:")
        for record in records:
            tag = f"  (v{record.version_tag})" if record.version_tag else ""
            print(f"  - {os.path.join(backup_parent, record.folder_name)}  "
                  f"{record.created_at:%Y-%m-%d %H:%M:%S}{tag}")
        return

    parser.print_help()


def main():
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
