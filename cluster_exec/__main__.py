"""Command-line entry point for cluster_exec."""

import argparse
import asyncio
import logging
import sys

from cluster_exec.config import SSH_BACKENDS, Settings
from cluster_exec.models import ClusterReport, PerHost, PerSegment, Scope
from cluster_exec.services import (
    AsyncSSHRunner,
    Cluster,
    ClusterCommandError,
    ClusterExecutor,
    ConnectionPool,
    FatalClusterError,
    SegmentConfigError,
    check_cluster_error,
    get_segment_configuration_from_file,
)
from cluster_exec.utils import configure_logging, get_current_user

logger = logging.getLogger("cluster_exec")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cluster-exec",
        description="Run a shell command on every segment or host of a cluster",
    )
    parser.add_argument("command", help="Shell command to run")
    parser.add_argument(
        "--hosts",
        action="store_true",
        help="Run once per host instead of once per segment",
    )
    parser.add_argument(
        "--include-coordinator",
        action="store_true",
        help="Also run on the coordinator (or its host)",
    )
    parser.add_argument(
        "--include-mirrors",
        action="store_true",
        help="With --hosts, also run on the standby coordinator host",
    )
    parser.add_argument(
        "--local",
        action="store_true",
        help="Run every command on this host instead of over ssh",
    )
    parser.add_argument(
        "--coordinator-data-dir",
        help="Directory holding gpsegconfig_dump (default: $COORDINATOR_DATA_DIRECTORY)",
    )
    parser.add_argument("--attempts", type=int, help="Attempts per command")
    parser.add_argument("--retry-delay", type=float, help="Seconds between attempts")
    parser.add_argument(
        "--max-concurrency",
        type=int,
        help="Commands running at once (0 for no limit)",
    )
    parser.add_argument("--ssh-backend", choices=SSH_BACKENDS, help="Remote transport")
    parser.add_argument(
        "--no-fatal",
        action="store_true",
        help="Report failures as errors without treating them as fatal",
    )
    parser.add_argument("--log-level", help="DEBUG, VERBOSE, INFO, WARNING or ERROR")
    parser.add_argument("--log-file", help="Also write the full log to this file")
    return parser


def _apply_args(settings: Settings, args: argparse.Namespace) -> Settings:
    if args.attempts is not None:
        settings.max_attempts = max(1, args.attempts)
    if args.retry_delay is not None:
        settings.retry_delay = max(0.0, args.retry_delay)
    if args.max_concurrency is not None:
        settings.max_concurrency = max(0, args.max_concurrency)
    if args.ssh_backend:
        settings.ssh_backend = args.ssh_backend
    if args.log_level:
        settings.log_level = args.log_level.upper()
    if args.log_file:
        settings.log_file = args.log_file
    if args.coordinator_data_dir:
        settings.coordinator_data_dir = args.coordinator_data_dir
    return settings


def _print_report(report: ClusterReport) -> None:
    for command in report.commands:
        status = "ok" if command.error is None else f"FAILED ({command.error})"
        print(f"[{command.target}] {status}")
        for line in command.stdout.splitlines():
            print(f"[{command.target}] {line}")
        if command.error is not None:
            for line in command.stderr.splitlines():
                print(f"[{command.target}] STDERR: {line}", file=sys.stderr)


async def run(args: argparse.Namespace, settings: Settings) -> int:
    """Load the topology, run the command and report the outcome."""
    try:
        segments = get_segment_configuration_from_file(settings.coordinator_data_dir or "")
    except SegmentConfigError as e:
        logger.error("%s", e)
        return 1

    runner = None
    if settings.ssh_backend == "asyncssh":
        runner = AsyncSSHRunner(ConnectionPool(get_current_user(), settings.max_pool_size))

    cluster = Cluster(
        segments,
        executor=ClusterExecutor(runner=runner, max_concurrency=settings.max_concurrency),
    )
    scope = Scope.build(
        hosts=args.hosts,
        local=args.local,
        coordinator=args.include_coordinator,
        mirrors=args.include_mirrors,
    )
    if args.include_mirrors and not args.hosts:
        logger.warning(
            "--include-mirrors only applies with --hosts; segment runs target primaries"
        )

    if scope.is_hosts():
        generator: PerSegment[str] | PerHost[str] = PerHost(lambda host: args.command)
        message_func: PerSegment[str] | PerHost[str] = PerHost(
            lambda host: "Command failed"
        )
    else:
        generator = PerSegment(lambda content_id: args.command)
        message_func = PerSegment(lambda content_id: "Command failed")

    try:
        report = await cluster.generate_and_execute_command(
            f"Running '{args.command}' (scope={scope})",
            scope,
            generator,
            max_attempts=settings.max_attempts,
            retry_delay=settings.retry_delay,
        )
    finally:
        if isinstance(runner, AsyncSSHRunner):
            await runner.close()

    _print_report(report)

    try:
        check_cluster_error(
            cluster,
            report,
            f"Unable to run '{args.command}'",
            message_func,
            fatal=not args.no_fatal,
        )
    except FatalClusterError as e:
        logger.critical("%s", e)
        return 1
    except ClusterCommandError:
        return 1

    logger.info("Command completed on %d target(s)", len(report.commands))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    settings = _apply_args(Settings.from_env(), args)
    configure_logging(settings.log_level, settings.log_colors, settings.log_file)
    return asyncio.run(run(args, settings))


if __name__ == "__main__":
    sys.exit(main())
