"""Reporting and error policy for completed cluster commands."""

import logging
from typing import TYPE_CHECKING

from cluster_exec.models import ClusterReport, PerHost, PerSegment, Scope, ensure_generator
from cluster_exec.utils.console import VERBOSE, get_log_file_path

if TYPE_CHECKING:
    from cluster_exec.services.cluster import Cluster

logger = logging.getLogger(__name__)


class ClusterCommandError(Exception):
    """One or more cluster commands failed after all retries."""

    def __init__(self, message: str, scope: Scope, num_errors: int):
        self.scope = scope
        self.num_errors = num_errors
        super().__init__(message)


class FatalClusterError(ClusterCommandError):
    """Cluster command failure the caller should treat as fatal."""


def format_cluster_error(err_message: str, scope: Scope, num_errors: int) -> str:
    """Build the summary line for a failed cluster command.

    Example: "Unable to start segments on 2 segments. See /tmp/run.log for
    a complete list of errors."
    """
    where = " on"
    if scope.is_local():
        where += " coordinator for"

    noun = "host" if scope.is_hosts() else "segment"
    if num_errors != 1:
        noun += "s"

    return (
        f"{err_message}{where} {num_errors} {noun}. "
        f"See {get_log_file_path()} for a complete list of errors."
    )


def check_cluster_error(
    cluster: "Cluster",
    report: ClusterReport,
    final_err_msg: str,
    message_func: PerSegment[str] | PerHost[str],
    fatal: bool = True,
) -> None:
    """Log retried and failed commands, then raise if anything failed.

    Retried commands are logged at DEBUG. Each failed command is logged at
    ERROR using ``message_func`` to describe what was being done on that
    segment or host.

    Args:
        cluster: Topology used to name the host of each segment
        report: Report returned by the executor
        final_err_msg: Summary of the operation, e.g. "Unable to stop segments"
        message_func: PerSegment or PerHost describing one failure
        fatal: Raise FatalClusterError (default) instead of ClusterCommandError

    Raises:
        FatalClusterError: If any command failed and fatal is True
        ClusterCommandError: If any command failed and fatal is False
        TypeError: If message_func is not PerSegment or PerHost
    """
    ensure_generator(message_func, "message_func")

    for command in report.retried_commands:
        if isinstance(message_func, PerSegment):
            content_id = command.content_id
            logger.debug(
                "Command failed before passing on segment %d on host %s with error:\n%s",
                content_id,
                cluster.get_host_for_content(content_id),
                _format_retry_trail(command.retry_errors),
            )
        else:
            logger.debug(
                "Command failed before passing on host %s with error:\n%s",
                command.host,
                _format_retry_trail(command.retry_errors),
            )
        logger.debug("Command was: %s", command.command_string)

    if report.num_errors == 0:
        return

    for command in report.failed_commands:
        err_str = f"with error {command.error}: {command.stderr}"
        if isinstance(message_func, PerSegment):
            content_id = command.content_id
            logger.error(
                "%s on segment %d on host %s %s",
                message_func(content_id),
                content_id,
                cluster.get_host_for_content(content_id),
                err_str,
            )
        else:
            logger.error("%s on host %s %s", message_func(command.host), command.host, err_str)
        logger.log(VERBOSE, "Command was: %s", command.command_string)

    if not fatal:
        logger.error(final_err_msg)
        raise ClusterCommandError(final_err_msg, report.scope, report.num_errors)

    raise FatalClusterError(
        format_cluster_error(final_err_msg, report.scope, report.num_errors),
        report.scope,
        report.num_errors,
    )


def _format_retry_trail(errors: list[Exception]) -> str:
    return "\n".join(str(e) for e in errors)
