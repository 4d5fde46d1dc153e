"""Services for cluster_exec."""

from cluster_exec.services.aggregator import (
    ClusterCommandError,
    FatalClusterError,
    check_cluster_error,
    format_cluster_error,
)
from cluster_exec.services.cluster import Cluster, construct_ssh_command
from cluster_exec.services.executors import (
    ClusterExecutor,
    CommandAttemptError,
    CommandExitError,
    execute_local_command,
)
from cluster_exec.services.pool import ConnectionPool
from cluster_exec.services.runners import (
    AsyncSSHRunner,
    RemoteConnectionError,
    SubprocessRunner,
)
from cluster_exec.services.segconfig import (
    SegmentConfigError,
    get_segment_configuration,
    get_segment_configuration_from_file,
    parse_segconfig_line,
)

__all__ = [
    "AsyncSSHRunner",
    "Cluster",
    "ClusterCommandError",
    "ClusterExecutor",
    "CommandAttemptError",
    "CommandExitError",
    "ConnectionPool",
    "FatalClusterError",
    "RemoteConnectionError",
    "SegmentConfigError",
    "SubprocessRunner",
    "check_cluster_error",
    "construct_ssh_command",
    "execute_local_command",
    "format_cluster_error",
    "get_segment_configuration",
    "get_segment_configuration_from_file",
    "parse_segconfig_line",
]
