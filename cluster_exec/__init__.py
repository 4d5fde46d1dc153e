"""cluster_exec: run commands across every segment or host of a cluster."""

from cluster_exec.models import (
    EXCLUDE_COORDINATOR,
    EXCLUDE_MIRRORS,
    INCLUDE_COORDINATOR,
    INCLUDE_MIRRORS,
    ON_HOSTS,
    ON_LOCAL,
    ON_REMOTE,
    ON_SEGMENTS,
    ClusterReport,
    PerHost,
    PerSegment,
    Scope,
    SegConfig,
    ShellCommand,
)
from cluster_exec.services import (
    Cluster,
    ClusterCommandError,
    ClusterExecutor,
    FatalClusterError,
    check_cluster_error,
    get_segment_configuration,
    get_segment_configuration_from_file,
)

__version__ = "0.1.0"

__all__ = [
    "EXCLUDE_COORDINATOR",
    "EXCLUDE_MIRRORS",
    "INCLUDE_COORDINATOR",
    "INCLUDE_MIRRORS",
    "ON_HOSTS",
    "ON_LOCAL",
    "ON_REMOTE",
    "ON_SEGMENTS",
    "Cluster",
    "ClusterCommandError",
    "ClusterExecutor",
    "ClusterReport",
    "FatalClusterError",
    "PerHost",
    "PerSegment",
    "Scope",
    "SegConfig",
    "ShellCommand",
    "check_cluster_error",
    "get_segment_configuration",
    "get_segment_configuration_from_file",
]
