"""Utilities for cluster_exec."""

from cluster_exec.utils.console import (
    VERBOSE,
    ColorfulFormatter,
    configure_logging,
    get_log_file_path,
)
from cluster_exec.utils.hostname import (
    get_current_user,
    get_server_hostname,
    is_localhost_target,
)

__all__ = [
    "VERBOSE",
    "ColorfulFormatter",
    "configure_logging",
    "get_current_user",
    "get_log_file_path",
    "get_server_hostname",
    "is_localhost_target",
]
