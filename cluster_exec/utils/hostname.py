"""Hostname and user detection for the invoking machine."""

import getpass
import socket


def get_server_hostname() -> str:
    """Get the hostname of the machine running cluster_exec.

    Returns:
        Hostname string (lowercase for consistent comparison)
    """
    return socket.gethostname().lower()


def get_current_user() -> str:
    """Get the login name used for outgoing SSH connections."""
    return getpass.getuser()


def is_localhost_target(target_host: str) -> bool:
    """Check if target host is the machine running cluster_exec.

    Matches case-insensitively, and treats a short name and an FQDN with
    the same first label as the same host.
    """
    if not target_host:
        return False

    server_hostname = get_server_hostname()
    target_lower = target_host.lower()

    if target_lower == server_hostname:
        return True

    if "." in server_hostname and target_lower == server_hostname.split(".")[0]:
        return True

    if "." in target_lower and target_lower.split(".")[0] == server_hostname:
        return True

    return False
