"""Configuration for cluster_exec."""

from cluster_exec.config.settings import SSH_BACKENDS, Settings

__all__ = ["SSH_BACKENDS", "Settings"]
