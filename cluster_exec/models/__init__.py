"""Data models for cluster_exec."""

from cluster_exec.models.command import (
    NO_CONTENT,
    NO_HOST,
    ClusterReport,
    CommandResult,
    ShellCommand,
)
from cluster_exec.models.generator import (
    PerHost,
    PerSegment,
    TargetGenerator,
    ensure_generator,
)
from cluster_exec.models.scope import (
    EXCLUDE_COORDINATOR,
    EXCLUDE_MIRRORS,
    INCLUDE_COORDINATOR,
    INCLUDE_MIRRORS,
    ON_HOSTS,
    ON_LOCAL,
    ON_REMOTE,
    ON_SEGMENTS,
    Scope,
)
from cluster_exec.models.segment import COORDINATOR_CONTENT_ID, SegConfig

__all__ = [
    "COORDINATOR_CONTENT_ID",
    "ClusterReport",
    "CommandResult",
    "EXCLUDE_COORDINATOR",
    "EXCLUDE_MIRRORS",
    "INCLUDE_COORDINATOR",
    "INCLUDE_MIRRORS",
    "NO_CONTENT",
    "NO_HOST",
    "ON_HOSTS",
    "ON_LOCAL",
    "ON_REMOTE",
    "ON_SEGMENTS",
    "PerHost",
    "PerSegment",
    "Scope",
    "SegConfig",
    "ShellCommand",
    "TargetGenerator",
    "ensure_generator",
]
