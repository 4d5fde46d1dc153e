"""Cluster topology and command list generation.

A Cluster stores the segment configuration three ways:

- ``segments`` is the plain list of segment rows, ordered by content id. It
  is the source of truth.
- ``by_content`` maps a content id to its segments, primary first and
  mirror second.
- ``by_host`` maps a hostname to every segment on that host.

The maps hold the same SegConfig objects as ``segments``. A Cluster is
never modified after construction; build a new one when the topology
changes.
"""

import logging
from collections.abc import Sequence

from cluster_exec.models import (
    COORDINATOR_CONTENT_ID,
    NO_CONTENT,
    NO_HOST,
    ClusterReport,
    PerHost,
    PerSegment,
    Scope,
    SegConfig,
    ShellCommand,
    ensure_generator,
)
from cluster_exec.services.executors import ClusterExecutor
from cluster_exec.utils.console import VERBOSE
from cluster_exec.utils.hostname import get_current_user, is_localhost_target

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_RETRY_DELAY = 1.0


def _segment_by_role(segments: list[SegConfig], role: str) -> SegConfig | None:
    if role == "m":
        return segments[1] if len(segments) >= 2 else None
    return segments[0] if segments else None


def construct_ssh_command(
    use_local: bool, host: str, cmd: str, user: str | None = None
) -> list[str]:
    """Wrap a shell command for local bash or remote ssh execution.

    Args:
        use_local: Run with bash on this host instead of over ssh
        host: Target host for remote execution
        cmd: Shell command line
        user: Remote login (defaults to the current user)

    Returns:
        argv ready to execute.
    """
    if use_local:
        return ["bash", "-c", cmd]
    user = user or get_current_user()
    return ["ssh", "-o", "StrictHostKeyChecking=no", f"{user}@{host}", cmd]


class Cluster:
    """Segment topology of one cluster snapshot."""

    def __init__(
        self,
        segments: Sequence[SegConfig],
        executor: ClusterExecutor | None = None,
    ) -> None:
        self.segments: list[SegConfig] = list(segments)
        self.by_content: dict[int, list[SegConfig]] = {}
        self.by_host: dict[str, list[SegConfig]] = {}
        self.hostnames: list[str] = []
        self.executor = executor or ClusterExecutor()

        for segment in self.segments:
            content_list = self.by_content.setdefault(segment.content_id, [])
            content_list.append(segment)
            # Input is not guaranteed to list primaries first
            if len(content_list) == 2 and content_list[0].is_mirror:
                content_list[0], content_list[1] = content_list[1], content_list[0]

            host_list = self.by_host.setdefault(segment.hostname, [])
            host_list.append(segment)
            if len(host_list) == 1:
                self.hostnames.append(segment.hostname)

        self.content_ids: list[int] = sorted(self.by_content)

        logger.debug(
            "Cluster built: %d segment(s), %d content id(s), %d host(s)",
            len(self.segments),
            len(self.content_ids),
            len(self.hostnames),
        )

    # Lookups by content id. role is "p" (default) or "m".

    def get_dbid_for_content(self, content_id: int, role: str = "p") -> int:
        segment = _segment_by_role(self.by_content.get(content_id, []), role)
        return segment.dbid if segment else -1

    def get_port_for_content(self, content_id: int, role: str = "p") -> int:
        segment = _segment_by_role(self.by_content.get(content_id, []), role)
        return segment.port if segment else -1

    def get_host_for_content(self, content_id: int, role: str = "p") -> str:
        segment = _segment_by_role(self.by_content.get(content_id, []), role)
        return segment.hostname if segment else ""

    def get_dir_for_content(self, content_id: int, role: str = "p") -> str:
        segment = _segment_by_role(self.by_content.get(content_id, []), role)
        return segment.datadir if segment else ""

    # Lookups by host, in segment list order.

    def get_dbids_for_host(self, hostname: str) -> list[int]:
        return [seg.dbid for seg in self.by_host.get(hostname, [])]

    def get_contents_for_host(self, hostname: str) -> list[int]:
        return [seg.content_id for seg in self.by_host.get(hostname, [])]

    def get_ports_for_host(self, hostname: str) -> list[int]:
        return [seg.port for seg in self.by_host.get(hostname, [])]

    def get_dirs_for_host(self, hostname: str) -> list[str]:
        return [seg.datadir for seg in self.by_host.get(hostname, [])]

    @property
    def coordinator_host(self) -> str:
        """Host of the coordinator, or "" if the topology has none."""
        return self.get_host_for_content(COORDINATOR_CONTENT_ID)

    def is_local_host(self, host: str) -> bool:
        """True when host is where commands are issued from.

        That is the coordinator host, or this machine when the topology
        does not include a coordinator.
        """
        coordinator_host = self.coordinator_host
        if coordinator_host:
            return host == coordinator_host
        return is_localhost_target(host)

    def generate_command_list(
        self,
        scope: Scope,
        generator: PerSegment[list[str]] | PerHost[list[str]],
    ) -> list[ShellCommand]:
        """Build one command per segment or per host.

        PerSegment generators are called with each content id in ascending
        order, skipping the coordinator unless the scope includes it.

        PerHost generators are called with each host in first-seen order.
        The coordinator host is skipped when the scope excludes the
        coordinator, and the standby coordinator host when the scope
        excludes both the coordinator and mirrors, but only if no other
        segment lives on that host.

        Raises:
            TypeError: If generator is not PerSegment or PerHost.
        """
        ensure_generator(generator)
        commands: list[ShellCommand] = []

        if isinstance(generator, PerSegment):
            for content_id in self.content_ids:
                if content_id == COORDINATOR_CONTENT_ID and scope.excludes_coordinator():
                    continue
                commands.append(
                    ShellCommand(
                        scope=scope,
                        content_id=content_id,
                        host=NO_HOST,
                        argv=generator(content_id),
                    )
                )
            return commands

        coordinator_host = self.get_host_for_content(COORDINATOR_CONTENT_ID, "p")
        standby_host = self.get_host_for_content(COORDINATOR_CONTENT_ID, "m")
        for host in self.hostnames:
            host_has_one_content = len(self.get_contents_for_host(host)) == 1
            if host == coordinator_host and scope.excludes_coordinator() and host_has_one_content:
                continue
            # The standby is both a coordinator and a mirror; it stays unless
            # the scope excludes both
            if (
                host == standby_host
                and scope.excludes_mirrors()
                and scope.excludes_coordinator()
                and host_has_one_content
            ):
                continue
            commands.append(
                ShellCommand(
                    scope=scope,
                    content_id=NO_CONTENT,
                    host=host,
                    argv=generator(host),
                )
            )
        return commands

    def generate_ssh_command_list(
        self,
        scope: Scope,
        generator: PerSegment[str] | PerHost[str],
    ) -> list[ShellCommand]:
        """Build commands from a command-string generator.

        Commands for the local host, or every command when the scope is
        local, run through bash; the rest run through ssh.

        Raises:
            TypeError: If generator is not PerSegment or PerHost.
        """
        ensure_generator(generator)
        # Unwrapped command strings of remote commands, keyed by target
        remote: dict[int | str, tuple[str, str]] = {}

        def wrap(key: int | str, host: str, cmd: str) -> list[str]:
            use_local = scope.is_local() or self.is_local_host(host)
            if not use_local:
                remote[key] = (host, cmd)
            return construct_ssh_command(use_local, host, cmd)

        if isinstance(generator, PerSegment):
            commands = self.generate_command_list(
                scope,
                PerSegment(
                    lambda content_id: wrap(
                        content_id, self.get_host_for_content(content_id), generator(content_id)
                    )
                ),
            )
        else:
            commands = self.generate_command_list(
                scope, PerHost(lambda host: wrap(host, host, generator(host)))
            )

        for command in commands:
            key = command.content_id if isinstance(generator, PerSegment) else command.host
            if key in remote:
                command.remote_host, command.shell_command = remote[key]
        return commands

    async def execute_cluster_command(
        self, scope: Scope, commands: list[ShellCommand]
    ) -> ClusterReport:
        """Run commands once each through this cluster's executor."""
        return await self.executor.execute_cluster_command(scope, commands)

    async def execute_cluster_command_with_retries(
        self,
        scope: Scope,
        commands: list[ShellCommand],
        max_attempts: int,
        retry_delay: float,
    ) -> ClusterReport:
        """Run commands with retries through this cluster's executor."""
        return await self.executor.execute_cluster_command_with_retries(
            scope, commands, max_attempts, retry_delay
        )

    async def generate_and_execute_command(
        self,
        message: str,
        scope: Scope,
        generator: PerSegment[str] | PerHost[str],
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ) -> ClusterReport:
        """Log message, then run a shell command on every targeted segment or host.

        Suits both commands that should run on the remote hosts themselves
        (``ls`` on every host) and commands run on the coordinator that
        push to each host (one ``scp`` per segment, with a local scope).
        """
        logger.log(VERBOSE, message)
        commands = self.generate_ssh_command_list(scope, generator)
        return await self.execute_cluster_command_with_retries(
            scope, commands, max_attempts, retry_delay
        )
