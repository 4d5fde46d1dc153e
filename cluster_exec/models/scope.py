"""Execution scope for cluster commands.

A scope answers four independent questions about a cluster command:

- per segment or per host?
- run on the remote segment/host, or locally on the coordinator host?
- include the coordinator (or its host)?
- include mirrors (or the standby coordinator host)?

Every axis defaults to the first answer, so the empty scope runs one command
per primary segment, remotely, without the coordinator. Scopes compose with
``|``, which only ever switches an axis away from its default:

    ON_HOSTS | INCLUDE_COORDINATOR
"""

from dataclasses import dataclass, fields


@dataclass(frozen=True)
class Scope:
    """Which segments or hosts a command targets, and where it runs."""

    on_hosts: bool = False
    local: bool = False
    include_coordinator: bool = False
    include_mirrors: bool = False

    @classmethod
    def build(
        cls,
        *,
        hosts: bool = False,
        local: bool = False,
        coordinator: bool = False,
        mirrors: bool = False,
    ) -> "Scope":
        """Build a scope from keyword flags."""
        return cls(
            on_hosts=hosts,
            local=local,
            include_coordinator=coordinator,
            include_mirrors=mirrors,
        )

    def __or__(self, other: "Scope") -> "Scope":
        if not isinstance(other, Scope):
            return NotImplemented
        return Scope(
            **{f.name: getattr(self, f.name) or getattr(other, f.name) for f in fields(self)}
        )

    def is_segments(self) -> bool:
        return not self.on_hosts

    def is_hosts(self) -> bool:
        return self.on_hosts

    def is_remote(self) -> bool:
        return not self.local

    def is_local(self) -> bool:
        return self.local

    def excludes_coordinator(self) -> bool:
        return not self.include_coordinator

    def includes_coordinator(self) -> bool:
        return self.include_coordinator

    def excludes_mirrors(self) -> bool:
        return not self.include_mirrors

    def includes_mirrors(self) -> bool:
        return self.include_mirrors

    def __str__(self) -> str:
        parts = [
            "hosts" if self.on_hosts else "segments",
            "local" if self.local else "remote",
        ]
        if self.include_coordinator:
            parts.append("coordinator")
        if self.include_mirrors:
            parts.append("mirrors")
        return "+".join(parts)


ON_SEGMENTS = Scope()
ON_HOSTS = Scope(on_hosts=True)
ON_REMOTE = Scope()
ON_LOCAL = Scope(local=True)
EXCLUDE_COORDINATOR = Scope()
INCLUDE_COORDINATOR = Scope(include_coordinator=True)
EXCLUDE_MIRRORS = Scope()
INCLUDE_MIRRORS = Scope(include_mirrors=True)
