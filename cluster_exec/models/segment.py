"""Segment configuration data models."""

from dataclasses import dataclass

COORDINATOR_CONTENT_ID = -1


@dataclass(frozen=True)
class SegConfig:
    """One row of the cluster's segment configuration."""

    dbid: int
    content_id: int
    role: str
    preferred_role: str
    mode: str
    status: str
    port: int
    hostname: str
    address: str
    datadir: str = ""

    @property
    def is_primary(self) -> bool:
        """True for primary segments (and the coordinator)."""
        return self.role == "p"

    @property
    def is_mirror(self) -> bool:
        """True for mirror segments (and the standby coordinator)."""
        return self.role == "m"

    @property
    def is_coordinator(self) -> bool:
        """True for the coordinator and its standby."""
        return self.content_id == COORDINATOR_CONTENT_ID
