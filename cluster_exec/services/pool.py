"""SSH connections for the asyncssh transport, one per cluster host.

Each host has its own lock, so a host's first commands wait for a single
connect while other hosts connect in parallel. `_meta_lock` guards the
connection and lock maps; take a host lock before the meta-lock, never
the reverse.

Connections are kept in least recently used order. Opening a connection
when the pool is full closes the oldest idle one first. A connection is
busy from get_connection() until release_connection(); when every
connection is busy the pool grows past max_size until one is released.
"""

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime

import asyncssh

logger = logging.getLogger(__name__)


@dataclass
class PooledConnection:
    """A pooled SSH connection with last-used timestamp and in-flight count."""

    connection: asyncssh.SSHClientConnection
    last_used: datetime = field(default_factory=datetime.now)
    users: int = 0

    def touch(self) -> None:
        """Update last-used timestamp."""
        self.last_used = datetime.now()

    @property
    def is_stale(self) -> bool:
        """Check if connection was closed."""
        is_closed: bool = self.connection.is_closed  # type: ignore[assignment]
        return is_closed


class ConnectionPool:
    """Per-host SSH connections shared by every command in a run.

    Host keys are not verified, which matches running ``ssh`` with
    ``StrictHostKeyChecking=no``.
    """

    def __init__(self, username: str, max_size: int = 100) -> None:
        """Initialize pool.

        Args:
            username: Login used for every host
            max_size: Maximum number of open connections (must be > 0)

        Raises:
            ValueError: If max_size is not positive
        """
        if max_size <= 0:
            raise ValueError(f"max_size must be > 0, got {max_size}")

        self.username = username
        self.max_size = max_size
        self._connections: OrderedDict[str, PooledConnection] = OrderedDict()
        self._host_locks: dict[str, asyncio.Lock] = {}
        self._meta_lock = asyncio.Lock()

        logger.debug("ConnectionPool initialized (user=%s, max_size=%d)", username, max_size)

    async def _get_host_lock(self, hostname: str) -> asyncio.Lock:
        async with self._meta_lock:
            if hostname not in self._host_locks:
                self._host_locks[hostname] = asyncio.Lock()
            return self._host_locks[hostname]

    async def _evict_lru_if_needed(self) -> None:
        """Evict least recently used idle connections if at capacity.

        Busy connections are skipped. Connections are closed outside the
        meta-lock.
        """
        to_close: list[PooledConnection] = []

        async with self._meta_lock:
            while len(self._connections) >= self.max_size:
                oldest_host = next(
                    (host for host, pooled in self._connections.items() if pooled.users == 0),
                    None,
                )
                if oldest_host is None:
                    logger.debug(
                        "Pool at capacity (%d/%d) with every connection busy, growing",
                        len(self._connections),
                        self.max_size,
                    )
                    break
                logger.debug(
                    "Pool at capacity (%d/%d), evicting LRU: %s",
                    len(self._connections),
                    self.max_size,
                    oldest_host,
                )
                to_close.append(self._connections.pop(oldest_host))

        for pooled in to_close:
            pooled.connection.close()

    async def get_connection(self, hostname: str) -> asyncssh.SSHClientConnection:
        """Get or create a connection to the host.

        The connection stays busy, and is never evicted, until the caller
        passes it to release_connection().
        """
        host_lock = await self._get_host_lock(hostname)

        async with host_lock:
            pooled = self._connections.get(hostname)

            if pooled and not pooled.is_stale:
                pooled.touch()
                pooled.users += 1
                async with self._meta_lock:
                    self._connections.move_to_end(hostname)
                logger.debug("Reusing existing connection to %s", hostname)
                return pooled.connection

            if pooled and pooled.is_stale:
                logger.debug("Connection to %s is stale, creating new connection", hostname)

            await self._evict_lru_if_needed()

            logger.debug("Opening SSH connection to %s@%s", self.username, hostname)
            conn = await asyncssh.connect(
                hostname,
                username=self.username,
                known_hosts=None,
            )

            async with self._meta_lock:
                self._connections[hostname] = PooledConnection(connection=conn, users=1)
                self._connections.move_to_end(hostname)

            return conn

    def release_connection(
        self, hostname: str, connection: asyncssh.SSHClientConnection
    ) -> None:
        """Mark one use of a connection from get_connection() as finished."""
        pooled = self._connections.get(hostname)
        # The host may have been reconnected or removed meanwhile
        if pooled is not None and pooled.connection is connection and pooled.users > 0:
            pooled.users -= 1
            pooled.touch()

    async def remove_connection(self, hostname: str) -> None:
        """Close and forget the connection to one host, if any."""
        host_lock = await self._get_host_lock(hostname)
        async with host_lock:
            pooled = self._connections.pop(hostname, None)
            if pooled is not None:
                logger.debug("Removing connection to %s", hostname)
                pooled.connection.close()

    async def close_all(self) -> None:
        """Close all connections."""
        async with self._meta_lock:
            hostnames = list(self._connections.keys())

        if hostnames:
            logger.debug("Closing all %d connection(s)", len(hostnames))
        for hostname in hostnames:
            await self.remove_connection(hostname)

    @property
    def pool_size(self) -> int:
        """Return the current number of connections in the pool."""
        return len(self._connections)

    @property
    def active_hosts(self) -> list[str]:
        """Return list of hosts with active connections."""
        return list(self._connections.keys())
