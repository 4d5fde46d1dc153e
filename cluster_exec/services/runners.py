"""Process runners: one attempt of one command.

``SubprocessRunner`` runs the command's argv (``bash -c ...`` or
``ssh ... user@host ...``) as a child process. ``AsyncSSHRunner`` runs
remote commands over pooled asyncssh connections instead of spawning an
``ssh`` client per command, and hands everything else to a subprocess.
"""

import asyncio
import logging

import asyncssh

from cluster_exec.models import CommandResult, ShellCommand
from cluster_exec.services.pool import ConnectionPool

logger = logging.getLogger(__name__)


class RemoteConnectionError(OSError):
    """SSH transport failed before the command produced an exit status."""

    def __init__(self, host_name: str, original_error: Exception):
        """Initialize connection error.

        Args:
            host_name: Name of the SSH host
            original_error: Original exception that caused the failure
        """
        self.host_name = host_name
        self.original_error = original_error
        super().__init__(f"Cannot run command on {host_name}: {original_error}")


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


class SubprocessRunner:
    """Runs argv as a local child process with separate stdout/stderr."""

    async def run(self, command: ShellCommand) -> CommandResult:
        proc = await asyncio.create_subprocess_exec(
            *command.argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await proc.communicate()
        return CommandResult(
            output=_decode(stdout),
            error=_decode(stderr),
            returncode=proc.returncode if proc.returncode is not None else -1,
        )


class AsyncSSHRunner:
    """Runs remote commands over asyncssh, local ones as subprocesses."""

    def __init__(
        self,
        pool: ConnectionPool,
        local_runner: SubprocessRunner | None = None,
    ) -> None:
        self.pool = pool
        self.local_runner = local_runner or SubprocessRunner()

    async def run(self, command: ShellCommand) -> CommandResult:
        if command.remote_host is None or command.shell_command is None:
            return await self.local_runner.run(command)

        host = command.remote_host
        try:
            conn = await self.pool.get_connection(host)
            try:
                result = await conn.run(command.shell_command, check=False)
            finally:
                self.pool.release_connection(host, conn)
        except (asyncssh.Error, OSError) as e:
            # Drop the connection so the next attempt reconnects
            await self.pool.remove_connection(host)
            raise RemoteConnectionError(host, e) from e

        # No exit status means the channel closed without reporting one
        returncode = result.returncode if result.returncode is not None else -1
        return CommandResult(
            output=_decode(result.stdout),
            error=_decode(result.stderr),
            returncode=returncode,
        )

    async def close(self) -> None:
        """Close every pooled connection."""
        await self.pool.close_all()
