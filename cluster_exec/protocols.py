"""Protocol interfaces for dependency inversion.

The cluster code depends on these shapes rather than on concrete classes,
so tests (and callers with their own database driver) can pass anything
that fits.

Usage Example:

    from cluster_exec.protocols import CommandRunner

    class EchoRunner:
        async def run(self, command):
            return CommandResult(output=command.command_string, error="", returncode=0)

    executor = ClusterExecutor(runner=EchoRunner())
"""

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from cluster_exec.models import CommandResult, ShellCommand


@runtime_checkable
class CommandRunner(Protocol):
    """Runs one attempt of a shell command."""

    async def run(self, command: ShellCommand) -> CommandResult:
        """Run the command once.

        Args:
            command: Command to run; implementations read ``argv`` (and may
                use ``remote_host``/``shell_command`` when present).

        Returns:
            Captured output, error text and exit status.

        Raises:
            OSError: If the process or transport could not be started.
        """
        ...


@runtime_checkable
class DBVersion(Protocol):
    """Parsed server version of the connected database."""

    def is_gpdb(self) -> bool:
        """True when the server belongs to the GPDB family."""
        ...

    def before(self, version: str) -> bool:
        """True when the server version is older than ``version``."""
        ...


@runtime_checkable
class DBConnection(Protocol):
    """Database connection able to run a read-only query."""

    version: DBVersion

    def select(self, query: str) -> Sequence[Any]:
        """Run ``query`` and return its rows.

        Rows may be mappings keyed by column name or sequences in column
        order.
        """
        ...
