"""Command execution data models."""

from dataclasses import dataclass, field

from cluster_exec.models.scope import Scope

# Placeholder values for the identity field a command does not use.
NO_CONTENT = -2
NO_HOST = ""


@dataclass
class CommandResult:
    """Result of a single process execution."""

    output: str
    error: str
    returncode: int


@dataclass
class ShellCommand:
    """A command to run on one segment or host, plus its outcome.

    Per-segment commands carry ``content_id`` and leave ``host`` as
    ``NO_HOST``; per-host commands carry ``host`` and leave ``content_id``
    as ``NO_CONTENT``. Check ``scope`` before relying on either.

    The result fields are written once, by the executor that runs the
    command.
    """

    scope: Scope
    content_id: int
    host: str
    argv: list[str]
    command_string: str = ""
    remote_host: str | None = None
    shell_command: str | None = None
    stdout: str = ""
    stderr: str = ""
    error: Exception | None = None
    retry_errors: list[Exception] = field(default_factory=list)
    completed: bool = False

    def __post_init__(self) -> None:
        if not self.argv:
            raise ValueError("ShellCommand requires a non-empty argv")
        if not self.command_string:
            self.command_string = " ".join(self.argv)

    @property
    def retry_error(self) -> ExceptionGroup | None:
        """All failed attempts as one exception group, or None."""
        if not self.retry_errors:
            return None
        return ExceptionGroup(
            f"{len(self.retry_errors)} failed attempt(s): {self.command_string}",
            self.retry_errors,
        )

    @property
    def target(self) -> str:
        """Human-readable target for display."""
        if self.scope.is_hosts():
            return self.host
        return f"content {self.content_id}"


@dataclass
class ClusterReport:
    """Outcome of running a batch of commands across the cluster."""

    scope: Scope
    num_errors: int
    commands: list[ShellCommand]
    failed_commands: list[ShellCommand] = field(default_factory=list)
    retried_commands: list[ShellCommand] = field(default_factory=list)

    @classmethod
    def from_commands(
        cls, scope: Scope, num_errors: int, commands: list[ShellCommand]
    ) -> "ClusterReport":
        """Classify completed commands into failed and retried groups."""
        failed: list[ShellCommand] = []
        retried: list[ShellCommand] = []
        for command in commands:
            if command.error is not None:
                failed.append(command)
            elif command.retry_errors:
                retried.append(command)
        return cls(
            scope=scope,
            num_errors=num_errors,
            commands=commands,
            failed_commands=failed,
            retried_commands=retried,
        )

    @property
    def succeeded_commands(self) -> list[ShellCommand]:
        """Commands that finished without a terminal error."""
        return [c for c in self.commands if c.error is None]
