"""Tests for the parallel cluster executor."""

import asyncio
import time

import pytest

from cluster_exec.models import NO_HOST, CommandResult, Scope, ShellCommand
from cluster_exec.services.executors import (
    ClusterExecutor,
    CommandAttemptError,
    CommandExitError,
    execute_local_command,
)


class ScriptedRunner:
    """Runner whose outcome per command and attempt is decided by a table.

    ``plan`` maps a command string to the number of leading attempts that
    fail; missing commands always succeed. A value of None fails forever.
    """

    def __init__(self, plan: dict[str, int | None] | None = None, delay: float = 0.0):
        self.plan = plan or {}
        self.delay = delay
        self.calls: dict[str, int] = {}
        self.running = 0
        self.max_running = 0

    async def run(self, command: ShellCommand) -> CommandResult:
        key = command.command_string
        self.calls[key] = self.calls.get(key, 0) + 1
        attempt = self.calls[key]
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.running -= 1

        failures = self.plan.get(key, 0)
        if failures is None or attempt <= failures:
            return CommandResult(output="", error=f"fail {attempt}", returncode=1)
        return CommandResult(output=f"ok {attempt}", error="", returncode=0)


def make_commands(*names: str) -> list[ShellCommand]:
    return [
        ShellCommand(scope=Scope(), content_id=i, host=NO_HOST, argv=[name])
        for i, name in enumerate(names)
    ]


@pytest.mark.asyncio
async def test_single_attempt_reports_partial_failure() -> None:
    """One failing command among three is reported without stopping the rest."""
    runner = ScriptedRunner({"cmd2": None})
    commands = make_commands("cmd1", "cmd2", "cmd3")

    report = await ClusterExecutor(runner=runner).execute_cluster_command(Scope(), commands)

    assert report.num_errors == 1
    assert report.failed_commands == [commands[1]]
    assert report.retried_commands == []
    assert all(c.completed for c in commands)
    assert commands[0].stdout == "ok 1"
    assert isinstance(commands[1].error, CommandExitError)
    assert commands[1].error.returncode == 1


@pytest.mark.asyncio
async def test_succeeds_on_last_attempt() -> None:
    """N-1 failures then success leaves no terminal error and N-1 attempt errors."""
    runner = ScriptedRunner({"flaky": 3})
    commands = make_commands("flaky")

    report = await ClusterExecutor(runner=runner).execute_cluster_command_with_retries(
        Scope(), commands, max_attempts=4, retry_delay=0
    )

    command = commands[0]
    assert command.error is None
    assert command.stdout == "ok 4"
    assert command.stderr == ""
    assert len(command.retry_errors) == 3
    assert [e.attempt for e in command.retry_errors] == [1, 2, 3]
    assert report.num_errors == 0
    assert report.retried_commands == [command]
    assert report.failed_commands == []


@pytest.mark.asyncio
async def test_stops_retrying_after_success() -> None:
    """A successful attempt ends the retry loop."""
    runner = ScriptedRunner({"flaky": 1})
    commands = make_commands("flaky")

    await ClusterExecutor(runner=runner).execute_cluster_command_with_retries(
        Scope(), commands, max_attempts=5, retry_delay=0
    )

    assert runner.calls["flaky"] == 2


@pytest.mark.asyncio
async def test_always_failing_command_uses_every_attempt() -> None:
    """Every attempt fails: terminal error, full trail, retry delays honoured."""
    runner = ScriptedRunner({"broken": None})
    commands = make_commands("broken")
    retry_delay = 0.05

    start = time.monotonic()
    report = await ClusterExecutor(runner=runner).execute_cluster_command_with_retries(
        Scope(), commands, max_attempts=3, retry_delay=retry_delay
    )
    elapsed = time.monotonic() - start

    command = commands[0]
    assert command.completed
    assert isinstance(command.error, CommandExitError)
    assert len(command.retry_errors) == 3
    assert runner.calls["broken"] == 3
    assert command.stderr == "fail 3"
    assert elapsed >= 2 * retry_delay
    assert report.num_errors == 1
    assert report.failed_commands == [command]
    assert report.retried_commands == []


@pytest.mark.asyncio
async def test_attempt_error_message_includes_stderr() -> None:
    """Attempt errors carry the attempt number, cause and stderr."""
    runner = ScriptedRunner({"broken": None})
    commands = make_commands("broken")

    await ClusterExecutor(runner=runner).execute_cluster_command_with_retries(
        Scope(), commands, max_attempts=2, retry_delay=0
    )

    first = commands[0].retry_errors[0]
    assert isinstance(first, CommandAttemptError)
    assert str(first) == "attempt 1: error was exit status 1: fail 1"


@pytest.mark.asyncio
async def test_transport_errors_are_retried() -> None:
    """OSError from the runner counts as a failed attempt."""

    class FlakyTransport:
        def __init__(self) -> None:
            self.attempts = 0

        async def run(self, command: ShellCommand) -> CommandResult:
            self.attempts += 1
            if self.attempts == 1:
                raise FileNotFoundError("ssh: not found")
            return CommandResult(output="done", error="", returncode=0)

    commands = make_commands("cmd")

    report = await ClusterExecutor(runner=FlakyTransport()).execute_cluster_command_with_retries(
        Scope(), commands, max_attempts=2, retry_delay=0
    )

    assert report.num_errors == 0
    assert commands[0].stdout == "done"
    assert isinstance(commands[0].retry_errors[0].cause, FileNotFoundError)


@pytest.mark.asyncio
async def test_unexpected_runner_errors_are_all_raised() -> None:
    """Non-OSError failures are grouped and the other commands still finish."""

    class BrokenRunner:
        async def run(self, command: ShellCommand) -> CommandResult:
            if command.command_string == "ok":
                return CommandResult(output="fine", error="", returncode=0)
            raise RuntimeError(f"bug in {command.command_string}")

    commands = make_commands("bad1", "ok", "bad2")

    with pytest.raises(ExceptionGroup) as exc_info:
        await ClusterExecutor(runner=BrokenRunner()).execute_cluster_command_with_retries(
            Scope(), commands, max_attempts=3, retry_delay=0
        )

    messages = sorted(str(e) for e in exc_info.value.exceptions)
    assert messages == ["bug in bad1", "bug in bad2"]
    assert all(c.completed for c in commands)
    assert commands[1].stdout == "fine"
    assert isinstance(commands[0].error, RuntimeError)

@pytest.mark.asyncio
async def test_commands_run_concurrently() -> None:
    """Without a cap every command runs at the same time."""
    runner = ScriptedRunner(delay=0.05)
    commands = make_commands(*(f"cmd{i}" for i in range(8)))

    await ClusterExecutor(runner=runner).execute_cluster_command(Scope(), commands)

    assert runner.max_running == 8


@pytest.mark.asyncio
async def test_max_concurrency_bounds_fan_out() -> None:
    """A concurrency cap limits how many commands run at once."""
    runner = ScriptedRunner(delay=0.02)
    commands = make_commands(*(f"cmd{i}" for i in range(6)))

    report = await ClusterExecutor(runner=runner, max_concurrency=2).execute_cluster_command(
        Scope(), commands
    )

    assert runner.max_running <= 2
    assert report.num_errors == 0
    assert all(c.completed for c in commands)


@pytest.mark.asyncio
async def test_invalid_max_attempts_rejected() -> None:
    """At least one attempt is required."""
    with pytest.raises(ValueError):
        await ClusterExecutor(runner=ScriptedRunner()).execute_cluster_command_with_retries(
            Scope(), make_commands("cmd"), max_attempts=0, retry_delay=0
        )


def test_negative_max_concurrency_rejected() -> None:
    """The cap cannot be negative."""
    with pytest.raises(ValueError):
        ClusterExecutor(max_concurrency=-1)


@pytest.mark.asyncio
async def test_empty_command_list() -> None:
    """Nothing to run gives an empty report."""
    report = await ClusterExecutor(runner=ScriptedRunner()).execute_cluster_command(Scope(), [])

    assert report.num_errors == 0
    assert report.commands == []


@pytest.mark.asyncio
async def test_execute_local_command_combines_output() -> None:
    """Local commands return combined output and exit status."""
    output, returncode = await execute_local_command("echo out; echo err >&2; exit 3")

    assert "out" in output
    assert "err" in output
    assert returncode == 3


@pytest.mark.asyncio
async def test_execute_local_command_timeout() -> None:
    """A deadline kills the local command."""
    with pytest.raises(TimeoutError):
        await execute_local_command("sleep 5", timeout=0.1)
