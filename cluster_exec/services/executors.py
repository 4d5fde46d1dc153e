"""Parallel execution of cluster command lists."""

import asyncio
import logging
import time

from cluster_exec.models import ClusterReport, Scope, ShellCommand
from cluster_exec.protocols import CommandRunner
from cluster_exec.services.runners import SubprocessRunner

logger = logging.getLogger(__name__)


class CommandExitError(Exception):
    """A command ran but exited with a non-zero status."""

    def __init__(self, returncode: int):
        self.returncode = returncode
        super().__init__(f"exit status {returncode}")


class CommandAttemptError(Exception):
    """One failed attempt of a command, kept in its retry trail."""

    def __init__(self, attempt: int, cause: Exception, stderr: str):
        """Initialize attempt error.

        Args:
            attempt: 1-based attempt number
            cause: Exit or transport error of this attempt
            stderr: Standard error captured during this attempt
        """
        self.attempt = attempt
        self.cause = cause
        self.stderr = stderr
        super().__init__(f"attempt {attempt}: error was {cause}: {stderr}")


class ClusterExecutor:
    """Runs every command of a list concurrently, with per-command retries.

    One asyncio task is started per command and all of them are awaited
    before any result is read. ``max_concurrency`` optionally caps how many
    commands run at once; by default there is no cap.
    """

    def __init__(
        self,
        runner: CommandRunner | None = None,
        max_concurrency: int | None = None,
    ) -> None:
        if max_concurrency is not None and max_concurrency < 0:
            raise ValueError(f"max_concurrency must be >= 0, got {max_concurrency}")
        self.runner = runner or SubprocessRunner()
        self.max_concurrency = max_concurrency or None

    async def execute_cluster_command(
        self, scope: Scope, commands: list[ShellCommand]
    ) -> ClusterReport:
        """Run each command once, without retries."""
        return await self.execute_cluster_command_with_retries(scope, commands, 1, 0)

    async def execute_cluster_command_with_retries(
        self,
        scope: Scope,
        commands: list[ShellCommand],
        max_attempts: int,
        retry_delay: float,
    ) -> ClusterReport:
        """Run all commands in parallel, retrying each up to max_attempts times.

        The scope is only passed through to the report. A failing command
        never stops the others; partial success is reported as such.

        Args:
            scope: Scope the commands were generated for
            commands: Commands to run; each is updated in place
            max_attempts: Attempts per command (>= 1)
            retry_delay: Seconds to sleep between attempts of one command

        Returns:
            ClusterReport over the completed commands.

        Raises:
            ValueError: If max_attempts is less than 1
            ExceptionGroup: If runners raised anything other than OSError;
                every such exception is included, and the other commands
                still run to completion
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

        async def run_one(command: ShellCommand) -> None:
            if semaphore is None:
                await self._run_with_retries(command, max_attempts, retry_delay)
                return
            async with semaphore:
                await self._run_with_retries(command, max_attempts, retry_delay)

        logger.debug(
            "Executing %d command(s) (scope=%s, max_attempts=%d, max_concurrency=%s)",
            len(commands),
            scope,
            max_attempts,
            self.max_concurrency or "unbounded",
        )
        start = time.perf_counter()
        outcomes = await asyncio.gather(
            *(run_one(command) for command in commands), return_exceptions=True
        )
        unexpected = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
        if unexpected:
            raise BaseExceptionGroup(
                f"{len(unexpected)} of {len(commands)} command(s) raised unexpectedly",
                unexpected,
            )

        num_errors = sum(1 for command in commands if command.error is not None)
        logger.debug(
            "Executed %d command(s) in %.1fms, %d error(s)",
            len(commands),
            (time.perf_counter() - start) * 1000,
            num_errors,
        )
        return ClusterReport.from_commands(scope, num_errors, commands)

    async def _run_with_retries(
        self, command: ShellCommand, max_attempts: int, retry_delay: float
    ) -> None:
        stdout = ""
        stderr = ""
        error: Exception | None = None
        retry_errors: list[Exception] = []

        for attempt in range(1, max_attempts + 1):
            stdout = ""
            stderr = ""
            try:
                result = await self.runner.run(command)
            except OSError as e:
                error = e
            except Exception as e:
                command.error = e
                command.retry_errors = retry_errors
                command.completed = True
                raise
            else:
                stdout = result.output
                stderr = result.error
                error = CommandExitError(result.returncode) if result.returncode != 0 else None

            if error is None:
                break

            retry_errors.append(CommandAttemptError(attempt, error, stderr))
            logger.debug(
                "Attempt %d/%d failed for %s: %s", attempt, max_attempts, command.target, error
            )
            if attempt != max_attempts:
                await asyncio.sleep(retry_delay)

        command.stdout = stdout
        command.stderr = stderr
        command.error = error
        command.retry_errors = retry_errors
        command.completed = True


async def execute_local_command(
    command_str: str, timeout: float | None = None
) -> tuple[str, int]:
    """Run a command with bash on this host.

    Args:
        command_str: Shell command line
        timeout: Seconds before the process is killed, or None to wait forever

    Returns:
        Tuple of (combined stdout and stderr, exit status).

    Raises:
        TimeoutError: If the timeout expired; the process has been killed.
    """
    proc = await asyncio.create_subprocess_exec(
        "bash",
        "-c",
        command_str,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
    )
    try:
        output, _ = await asyncio.wait_for(proc.communicate(), timeout)
    except TimeoutError:
        proc.kill()
        await proc.wait()
        logger.error("Local command timed out after %ss: %s", timeout, command_str)
        raise

    returncode = proc.returncode if proc.returncode is not None else -1
    return output.decode("utf-8", errors="replace"), returncode
