"""Tests for the command-line entry point."""

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from cluster_exec.__main__ import build_parser, main
from cluster_exec.utils import console

DUMP = (
    "1 -1 p p n u 5432 cdw cdw /data/coordinator\n"
    "2 0 p p s u 20000 sdw1 sdw1 /data/gpseg0\n"
    "3 1 p p s u 20001 sdw1 sdw1 /data/gpseg1\n"
)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for key in (
        "CLUSTER_EXEC_MAX_ATTEMPTS",
        "CLUSTER_EXEC_RETRY_DELAY",
        "CLUSTER_EXEC_MAX_CONCURRENCY",
        "CLUSTER_EXEC_SSH_BACKEND",
        "CLUSTER_EXEC_LOG_LEVEL",
        "CLUSTER_EXEC_LOG_FILE",
        "COORDINATOR_DATA_DIRECTORY",
    ):
        monkeypatch.delenv(key, raising=False)
    yield
    package_logger = logging.getLogger("cluster_exec")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)
    console._log_file_path = None


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    (tmp_path / "gpsegconfig_dump").write_text(DUMP)
    return tmp_path


class TestMain:
    """Tests for __main__ module."""

    def test_parser_defaults(self) -> None:
        """Only the command is required."""
        args = build_parser().parse_args(["uptime"])

        assert args.command == "uptime"
        assert args.hosts is False
        assert args.local is False
        assert args.attempts is None
        assert args.ssh_backend is None

    def test_runs_command_on_every_segment(
        self, data_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Local scope runs once per segment and prints each output."""
        code = main(["echo hello", "--local", "--coordinator-data-dir", str(data_dir)])

        out = capsys.readouterr().out
        assert code == 0
        assert "[content 0] hello" in out
        assert "[content 1] hello" in out
        assert "content -1" not in out

    def test_host_scope_skips_coordinator_only_host(
        self, data_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Host scope runs once per segment host."""
        code = main(
            ["echo hello", "--hosts", "--local", "--coordinator-data-dir", str(data_dir)]
        )

        out = capsys.readouterr().out
        assert code == 0
        assert "[sdw1] hello" in out
        assert "[cdw]" not in out

    def test_reads_data_dir_from_environment(
        self,
        data_dir: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """COORDINATOR_DATA_DIRECTORY locates the dump file."""
        monkeypatch.setenv("COORDINATOR_DATA_DIRECTORY", str(data_dir))

        code = main(["echo hello", "--local", "--include-coordinator"])

        assert code == 0
        assert "[content -1] hello" in capsys.readouterr().out

    def test_failures_exit_nonzero(
        self, data_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Failing commands are reported and the exit status is 1."""
        code = main(
            [
                "echo broken >&2; exit 3",
                "--local",
                "--attempts",
                "2",
                "--retry-delay",
                "0",
                "--coordinator-data-dir",
                str(data_dir),
            ]
        )

        captured = capsys.readouterr()
        assert code == 1
        assert "[content 0] FAILED (exit status 3)" in captured.out
        assert "[content 0] STDERR: broken" in captured.err

    def test_non_fatal_failures_exit_nonzero(self, data_dir: Path) -> None:
        """--no-fatal still reports failure through the exit status."""
        code = main(
            [
                "exit 1",
                "--local",
                "--no-fatal",
                "--attempts",
                "1",
                "--coordinator-data-dir",
                str(data_dir),
            ]
        )

        assert code == 1

    def test_missing_dump_file(self, tmp_path: Path) -> None:
        """A missing topology is an error, not a crash."""
        code = main(["echo hello", "--local", "--coordinator-data-dir", str(tmp_path)])

        assert code == 1

    def test_missing_data_dir(self) -> None:
        """Without a data directory there is nothing to run on."""
        assert main(["echo hello", "--local"]) == 1

    def test_include_mirrors_without_hosts_warns(
        self, data_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Per-segment runs ignore --include-mirrors and say so."""
        code = main(
            [
                "echo hello",
                "--local",
                "--include-mirrors",
                "--coordinator-data-dir",
                str(data_dir),
            ]
        )

        captured = capsys.readouterr()
        assert code == 0
        assert "--include-mirrors only applies with --hosts" in captured.err
        assert "[content 0] hello" in captured.out

    def test_include_mirrors_help_mentions_hosts(self) -> None:
        """The flag's help says it needs --hosts."""
        assert "With --hosts" in build_parser().format_help()
