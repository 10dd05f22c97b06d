"""Test fixtures and utilities."""

import subprocess
from pathlib import Path
from typing import Optional, Union

import click.testing
import pytest

from repohist.config import Config
from repohist.probes.tools import CommandResult, SubprocessError
from repohist.scm.bitkeeper import BitKeeperRepository


class FakeRunner:
    """
    Stand-in for run_command keyed on the backend subcommand (argv[1]).

    Responses are either CommandResult-like tuples or exceptions to raise.
    Output is fed line by line to line_handler when one is passed.
    """

    def __init__(self) -> None:
        self.responses: dict[str, Union[tuple[int, str, str], Exception]] = {}
        self.calls: list[list[str]] = []

    def respond(self, subcommand: str, stdout: str = "", returncode: int = 0, stderr: str = ""):
        self.responses[subcommand] = (returncode, stdout, stderr)

    def fail(self, subcommand: str, error: Exception) -> None:
        self.responses[subcommand] = error

    def calls_for(self, subcommand: str) -> list[list[str]]:
        return [cmd for cmd in self.calls if cmd[1] == subcommand]

    def __call__(
        self,
        cmd: list[str],
        cwd: Optional[Path] = None,
        timeout: Optional[float] = None,
        line_handler=None,
    ) -> CommandResult:
        self.calls.append(list(cmd))
        response = self.responses.get(cmd[1])
        if response is None:
            raise SubprocessError(f"Failed to run {cmd[0]}: not found")
        if isinstance(response, Exception):
            raise response

        returncode, stdout, stderr = response
        if line_handler is not None:
            for line in stdout.splitlines():
                line_handler(line)
            return CommandResult(returncode=returncode, stderr=stderr)
        return CommandResult(returncode=returncode, stdout=stdout.encode(), stderr=stderr)


@pytest.fixture
def config() -> Config:
    """Config with no file, tags off and a short timeout."""
    return Config(commands={}, tags_enabled=False, command_timeout=30)


@pytest.fixture
def bk_runner(monkeypatch) -> FakeRunner:
    """Fake bk executable patched into the BitKeeper backend."""
    runner = FakeRunner()
    monkeypatch.setattr("repohist.scm.bitkeeper.run_command", runner)
    return runner


@pytest.fixture
def bk_root(tmp_path: Path) -> Path:
    """Directory laid out as a BitKeeper repository root."""
    root = tmp_path / "bkrepo"
    (root / ".bk").mkdir(parents=True)
    (root / "src").mkdir()
    (root / "src" / "foo.c").write_text("int main;\n")
    return root


@pytest.fixture
def bk_repo(bk_root: Path, config: Config) -> BitKeeperRepository:
    """BitKeeper adapter bound to bk_root."""
    return BitKeeperRepository(bk_root, config)


def git(repo: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args], cwd=repo, check=True, capture_output=True, text=True
    )
    return result.stdout.strip()


@pytest.fixture
def run_git():
    """Run git in a repository and return stripped stdout."""
    return git


@pytest.fixture
def git_root(tmp_path: Path) -> Path:
    """Create a temporary Git repository with an identity configured."""
    repo_dir = tmp_path / "repo"
    repo_dir.mkdir()

    git(repo_dir, "init")
    git(repo_dir, "config", "user.email", "test@example.com")
    git(repo_dir, "config", "user.name", "Test User")
    git(repo_dir, "config", "commit.gpgsign", "false")
    git(repo_dir, "config", "tag.gpgsign", "false")

    return repo_dir


@pytest.fixture
def runner() -> click.testing.CliRunner:
    """Click CliRunner for testing CLI commands."""
    return click.testing.CliRunner()
