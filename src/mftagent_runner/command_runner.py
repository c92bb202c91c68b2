# src/mftagent_runner/command_runner.py
# CommandRunner - runs one toolchain command with its own output buffers

import asyncio
import logging
import os
import shutil
from dataclasses import dataclass, field
from typing import Iterable, Optional

from mftagent_runner.toolchain import DATA_PATH_ENV

logger = logging.getLogger(__name__)


class ToolchainNotFoundError(RuntimeError):
    """Raised when a toolchain command cannot be located on the search path."""

    def __init__(self, command: str, search_path: Optional[str] = None):
        self.command = command
        self.search_path = search_path
        where = search_path if search_path is not None else "PATH"
        super().__init__(f"Command '{command}' not found on {where}")


@dataclass
class CommandResult:
    """Outcome of a single command invocation.

    stdout and stderr are captured into buffers owned by this invocation
    only, so results from concurrent calls never overlap.
    """
    command: str
    args: list[str] = field(default_factory=list)
    succeeded: bool = False
    stdout: str = ""
    stderr: str = ""
    returncode: Optional[int] = None
    launch_error: Optional[str] = None

    def describe_failure(self) -> str:
        """Short diagnostic for log messages."""
        if self.launch_error:
            return f"{self.command} could not be launched: {self.launch_error}"
        return f"{self.command} exited with code {self.returncode}"


class CommandRunner:
    """Resolves toolchain commands and runs them to completion."""

    def __init__(self, search_path: Optional[str] = None, data_path: Optional[str] = None):
        """Initialize CommandRunner.

        Args:
            search_path: os.pathsep separated directories to look commands up in.
                Defaults to the PATH of the current process.
            data_path: Toolchain data root, exported to every command as BFG_DATA
        """
        self.search_path = search_path
        self.data_path = data_path
        self._resolved: dict[str, str] = {}

    def resolve(self, command: str) -> str:
        """Get the absolute path of a command.

        Raises:
            ToolchainNotFoundError: If the command is not on the search path
        """
        cached = self._resolved.get(command)
        if cached:
            return cached
        path = shutil.which(command, path=self.search_path)
        if path is None:
            raise ToolchainNotFoundError(command, self.search_path)
        self._resolved[command] = path
        logger.debug(f"Resolved {command} -> {path}")
        return path

    def verify(self, commands: Iterable[str]) -> None:
        """Resolve every command up front so a missing tool fails early."""
        for command in commands:
            self.resolve(command)

    def _environment(self) -> dict[str, str]:
        env = dict(os.environ)
        if self.data_path:
            env[DATA_PATH_ENV] = self.data_path
        return env

    async def run(self, command: str, args: list[str]) -> CommandResult:
        """Run a command and wait for it to finish.

        Args:
            command: Toolchain command name
            args: Ordered argument list

        Returns:
            CommandResult; a non-zero exit is reported through
            ``succeeded=False`` rather than raised.

        Raises:
            ToolchainNotFoundError: If the command cannot be located
        """
        executable = self.resolve(command)
        result = CommandResult(command=command, args=list(args))

        logger.debug(f"Running {command} {' '.join(args)}")
        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._environment(),
            )
        except OSError as e:
            result.launch_error = str(e)
            logger.error(result.describe_failure())
            return result

        out, err = await process.communicate()
        result.stdout = out.decode(errors="replace")
        result.stderr = err.decode(errors="replace")
        result.returncode = process.returncode
        result.succeeded = process.returncode == 0
        return result


def log_failure(result: CommandResult, log: logging.Logger = logger) -> None:
    """Write the captured output of a failed command to the log."""
    log.error(result.describe_failure())
    if result.stdout.strip():
        log.error(f"{result.command} output:\n{result.stdout.rstrip()}")
    if result.stderr.strip():
        log.error(f"{result.command} error:\n{result.stderr.rstrip()}")
