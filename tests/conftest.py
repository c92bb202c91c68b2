# tests/conftest.py
# Shared fixtures for the runner tests

import asyncio
import copy
from dataclasses import replace
from typing import Optional

import pytest

from mftagent_runner.command_runner import CommandResult, ToolchainNotFoundError
from mftagent_runner.config import AgentConfiguration


def ok(stdout: str = "") -> CommandResult:
    """A successful command result template."""
    return CommandResult(command="", succeeded=True, stdout=stdout, returncode=0)


def fail(stdout: str = "", stderr: str = "command failed", returncode: int = 1) -> CommandResult:
    """A failed command result template."""
    return CommandResult(
        command="", succeeded=False, stdout=stdout, stderr=stderr, returncode=returncode
    )


class ScriptedRunner:
    """Stand-in for CommandRunner that replays scripted results.

    Each command has a queue of results. Results are used in order and the
    last one repeats once the queue is down to it. Unscripted commands
    succeed with empty output.
    """

    def __init__(self, responses: Optional[dict] = None, missing=()):
        self.responses = {name: list(results) for name, results in (responses or {}).items()}
        self.missing = set(missing)
        self.calls: list[tuple[str, list[str]]] = []

    def verify(self, commands) -> None:
        for command in commands:
            if command in self.missing:
                raise ToolchainNotFoundError(command)

    async def run(self, command: str, args: list[str]) -> CommandResult:
        if command in self.missing:
            raise ToolchainNotFoundError(command)
        self.calls.append((command, list(args)))
        queue = self.responses.get(command)
        if not queue:
            template = ok()
        elif len(queue) > 1:
            template = queue.pop(0)
        else:
            template = queue[0]
        return replace(template, command=command, args=list(args))

    @property
    def commands(self) -> list[str]:
        return [command for command, _ in self.calls]

    def count(self, command: str) -> int:
        return self.commands.count(command)

    def args_for(self, command: str) -> list[str]:
        for name, args in self.calls:
            if name == command:
                return args
        raise AssertionError(f"{command} was not run")


@pytest.fixture
def config_data(tmp_path):
    """A complete configuration document for a standard agent."""
    return {
        "dataPath": str(tmp_path / "mftdata"),
        "monitoringInterval": 0.01,
        "displayAgentLogs": False,
        "displayLineCount": 5,
        "coordinationQMgr": {
            "name": "MFTCORD",
            "host": "mqhost",
            "port": 1414,
            "channel": "MFT_CHN",
        },
        "commandsQMgr": {
            "name": "MFTCMD",
            "host": "mqhost",
            "port": 1415,
            "channel": "MFT_CHN",
        },
        "agent": {
            "name": "SRC",
            "type": "STANDARD",
            "qmgrName": "MFTAGENT",
            "qmgrHost": "mqhost",
            "qmgrPort": 1416,
            "qmgrChannel": "MFT_CHN",
            "credentialsFile": "/mftdata/credentials.xml",
        },
    }


@pytest.fixture
def make_config(config_data):
    """Build an AgentConfiguration from the document with agent overrides."""
    def _make(start_only: bool = False, agent: Optional[dict] = None, **top_level):
        data = copy.deepcopy(config_data)
        data["agent"].update(agent or {})
        data.update(top_level)
        return AgentConfiguration.from_dict(data, start_only=start_only)
    return _make


@pytest.fixture
def config(make_config):
    return make_config()


@pytest.fixture
def properties_file(config):
    """Create an existing agent.properties for the configured agent."""
    path = config.properties_file
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("agentName=SRC\n")
    return path


@pytest.fixture
def wait_until():
    """Poll a condition from inside a running event loop."""
    async def _wait(predicate, timeout: float = 2.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("Condition not met in time")
            await asyncio.sleep(0.005)
    return _wait
