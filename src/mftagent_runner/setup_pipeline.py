# src/mftagent_runner/setup_pipeline.py
# SetupPipeline - one-time provisioning of coordination, commands and agent

import logging
from pathlib import Path
from typing import Mapping

from mftagent_runner import toolchain
from mftagent_runner.command_runner import CommandRunner, log_failure
from mftagent_runner.config import AgentConfiguration, AgentType, QueueManagerConfig

logger = logging.getLogger(__name__)

DEFAULT_BRIDGE_SERVER_TYPE = "FTP"
DEFAULT_BRIDGE_SERVER_HOST = "localhost"


def _connection_args(prefix: str, qmgr: QueueManagerConfig) -> list[str]:
    # Host, port and channel are left out for a locally bound queue manager
    args = [f"-{prefix}", qmgr.name]
    for suffix, value in (("Host", qmgr.host), ("Port", qmgr.port), ("Channel", qmgr.channel)):
        if value:
            args += [f"-{prefix}{suffix}", value]
    return args


def coordination_args(config: AgentConfiguration) -> list[str]:
    """Arguments for fteSetupCoordination."""
    return [*_connection_args("coordinationQMgr", config.coordination_qmgr), "-f"]


def commands_args(config: AgentConfiguration) -> list[str]:
    """Arguments for fteSetupCommands."""
    return [
        "-p", config.coordination_qmgr.name,
        *_connection_args("connectionQMgr", config.commands_qmgr),
        "-f",
    ]


def agent_args(config: AgentConfiguration) -> list[str]:
    """Arguments shared by fteCreateAgent and fteCreateBridgeAgent."""
    agent = config.agent
    return [
        "-p", config.coordination_qmgr.name,
        "-agentName", agent.name,
        *_connection_args("agentQMgr", agent.qmgr),
        "-credentialsFile", agent.credentials_file,
        "-f",
    ]


def bridge_agent_args(config: AgentConfiguration) -> list[str]:
    """Arguments for fteCreateBridgeAgent.

    Server type and host always appear, falling back to FTP on localhost.
    Every other bridge option is passed only when configured, and the
    server locale is never passed to an SFTP server.
    """
    bridge = config.agent.protocol_bridge
    server_type = bridge.server_type or DEFAULT_BRIDGE_SERVER_TYPE

    args = agent_args(config)
    args += ["-bt", server_type]
    args += ["-bh", bridge.server_host or DEFAULT_BRIDGE_SERVER_HOST]

    optional = [
        ("-btz", bridge.server_timezone),
        ("-bm", bridge.server_platform),
        ("-bsl", bridge.server_locale if server_type.upper() != "SFTP" else None),
        ("-bfe", bridge.server_file_encoding),
        ("-bp", bridge.server_port),
        ("-bts", bridge.server_trust_store_file),
        ("-blw", bridge.server_limited_write),
        ("-blf", bridge.server_list_format),
    ]
    for flag, value in optional:
        if value is not None and value != "":
            args += [flag, value]
    return args


def append_properties(properties_file: Path, properties: Mapping[str, str]) -> None:
    """Append key=value lines to an existing agent.properties file.

    Raises:
        OSError: If the file does not exist or cannot be written
    """
    if not properties_file.is_file():
        raise FileNotFoundError(f"Agent properties file not found: {properties_file}")
    with open(properties_file, "a") as f:
        for key, value in properties.items():
            f.write(f"\n{key}={value}\n")


class SetupPipeline:
    """Provisions the agent in four ordered steps.

    1. Coordination queue manager setup
    2. Commands queue manager setup
    3. Standard or bridge agent creation
    4. agent.properties patch

    A failing step stops the pipeline. Steps already completed are left in
    place; every toolchain command is run with -f so a rerun overwrites them.
    """

    def __init__(self, config: AgentConfiguration, runner: CommandRunner):
        self.config = config
        self.runner = runner

    async def run(self) -> bool:
        """Run all steps in order.

        Returns:
            True if every step succeeded
        """
        steps = (
            self.setup_coordination,
            self.setup_commands,
            self.create_agent,
            self.patch_properties,
        )
        for step in steps:
            if not await step():
                return False
        return True

    async def _run_step(self, command: str, args: list[str]) -> bool:
        result = await self.runner.run(command, args)
        if not result.succeeded:
            logger.error(f"{command} command failed")
            log_failure(result, logger)
        return result.succeeded

    async def setup_coordination(self) -> bool:
        logger.info(
            f"Setting up coordination configuration {self.config.coordination_qmgr.name} "
            f"for agent {self.config.agent.name}"
        )
        return await self._run_step(toolchain.SETUP_COORDINATION, coordination_args(self.config))

    async def setup_commands(self) -> bool:
        logger.info(
            f"Setting up commands configuration {self.config.commands_qmgr.name} "
            f"for agent {self.config.agent.name}"
        )
        return await self._run_step(toolchain.SETUP_COMMANDS, commands_args(self.config))

    async def create_agent(self) -> bool:
        agent = self.config.agent
        logger.info(f"Creating {agent.type.value} agent with name {agent.name}")
        if agent.type == AgentType.STANDARD:
            return await self._run_step(toolchain.CREATE_AGENT, agent_args(self.config))
        return await self._run_step(toolchain.CREATE_BRIDGE_AGENT, bridge_agent_args(self.config))

    async def patch_properties(self) -> bool:
        properties = self.config.agent.additional_properties
        if not properties:
            logger.debug("No additional agent properties configured")
            return True

        properties_file = self.config.properties_file
        try:
            append_properties(properties_file, properties)
        except OSError as e:
            logger.error(f"Failed to update agent properties {properties_file}: {e}")
            return False

        logger.info(f"Added {len(properties)} properties to {properties_file}")
        return True
