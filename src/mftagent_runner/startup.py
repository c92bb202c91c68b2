# src/mftagent_runner/startup.py
# StartupSequencer - start the agent, confirm it is up, create resource monitors

import asyncio
import logging
from typing import Optional

from mftagent_runner import toolchain
from mftagent_runner.agent_status import AgentStatus, classify_status
from mftagent_runner.command_runner import CommandRunner, log_failure
from mftagent_runner.config import AgentConfiguration

logger = logging.getLogger(__name__)

# Time given to an agent that still reports STOPPED right after fteStartAgent
STARTUP_GRACE_SECONDS = 10.0


class StartupSequencer:
    """Starts the agent and waits for it to report READY or ACTIVE.

    The status is checked once after fteStartAgent returns. An agent still
    reporting STOPPED gets one grace period and one more check; there are no
    further retries.
    """

    def __init__(
        self,
        config: AgentConfiguration,
        runner: CommandRunner,
        grace_period: float = STARTUP_GRACE_SECONDS,
    ):
        self.config = config
        self.runner = runner
        self.grace_period = grace_period

    @property
    def _status_args(self) -> list[str]:
        return ["-p", self.config.coordination_qmgr.name, self.config.agent.name]

    async def start(self) -> bool:
        """Start the agent and confirm it is running.

        Returns:
            True if the agent reached READY or ACTIVE
        """
        agent_name = self.config.agent.name
        logger.info(f"Starting agent {agent_name}")
        result = await self.runner.run(
            toolchain.START_AGENT,
            ["-p", self.config.coordination_qmgr.name, agent_name],
        )
        if not result.succeeded:
            log_failure(result, logger)
            return False

        status = await self.confirm_ready()
        if status is None or not status.is_running:
            observed = status.value if status else "status query failed"
            logger.error(f"Agent {agent_name} not started ({observed}). Quitting")
            return False

        logger.info(f"Agent {agent_name} has started ({status.value})")
        return True

    async def query_status(self) -> Optional[AgentStatus]:
        """Run one status query.

        Returns:
            AgentStatus, or None if the query itself failed
        """
        result = await self.runner.run(toolchain.LIST_AGENTS, self._status_args)
        if not result.succeeded:
            log_failure(result, logger)
            return None
        return classify_status(result.stdout)

    async def confirm_ready(self) -> Optional[AgentStatus]:
        """Query the status, allowing a STOPPED agent one delayed recheck."""
        logger.info(f"Verifying status of agent {self.config.agent.name}")
        status = await self.query_status()
        if status == AgentStatus.STOPPED:
            logger.info(
                f"Agent not started yet. Waiting {self.grace_period:g} seconds "
                "before checking status again"
            )
            await asyncio.sleep(self.grace_period)
            status = await self.query_status()
        return status

    async def create_resource_monitors(self) -> list[str]:
        """Create every configured resource monitor.

        Monitors are independent: a failure is logged and the remaining
        monitors are still created.

        Returns:
            Names of the monitors that could not be created
        """
        agent = self.config.agent
        failed: list[str] = []
        for monitor_name, source_file in agent.resource_monitors.items():
            logger.info(f"Creating resource monitor {monitor_name}")
            result = await self.runner.run(toolchain.CREATE_MONITOR, [
                "-p", self.config.coordination_qmgr.name,
                "-mm", agent.qmgr.name,
                "-ma", agent.name,
                "-mn", monitor_name,
                "-ix", source_file,
                "-f",
            ])
            if not result.succeeded:
                logger.error(f"fteCreateMonitor failed for monitor {monitor_name}")
                log_failure(result, logger)
                failed.append(monitor_name)
        return failed
