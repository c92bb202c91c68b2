# src/mftagent_runner/poller.py
# StatusPoller - liveness monitoring loop for a started agent

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from mftagent_runner import toolchain
from mftagent_runner.agent_status import AgentStatus, classify_status, ping_unresponsive
from mftagent_runner.command_runner import CommandRunner, log_failure
from mftagent_runner.config import AgentConfiguration

logger = logging.getLogger(__name__)


class PollState(str, Enum):
    POLLING = "POLLING"
    PING_CHECK = "PING_CHECK"
    SLEEPING = "SLEEPING"
    TERMINATED = "TERMINATED"


@dataclass
class PollCycle:
    """Working state of the monitoring loop.

    ``stop_requested`` is the only field touched from outside the poller;
    the shutdown handler sets it once.
    """
    interval: float
    state: PollState = PollState.POLLING
    last_status: Optional[AgentStatus] = None
    exit_reason: Optional[str] = None
    agent_lost: bool = False
    stop_requested: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def shutdown_requested(self) -> bool:
        return self.stop_requested.is_set()


class StatusPoller:
    """Polls the agent status until the agent is lost or a stop is requested.

    States:
    - POLLING: run fteListAgents. UNKNOWN goes to PING_CHECK, anything
      else to SLEEPING. A failed query ends monitoring.
    - PING_CHECK: run ftePingAgent. No response ends monitoring, otherwise
      the unknown status is treated as transient.
    - SLEEPING: wait the monitoring interval, or leave at once when a stop
      has been requested.
    - TERMINATED: the loop returns.
    """

    def __init__(self, config: AgentConfiguration, runner: CommandRunner):
        self.config = config
        self.runner = runner
        self.cycle = PollCycle(interval=config.monitoring_interval)
        self._handlers = {
            PollState.POLLING: self._poll,
            PollState.PING_CHECK: self._ping,
            PollState.SLEEPING: self._sleep,
        }

    def request_shutdown(self) -> None:
        """Ask the loop to stop at its next SLEEPING state."""
        self.cycle.stop_requested.set()

    async def run(self) -> PollCycle:
        """Run the loop until it reaches TERMINATED.

        Returns:
            The final PollCycle; ``agent_lost`` tells a liveness failure
            apart from a requested stop.
        """
        logger.info(
            f"Starting to monitor agent {self.config.agent.name} "
            f"every {self.cycle.interval:g}s"
        )
        while self.cycle.state != PollState.TERMINATED:
            handler = self._handlers[self.cycle.state]
            self.cycle.state = await handler()
        logger.info(f"Monitoring ended: {self.cycle.exit_reason}")
        return self.cycle

    def _terminate(self, reason: str, agent_lost: bool = True) -> PollState:
        self.cycle.exit_reason = reason
        # A stop requested by the operator is never reported as a lost agent
        self.cycle.agent_lost = agent_lost and not self.cycle.shutdown_requested
        return PollState.TERMINATED

    async def _poll(self) -> PollState:
        result = await self.runner.run(toolchain.LIST_AGENTS, [
            "-p", self.config.coordination_qmgr.name, self.config.agent.name,
        ])
        if not result.succeeded:
            log_failure(result, logger)
            return self._terminate("status query failed")

        status = classify_status(result.stdout)
        self.cycle.last_status = status
        if status == AgentStatus.UNKNOWN:
            logger.warning("Agent status unknown. Pinging the agent")
            return PollState.PING_CHECK

        logger.info(f"Agent {self.config.agent.name} is running ({status.value})")
        return PollState.SLEEPING

    async def _ping(self) -> PollState:
        result = await self.runner.run(toolchain.PING_AGENT, [
            "-p", self.config.commands_qmgr.name, self.config.agent.name,
        ])
        if not result.succeeded:
            log_failure(result, logger)
            return self._terminate("ping command failed")

        if ping_unresponsive(result.stdout):
            logger.error(
                f"Agent {self.config.agent.name} did not respond to ping. Monitor exiting"
            )
            return self._terminate("agent did not respond to ping")

        logger.info(f"Agent {self.config.agent.name} responded to ping")
        return PollState.SLEEPING

    async def _sleep(self) -> PollState:
        if not self.cycle.shutdown_requested:
            try:
                await asyncio.wait_for(
                    self.cycle.stop_requested.wait(), timeout=self.cycle.interval
                )
            except asyncio.TimeoutError:
                pass
        if self.cycle.shutdown_requested:
            return self._terminate("shutdown requested", agent_lost=False)
        return PollState.POLLING
