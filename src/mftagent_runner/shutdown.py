# src/mftagent_runner/shutdown.py
# ShutdownHandler - stops the agent when the runner receives SIGINT/SIGTERM

import asyncio
import logging
import signal
from typing import Optional

from mftagent_runner import toolchain
from mftagent_runner.command_runner import CommandRunner, log_failure
from mftagent_runner.config import AgentConfiguration
from mftagent_runner.poller import StatusPoller

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownHandler:
    """Turns the first termination signal into an immediate agent stop.

    On the first SIGINT or SIGTERM the poller is asked to stop and
    ``fteStopAgent -i`` is run in its own task, whatever state the poller is
    in. Further signals are ignored.
    """

    def __init__(self, config: AgentConfiguration, runner: CommandRunner, poller: StatusPoller):
        self.config = config
        self.runner = runner
        self.poller = poller
        self.stop_task: Optional[asyncio.Task] = None
        self._triggered = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._previous: dict[int, object] = {}

    @property
    def triggered(self) -> bool:
        return self._triggered

    def install(self) -> None:
        """Register the signal handlers on the running event loop."""
        self._loop = asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            try:
                self._loop.add_signal_handler(sig, self.handle_signal, sig)
            except NotImplementedError:
                # Event loops without add_signal_handler (Windows)
                self._previous[sig] = signal.signal(sig, self._threadsafe_handler)
        logger.debug("Installed shutdown signal handlers")

    def uninstall(self) -> None:
        if self._loop is None:
            return
        for sig in SHUTDOWN_SIGNALS:
            if sig in self._previous:
                signal.signal(sig, self._previous.pop(sig))
            else:
                self._loop.remove_signal_handler(sig)
        self._loop = None

    def _threadsafe_handler(self, signum, frame) -> None:
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self.handle_signal, signum)

    def handle_signal(self, signum: int) -> None:
        """Handle a termination signal; only the first one has an effect."""
        if self._triggered:
            logger.debug(f"Ignoring signal {signum}, shutdown already in progress")
            return
        self._triggered = True
        logger.info(f"Received {signal.Signals(signum).name}, stopping agent")

        self.poller.request_shutdown()
        self.stop_task = asyncio.get_running_loop().create_task(self.stop_agent())

    async def stop_agent(self) -> bool:
        """Run fteStopAgent with the immediate flag.

        Returns:
            True if the stop command succeeded
        """
        agent_name = self.config.agent.name
        logger.info(f"Stopping agent {agent_name}")
        result = await self.runner.run(toolchain.STOP_AGENT, [
            "-p", self.config.coordination_qmgr.name, agent_name, "-i",
        ])
        if not result.succeeded:
            logger.error("An error occurred when running fteStopAgent")
            log_failure(result, logger)
            return False
        logger.info(f"Stopped agent {agent_name}")
        return True

    async def wait(self) -> Optional[bool]:
        """Wait for a triggered stop command to finish."""
        if self.stop_task is None:
            return None
        return await self.stop_task
