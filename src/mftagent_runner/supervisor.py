# src/mftagent_runner/supervisor.py
# Supervisor - provisions, starts and monitors a single MFT agent

import asyncio
import logging
from typing import Callable, Optional

from mftagent_runner.command_runner import CommandRunner
from mftagent_runner.config import AgentConfiguration
from mftagent_runner.log_tailer import LogTailer
from mftagent_runner.poller import StatusPoller
from mftagent_runner.setup_pipeline import SetupPipeline
from mftagent_runner.shutdown import ShutdownHandler
from mftagent_runner.startup import STARTUP_GRACE_SECONDS, StartupSequencer
from mftagent_runner.toolchain import REQUIRED_COMMANDS

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


class Supervisor:
    """Runs the agent lifecycle from setup to the end of monitoring.

    1. Verify every toolchain command can be found
    2. SetupPipeline (skipped in start-only mode)
    3. StartupSequencer, then resource monitors (skipped in start-only mode)
    4. StatusPoller with the LogTailer and ShutdownHandler alongside

    run() returns once monitoring ends, either because a stop was requested
    by signal or because the agent was declared dead.
    """

    def __init__(
        self,
        config: AgentConfiguration,
        runner: Optional[CommandRunner] = None,
        grace_period: float = STARTUP_GRACE_SECONDS,
        log_output: Optional[Callable[[str], None]] = None,
    ):
        """Initialize Supervisor.

        Args:
            config: Validated agent configuration
            runner: Command runner; built from the configuration when omitted
            grace_period: Delay before rechecking an agent that reports STOPPED
            log_output: Receives tailed agent log lines; defaults to stdout
        """
        self.config = config
        self.runner = runner or CommandRunner(
            search_path=config.toolchain_path,
            data_path=config.data_path,
        )
        self.pipeline = SetupPipeline(config, self.runner)
        self.sequencer = StartupSequencer(config, self.runner, grace_period=grace_period)
        self.poller = StatusPoller(config, self.runner)
        self.shutdown = ShutdownHandler(config, self.runner, self.poller)
        self.log_output = log_output

    async def run(self) -> int:
        """Run the full lifecycle.

        Returns:
            Process exit code

        Raises:
            ToolchainNotFoundError: If a toolchain command is missing
        """
        self.runner.verify(REQUIRED_COMMANDS)

        if self.config.start_only:
            logger.info("Start-only mode, skipping agent setup")
        elif not await self.pipeline.run():
            logger.error(f"Setup of agent {self.config.agent.name} failed")
            return EXIT_FAILURE

        if not await self.sequencer.start():
            return EXIT_FAILURE

        if not self.config.start_only:
            failed = await self.sequencer.create_resource_monitors()
            if failed:
                logger.warning(f"Resource monitors not created: {', '.join(failed)}")

        return await self.monitor()

    async def monitor(self) -> int:
        """Monitor the running agent until it is lost or a stop is requested."""
        tailer_task: Optional[asyncio.Task] = None
        if self.config.display_agent_logs:
            tailer = LogTailer(
                self.config.agent_log_file,
                self.config.display_line_count,
                output=self.log_output,
            )
            tailer_task = asyncio.create_task(tailer.run())

        self.shutdown.install()
        try:
            cycle = await self.poller.run()
            await self.shutdown.wait()
        finally:
            self.shutdown.uninstall()
            if tailer_task is not None:
                tailer_task.cancel()
                try:
                    await tailer_task
                except asyncio.CancelledError:
                    pass

        if cycle.agent_lost:
            logger.error(f"Agent {self.config.agent.name} is no longer available")
            return EXIT_FAILURE
        return EXIT_OK


async def run_supervisor_async(config: AgentConfiguration) -> int:
    """Run the Supervisor asynchronously.

    Args:
        config: Agent configuration

    Returns:
        Process exit code
    """
    supervisor = Supervisor(config)
    return await supervisor.run()


def run_supervisor(config: AgentConfiguration) -> int:
    """Run the Supervisor synchronously."""
    return asyncio.run(run_supervisor_async(config))
