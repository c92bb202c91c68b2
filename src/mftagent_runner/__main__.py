# src/mftagent_runner/__main__.py
# Entry point for the MFT agent runner

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from mftagent_runner.command_runner import ToolchainNotFoundError
from mftagent_runner.config import AgentConfiguration, ConfigurationError
from mftagent_runner.supervisor import EXIT_FAILURE, run_supervisor

_TRUE_VALUES = ("1", "t", "T", "TRUE", "true", "True")

USAGE_HINT = (
    "\nProvide the configuration file via:\n"
    "  1. Command line argument (mftagent-runner /mftdata/agentconfig.json [START_ONLY])\n"
    "  2. Environment variables (AGENT_CONFIG_FILE, START_ONLY)"
)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging.

    Args:
        verbose: If True, enable debug logging
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )


def parse_bool(value: Optional[str]) -> bool:
    """Parse a start-only flag; unrecognised values mean False."""
    if value is None:
        return False
    return value.strip() in _TRUE_VALUES


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog="mftagent-runner",
        description="Set up, start and monitor an MFT agent"
    )

    parser.add_argument(
        "config",
        nargs="?",
        type=Path,
        help="Path to the JSON agent configuration file (default: $AGENT_CONFIG_FILE)"
    )
    parser.add_argument(
        "start_only",
        nargs="?",
        help="true to only start an already created agent (default: $START_ONLY)"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging"
    )

    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> AgentConfiguration:
    """Load configuration using CLI arguments, falling back to the environment.

    Raises:
        ConfigurationError: If no configuration file is given or it is invalid
    """
    config_path = args.config
    if config_path is None and os.environ.get("AGENT_CONFIG_FILE"):
        config_path = Path(os.environ["AGENT_CONFIG_FILE"])
    if config_path is None:
        raise ConfigurationError("No agent configuration file provided")

    start_only = args.start_only
    if start_only is None:
        start_only = os.environ.get("START_ONLY")

    return AgentConfiguration.from_file(config_path, start_only=parse_bool(start_only))


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success)
    """
    args = parse_args(argv)
    setup_logging(args.verbose)

    logger = logging.getLogger(__name__)

    try:
        config = load_config(args)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        print(f"Error: {e}", file=sys.stderr)
        print(USAGE_HINT, file=sys.stderr)
        return EXIT_FAILURE

    logger.info(f"Setting up agent {config.agent.name} ({config.agent.type.value})")
    logger.info(f"Data path: {config.data_path}")
    logger.info(f"Monitoring interval: {config.monitoring_interval:g}s")

    try:
        return run_supervisor(config)
    except ToolchainNotFoundError as e:
        logger.error(f"MFT toolchain not available: {e}")
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.info("Runner stopped by user")
        return 0
    except Exception as e:
        logger.exception(f"Runner failed: {e}")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
