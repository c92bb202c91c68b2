# mftagent_runner - Runner for IBM MQ Managed File Transfer agents
# Sets up, starts and monitors an agent through the MFT command line tools

__version__ = "0.1.0"

from mftagent_runner.config import AgentConfiguration, ConfigurationError
from mftagent_runner.supervisor import Supervisor, run_supervisor, run_supervisor_async

__all__ = [
    "AgentConfiguration",
    "ConfigurationError",
    "Supervisor",
    "run_supervisor",
    "run_supervisor_async",
    "__version__",
]
