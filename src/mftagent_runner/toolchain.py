# src/mftagent_runner/toolchain.py
# Names of the MFT toolchain commands driven by the runner

SETUP_COORDINATION = "fteSetupCoordination"
SETUP_COMMANDS = "fteSetupCommands"
CREATE_AGENT = "fteCreateAgent"
CREATE_BRIDGE_AGENT = "fteCreateBridgeAgent"
START_AGENT = "fteStartAgent"
STOP_AGENT = "fteStopAgent"
LIST_AGENTS = "fteListAgents"
PING_AGENT = "ftePingAgent"
CREATE_MONITOR = "fteCreateMonitor"

# Every command must resolve before the first setup step runs
REQUIRED_COMMANDS = (
    SETUP_COORDINATION,
    SETUP_COMMANDS,
    CREATE_AGENT,
    CREATE_BRIDGE_AGENT,
    START_AGENT,
    STOP_AGENT,
    LIST_AGENTS,
    PING_AGENT,
    CREATE_MONITOR,
)

# Message code printed by ftePingAgent when the agent did not answer
PING_NO_RESPONSE_CODE = "BFGCL0214I"

# Environment variable the toolchain reads its data root from
DATA_PATH_ENV = "BFG_DATA"
