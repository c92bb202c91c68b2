# src/mftagent_runner/agent_status.py
# Classification of fteListAgents / ftePingAgent output

from enum import Enum

from mftagent_runner.toolchain import PING_NO_RESPONSE_CODE


class AgentStatus(str, Enum):
    """Agent status as read from the status listing."""
    STOPPED = "STOPPED"
    UNKNOWN = "UNKNOWN"
    READY = "READY"
    ACTIVE = "ACTIVE"
    OTHER = "OTHER"

    @property
    def is_running(self) -> bool:
        return self in (AgentStatus.READY, AgentStatus.ACTIVE)


# Checked in this order; the first substring found wins
_MARKERS = (
    AgentStatus.UNKNOWN,
    AgentStatus.STOPPED,
    AgentStatus.READY,
    AgentStatus.ACTIVE,
)


def classify_status(text: str) -> AgentStatus:
    """Map the free-text output of a status query to an AgentStatus.

    Only the status words themselves are recognised. Anything else is
    OTHER, which callers must not treat as healthy startup.
    """
    for status in _MARKERS:
        if status.value in text:
            return status
    return AgentStatus.OTHER


def ping_unresponsive(text: str) -> bool:
    """True when ping output reports that the agent did not respond."""
    return PING_NO_RESPONSE_CODE in text
