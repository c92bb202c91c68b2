# src/mftagent_runner/config.py
# Agent configuration loading and validation

import json
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional


class ConfigurationError(ValueError):
    """Raised when the configuration document is missing required data."""
    pass


class AgentType(str, Enum):
    STANDARD = "STANDARD"
    BRIDGE = "BRIDGE"

    @classmethod
    def parse(cls, value: Optional[str]) -> "AgentType":
        """Anything other than STANDARD (case-insensitive) is a bridge agent."""
        if value is not None and str(value).upper() == cls.STANDARD.value:
            return cls.STANDARD
        return cls.BRIDGE


def _expand(value: Any) -> Any:
    """Expand a ``${VAR}`` string from the environment."""
    if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
        return os.environ.get(value[2:-1], "")
    return value


def _text(value: Any) -> Optional[str]:
    """Render a scalar the way the toolchain expects it on the command line."""
    value = _expand(value)
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _flag(value: Any) -> bool:
    value = _expand(value)
    if isinstance(value, str):
        return value.strip().lower() in ("1", "t", "true", "yes")
    return bool(value)


def _required(data: dict, key: str, message: str) -> str:
    value = _text(data.get(key))
    if not value:
        raise ConfigurationError(message)
    return value


def _section(data: dict, key: str) -> dict:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"{key} must be an object")
    return value


@dataclass(frozen=True)
class QueueManagerConfig:
    """Connection details for a queue manager."""
    name: str
    host: Optional[str] = None
    port: Optional[str] = None
    channel: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict, missing_message: str) -> "QueueManagerConfig":
        return cls(
            name=_required(data, "name", missing_message),
            host=_text(data.get("host")),
            port=_text(data.get("port")),
            channel=_text(data.get("channel")),
        )


@dataclass(frozen=True)
class ProtocolBridgeConfig:
    """Protocol bridge server settings (bridge agents only)."""
    server_type: Optional[str] = None
    server_host: Optional[str] = None
    server_port: Optional[str] = None
    server_timezone: Optional[str] = None
    server_platform: Optional[str] = None
    server_locale: Optional[str] = None
    server_file_encoding: Optional[str] = None
    server_trust_store_file: Optional[str] = None
    server_limited_write: Optional[str] = None
    server_list_format: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ProtocolBridgeConfig":
        return cls(
            server_type=_text(data.get("serverType")),
            server_host=_text(data.get("serverHost")),
            server_port=_text(data.get("serverPort")),
            server_timezone=_text(data.get("serverTimezone")),
            server_platform=_text(data.get("serverPlatform")),
            server_locale=_text(data.get("serverLocale")),
            server_file_encoding=_text(data.get("serverFileEncoding")),
            server_trust_store_file=_text(data.get("serverTrustStoreFile")),
            server_limited_write=_text(data.get("serverLimitedWrite")),
            server_list_format=_text(data.get("serverListFormat")),
        )


@dataclass(frozen=True)
class AgentConfig:
    """The agent to create, start and supervise."""
    name: str
    qmgr: QueueManagerConfig
    credentials_file: str
    type: AgentType = AgentType.STANDARD
    protocol_bridge: ProtocolBridgeConfig = field(default_factory=ProtocolBridgeConfig)
    resource_monitors: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    additional_properties: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_dict(cls, data: dict) -> "AgentConfig":
        name = _required(data, "name", "Agent name missing. Can't setup agent configuration")
        qmgr = QueueManagerConfig(
            name=_required(
                data, "qmgrName",
                "Agent queue manager name missing. Can't setup agent configuration"
            ),
            host=_text(data.get("qmgrHost")),
            port=_text(data.get("qmgrPort")),
            channel=_text(data.get("qmgrChannel")),
        )
        credentials_file = _required(
            data, "credentialsFile",
            "Agent credentials file missing. Can't setup agent configuration"
        )

        monitors = {
            str(monitor): _text(source) or ""
            for monitor, source in _section(data, "resourceMonitors").items()
        }
        properties = {
            str(key): _text(value) or ""
            for key, value in _section(data, "additionalProperties").items()
        }

        return cls(
            name=name,
            qmgr=qmgr,
            credentials_file=credentials_file,
            type=AgentType.parse(data.get("type")),
            protocol_bridge=ProtocolBridgeConfig.from_dict(_section(data, "protocolBridge")),
            resource_monitors=MappingProxyType(monitors),
            additional_properties=MappingProxyType(properties),
        )


@dataclass(frozen=True)
class AgentConfiguration:
    """Validated, read-only view over the agent configuration document.

    Example document:
    ```json
    {
      "dataPath": "/mftdata",
      "monitoringInterval": 60,
      "displayAgentLogs": true,
      "displayLineCount": 50,
      "coordinationQMgr": {"name": "MFTCORD", "host": "10.0.0.1", "port": 1414,
                           "channel": "MFT_HA_CHN"},
      "commandsQMgr": {"name": "MFTCMD", "host": "10.0.0.1", "port": 1414,
                       "channel": "MFT_HA_CHN"},
      "agent": {
        "name": "SRC", "type": "STANDARD", "qmgrName": "MFTAGENT",
        "qmgrHost": "10.0.0.1", "qmgrPort": 1414, "qmgrChannel": "MFT_HA_CHN",
        "credentialsFile": "/mftdata/credentials.xml",
        "resourceMonitors": {"WATCH": "/mftdata/monitor.xml"},
        "additionalProperties": {"enableQueueInputOutput": "true"}
      }
    }
    ```
    """
    data_path: str
    coordination_qmgr: QueueManagerConfig
    commands_qmgr: QueueManagerConfig
    agent: AgentConfig
    display_agent_logs: bool = False
    display_line_count: int = 50
    monitoring_interval: float = 10
    toolchain_path: Optional[str] = None
    start_only: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.monitoring_interval <= 0:
            raise ConfigurationError("monitoringInterval must be positive")
        if self.display_line_count < 0:
            raise ConfigurationError("displayLineCount must not be negative")

    @property
    def agent_directory(self) -> Path:
        return (
            Path(self.data_path) / "mqft" / "config"
            / self.coordination_qmgr.name / "agents" / self.agent.name
        )

    @property
    def properties_file(self) -> Path:
        """agent.properties of the configured agent."""
        return self.agent_directory / "agent.properties"

    @property
    def agent_log_file(self) -> Path:
        """The agent's own rolling output log."""
        return (
            Path(self.data_path) / "mqft" / "logs"
            / self.coordination_qmgr.name / "agents" / self.agent.name
            / "logs" / "output0.log"
        )

    @classmethod
    def from_dict(cls, data: Any, start_only: bool = False) -> "AgentConfiguration":
        """Build a configuration from a parsed document.

        Raises:
            ConfigurationError: If a required attribute is missing or invalid
        """
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration document must be an object")

        data_path = _required(
            data, "dataPath", "dataPath attribute missing. Can't setup agent configuration"
        )
        coordination_qmgr = QueueManagerConfig.from_dict(
            _section(data, "coordinationQMgr"),
            "Coordination queue manager name missing. Can't setup agent configuration",
        )
        commands_qmgr = QueueManagerConfig.from_dict(
            _section(data, "commandsQMgr"),
            "Command queue manager name missing. Can't setup agent configuration",
        )
        agent = AgentConfig.from_dict(_section(data, "agent"))

        try:
            display_line_count = int(data.get("displayLineCount", 50))
            monitoring_interval = float(data.get("monitoringInterval", 10))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}")

        return cls(
            data_path=data_path,
            coordination_qmgr=coordination_qmgr,
            commands_qmgr=commands_qmgr,
            agent=agent,
            display_agent_logs=_flag(data.get("displayAgentLogs", False)),
            display_line_count=display_line_count,
            monitoring_interval=monitoring_interval,
            toolchain_path=_text(data.get("toolchainPath")),
            start_only=start_only,
        )

    @classmethod
    def from_file(cls, path: Path, start_only: bool = False) -> "AgentConfiguration":
        """Load configuration from a JSON file.

        Args:
            path: Path to the configuration document
            start_only: Skip provisioning and only start the agent

        Returns:
            AgentConfiguration instance

        Raises:
            ConfigurationError: If the file cannot be read or is invalid
        """
        try:
            with open(path) as f:
                data = json.load(f)
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file {path}: {e}")
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Cannot parse configuration file {path}: {e}")

        return cls.from_dict(data, start_only=start_only)
