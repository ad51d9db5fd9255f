from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, IntFlag
from typing import Dict, List


class Capability(str, Enum):
    """Capability names accepted in the ``capabilities`` section of the config file."""

    UNSPECIFIED = "Unspecified"
    REPORTS_STATUS = "ReportsStatus"
    ACCEPTS_REMOTE_CONFIG = "AcceptsRemoteConfig"
    REPORTS_EFFECTIVE_CONFIG = "ReportsEffectiveConfig"
    ACCEPTS_PACKAGES = "AcceptsPackages"
    REPORTS_PACKAGE_STATUSES = "ReportsPackageStatuses"
    REPORTS_OWN_TRACES = "ReportsOwnTraces"
    REPORTS_OWN_METRICS = "ReportsOwnMetrics"
    REPORTS_OWN_LOGS = "ReportsOwnLogs"
    ACCEPTS_OPAMP_CONNECTION_SETTINGS = "AcceptsOpAMPConnectionSettings"
    ACCEPTS_OTHER_CONNECTION_SETTINGS = "AcceptsOtherConnectionSettings"
    ACCEPTS_RESTART_COMMAND = "AcceptsRestartCommand"
    REPORTS_HEALTH = "ReportsHealth"
    REPORTS_REMOTE_CONFIG = "ReportsRemoteConfig"


class AgentCapabilities(IntFlag):
    """Bit values of the OpAMP ``AgentCapabilities`` enum."""

    UNSPECIFIED = 0
    REPORTS_STATUS = 0x00000001
    ACCEPTS_REMOTE_CONFIG = 0x00000002
    REPORTS_EFFECTIVE_CONFIG = 0x00000004
    ACCEPTS_PACKAGES = 0x00000008
    REPORTS_PACKAGE_STATUSES = 0x00000010
    REPORTS_OWN_TRACES = 0x00000020
    REPORTS_OWN_METRICS = 0x00000040
    REPORTS_OWN_LOGS = 0x00000080
    ACCEPTS_OPAMP_CONNECTION_SETTINGS = 0x00000100
    ACCEPTS_OTHER_CONNECTION_SETTINGS = 0x00000200
    ACCEPTS_RESTART_COMMAND = 0x00000400
    REPORTS_HEALTH = 0x00000800
    REPORTS_REMOTE_CONFIG = 0x00001000
    REPORTS_HEARTBEAT = 0x00002000
    REPORTS_AVAILABLE_COMPONENTS = 0x00004000


CAPABILITY_PREFIX = "AgentCapabilities_"

# Keyed the way the protobuf enum names its values.
AGENT_CAPABILITIES_VALUE: Dict[str, int] = {
    CAPABILITY_PREFIX + "Unspecified": AgentCapabilities.UNSPECIFIED,
    CAPABILITY_PREFIX + "ReportsStatus": AgentCapabilities.REPORTS_STATUS,
    CAPABILITY_PREFIX + "AcceptsRemoteConfig": AgentCapabilities.ACCEPTS_REMOTE_CONFIG,
    CAPABILITY_PREFIX + "ReportsEffectiveConfig": AgentCapabilities.REPORTS_EFFECTIVE_CONFIG,
    CAPABILITY_PREFIX + "AcceptsPackages": AgentCapabilities.ACCEPTS_PACKAGES,
    CAPABILITY_PREFIX + "ReportsPackageStatuses": AgentCapabilities.REPORTS_PACKAGE_STATUSES,
    CAPABILITY_PREFIX + "ReportsOwnTraces": AgentCapabilities.REPORTS_OWN_TRACES,
    CAPABILITY_PREFIX + "ReportsOwnMetrics": AgentCapabilities.REPORTS_OWN_METRICS,
    CAPABILITY_PREFIX + "ReportsOwnLogs": AgentCapabilities.REPORTS_OWN_LOGS,
    CAPABILITY_PREFIX + "AcceptsOpAMPConnectionSettings": AgentCapabilities.ACCEPTS_OPAMP_CONNECTION_SETTINGS,
    CAPABILITY_PREFIX + "AcceptsOtherConnectionSettings": AgentCapabilities.ACCEPTS_OTHER_CONNECTION_SETTINGS,
    CAPABILITY_PREFIX + "AcceptsRestartCommand": AgentCapabilities.ACCEPTS_RESTART_COMMAND,
    CAPABILITY_PREFIX + "ReportsHealth": AgentCapabilities.REPORTS_HEALTH,
    CAPABILITY_PREFIX + "ReportsRemoteConfig": AgentCapabilities.REPORTS_REMOTE_CONFIG,
    CAPABILITY_PREFIX + "ReportsHeartbeat": AgentCapabilities.REPORTS_HEARTBEAT,
    CAPABILITY_PREFIX + "ReportsAvailableComponents": AgentCapabilities.REPORTS_AVAILABLE_COMPONENTS,
}


@dataclass(frozen=True)
class AnyValue:
    """Attribute value. Only string values are produced by the bridge."""
    string_value: str


@dataclass(frozen=True)
class KeyValue:
    key: str
    value: AnyValue


def key_value_pair(key: str, value: str) -> KeyValue:
    return KeyValue(key=key, value=AnyValue(string_value=value))


@dataclass
class AgentDescription:
    """Attributes the agent reports about itself to the OpAMP server."""
    identifying_attributes: List[KeyValue] = field(default_factory=list)
    non_identifying_attributes: List[KeyValue] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Dict[str, str]]:
        return {
            "identifying_attributes": {kv.key: kv.value.string_value for kv in self.identifying_attributes},
            "non_identifying_attributes": {kv.key: kv.value.string_value for kv in self.non_identifying_attributes},
        }
