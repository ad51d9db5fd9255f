from __future__ import annotations
import logging
import os
import platform
import socket
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set

import yaml
from kubernetes import client
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .cluster import ClusterCredentialResolver, CollectorClient, get_kubernetes_client
from .errors import ConfigDecodeError
from .flags import (
    DEFAULT_CONFIG_FILE_PATH,
    DEFAULT_HEARTBEAT_INTERVAL,
    DEFAULT_KUBE_CONFIG_PATH,
    DEFAULT_SERVER_LISTEN_ADDR,
    OPAMP_BRIDGE_NAME,
    FlagSet,
    parse_flags,
)
from .identity import InstanceId
from .log import ROOT_LOGGER_NAME
from .models import (
    AGENT_CAPABILITIES_VALUE,
    CAPABILITY_PREFIX,
    AgentCapabilities,
    AgentDescription,
    Capability,
    KeyValue,
    key_value_pair,
)
from .util import expand_env, parse_duration, request_uri_scheme


AGENT_TYPE = "io.opentelemetry.operator-opamp-bridge"

AGENT_VERSION = os.getenv("OPAMP_VERSION", "")
HOSTNAME = socket.gethostname()
OS_FAMILY = platform.system().lower()


@dataclass
class AgentDescriptionConfig:
    """User supplied part of the agent description."""

    non_identifying_attributes: Dict[str, str] = field(default_factory=dict)

    def non_identifying_key_values(self) -> List[KeyValue]:
        return [key_value_pair(k, v) for k, v in self.non_identifying_attributes.items()]


@dataclass
class Config:
    """Resolved bridge configuration.

    Built from defaults, then the config file, then explicitly given command
    line flags. Consumers treat it as read-only; the instance id can only be
    replaced through ``get_new_instance_id``.
    """

    root_logger: logging.Logger = field(default_factory=lambda: logging.getLogger(ROOT_LOGGER_NAME), repr=False)
    # Empty means the in-cluster configuration is used.
    kube_config_file_path: str = DEFAULT_KUBE_CONFIG_PATH
    listen_addr: str = DEFAULT_SERVER_LISTEN_ADDR
    cluster_config: Optional[client.Configuration] = field(default=None, repr=False)

    # Allowed OpenTelemetry components per pipeline type (receivers, processors, ...).
    components_allowed: Dict[str, List[str]] = field(default_factory=dict)
    endpoint: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    capabilities: Dict[str, bool] = field(default_factory=dict)
    heartbeat_interval: timedelta = DEFAULT_HEARTBEAT_INTERVAL
    name: str = OPAMP_BRIDGE_NAME
    agent_description: AgentDescriptionConfig = field(default_factory=AgentDescriptionConfig)

    _instance_id: InstanceId = field(default_factory=InstanceId, init=False, repr=False)

    def get_components_allowed(self) -> Dict[str, Set[str]]:
        allowed: Dict[str, Set[str]] = {}
        for component, component_set in self.components_allowed.items():
            allowed.setdefault(component, set()).update(component_set)
        return allowed

    def get_capabilities(self) -> AgentCapabilities:
        capabilities = AgentCapabilities.UNSPECIFIED
        for capability, enabled in self.capabilities.items():
            if not enabled:
                continue
            if isinstance(capability, Capability):
                capability = capability.value
            # Lets users write "ReportsStatus" instead of "AgentCapabilities_ReportsStatus".
            value = AGENT_CAPABILITIES_VALUE.get(f"{CAPABILITY_PREFIX}{capability}")
            if value is not None:
                capabilities |= value
        return AgentCapabilities(capabilities)

    def get_agent_scheme(self) -> str:
        return request_uri_scheme(self.endpoint)

    def get_agent_type(self) -> str:
        return AGENT_TYPE

    def get_agent_version(self) -> str:
        return AGENT_VERSION

    def get_instance_id(self) -> uuid.UUID:
        return self._instance_id.current()

    def get_new_instance_id(self) -> uuid.UUID:
        return self._instance_id.regenerate()

    def get_description(self) -> AgentDescription:
        return AgentDescription(
            identifying_attributes=[
                key_value_pair("service.name", self.get_agent_type()),
                key_value_pair("service.instance.id", str(self.get_instance_id())),
                key_value_pair("service.version", self.get_agent_version()),
            ],
            non_identifying_attributes=self.agent_description.non_identifying_key_values()
            + [
                key_value_pair("os.family", OS_FAMILY),
                key_value_pair("host.name", HOSTNAME),
            ],
        )

    def remote_config_enabled(self) -> bool:
        return bool(self.get_capabilities() & AgentCapabilities.ACCEPTS_REMOTE_CONFIG)

    def get_kubernetes_client(self) -> CollectorClient:
        return get_kubernetes_client(self.cluster_config)


def new_config(logger: logging.Logger) -> Config:
    return Config(root_logger=logger)


class DescriptionFile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    non_identifying_attributes: Optional[Dict[str, str]] = None


class ConfigFile(BaseModel):
    """Shape of the YAML config file. Every field is optional so absent keys keep their current value."""

    model_config = ConfigDict(extra="ignore")

    kube_config_file_path: Optional[str] = Field(default=None, alias="kubeConfigFilePath")
    listen_addr: Optional[str] = Field(default=None, alias="listenAddr")
    components_allowed: Optional[Dict[str, List[str]]] = Field(default=None, alias="componentsAllowed")
    endpoint: Optional[str] = None
    headers: Optional[Dict[str, str]] = None
    capabilities: Optional[Dict[str, bool]] = None
    heartbeat_interval: Optional[timedelta] = Field(default=None, alias="heartbeatInterval")
    name: Optional[str] = None
    description: Optional[DescriptionFile] = None

    @field_validator("heartbeat_interval", mode="before")
    @classmethod
    def _heartbeat_interval(cls, v: Any) -> Any:
        if v is None or isinstance(v, timedelta):
            return v
        if isinstance(v, bool):
            raise ValueError("heartbeatInterval must be a duration")
        if isinstance(v, int):
            # plain integers are nanoseconds
            return timedelta(microseconds=v / 1_000)
        if isinstance(v, str):
            return parse_duration(v)
        raise ValueError("heartbeatInterval must be a duration")

    def apply(self, target: Config) -> None:
        for name in self.model_fields_set:
            value = getattr(self, name)
            if value is None:
                continue
            if name == "description":
                target.agent_description = AgentDescriptionConfig(
                    non_identifying_attributes=dict(value.non_identifying_attributes or {})
                )
            else:
                setattr(target, name, value)


_NULL_TAG = "tag:yaml.org,2002:null"


def _scalar_text(node: yaml.Node) -> Optional[str]:
    if not isinstance(node, yaml.ScalarNode):
        raise ConfigDecodeError(f"error unmarshaling YAML: expected a string{node.start_mark}")
    if node.tag == _NULL_TAG:
        return None
    return node.value


def _string_map(node: yaml.Node) -> Optional[Dict[str, str]]:
    if isinstance(node, yaml.ScalarNode) and node.tag == _NULL_TAG:
        return None
    if not isinstance(node, yaml.MappingNode):
        raise ConfigDecodeError(f"error unmarshaling YAML: expected a mapping{node.start_mark}")
    return {_scalar_text(k) or "": _scalar_text(v) or "" for k, v in node.value}


def _string_list_map(node: yaml.Node) -> Optional[Dict[str, List[str]]]:
    if isinstance(node, yaml.ScalarNode) and node.tag == _NULL_TAG:
        return None
    if not isinstance(node, yaml.MappingNode):
        raise ConfigDecodeError(f"error unmarshaling YAML: expected a mapping{node.start_mark}")
    out: Dict[str, List[str]] = {}
    for k, v in node.value:
        if isinstance(v, yaml.ScalarNode) and v.tag == _NULL_TAG:
            out[_scalar_text(k) or ""] = []
            continue
        if not isinstance(v, yaml.SequenceNode):
            raise ConfigDecodeError(f"error unmarshaling YAML: expected a list{v.start_mark}")
        out[_scalar_text(k) or ""] = [_scalar_text(item) or "" for item in v.value]
    return out


# Keys whose values are plain strings take the scalar's source text, so
# `canary: true` stays "true" and `0x10` stays "0x10".
_SOURCE_TEXT_KEYS = {
    "kubeConfigFilePath": _scalar_text,
    "listenAddr": _scalar_text,
    "endpoint": _scalar_text,
    "name": _scalar_text,
    "headers": _string_map,
    "componentsAllowed": _string_list_map,
}


def _mapping_items(node: yaml.MappingNode):
    for key_node, value_node in node.value:
        if isinstance(key_node, yaml.ScalarNode):
            yield key_node.value, value_node


def _keep_source_text(root: yaml.MappingNode, data: Dict[str, Any]) -> None:
    for key, value_node in _mapping_items(root):
        if key in _SOURCE_TEXT_KEYS:
            data[key] = _SOURCE_TEXT_KEYS[key](value_node)
        elif key == "description" and isinstance(value_node, yaml.MappingNode) and isinstance(data.get(key), dict):
            for sub_key, sub_node in _mapping_items(value_node):
                if sub_key == "non_identifying_attributes":
                    data[key][sub_key] = _string_map(sub_node)


def load_from_file(cfg: Config, config_file: str) -> None:
    """Merge the YAML file at ``config_file`` into ``cfg``.

    ``${VAR}`` and ``$VAR`` references are expanded from the environment
    before parsing; unset variables become empty strings. String-valued
    settings keep the text as written, whatever YAML would resolve it to.
    Read errors propagate as ``OSError``.
    """
    raw = Path(config_file).read_text(encoding="utf-8")
    expanded = expand_env(raw)
    loader = yaml.SafeLoader(expanded)
    try:
        root = loader.get_single_node()
        data = loader.construct_document(root) if root is not None else None
    except yaml.YAMLError as e:
        raise ConfigDecodeError(f"error unmarshaling YAML: {e}") from e
    finally:
        loader.dispose()
    if data is None:
        return
    if not isinstance(data, dict):
        raise ConfigDecodeError(
            f"error unmarshaling YAML: expected a mapping, got {type(data).__name__}"
        )
    _keep_source_text(root, data)
    try:
        parsed = ConfigFile.model_validate(data)
    except ValidationError as ve:
        raise ConfigDecodeError(f"error unmarshaling YAML: {ve}") from ve
    parsed.apply(cfg)


def load_from_cli(
    target: Config,
    flags: FlagSet,
    resolver: Optional[ClusterCredentialResolver] = None,
) -> None:
    kube_config_file_path, changed = flags.kube_config_file_path()
    if changed:
        target.kube_config_file_path = kube_config_file_path
    resolver = resolver or ClusterCredentialResolver(logger=target.root_logger.getChild("cluster"))
    target.cluster_config = resolver.resolve(target.kube_config_file_path)

    listen_addr, changed = flags.listen_addr()
    if changed:
        target.listen_addr = listen_addr
    heartbeat_interval, changed = flags.heartbeat_interval()
    if changed:
        target.heartbeat_interval = heartbeat_interval
    name, changed = flags.name()
    if changed:
        target.name = name


def load_from_flags(
    logger: logging.Logger,
    flags: FlagSet,
    resolver: Optional[ClusterCredentialResolver] = None,
) -> Config:
    cfg = new_config(logger)
    config_file_path = DEFAULT_CONFIG_FILE_PATH
    config_file_path_by_flag, changed = flags.config_file_path()
    if changed:
        config_file_path = config_file_path_by_flag
    logger.debug("loading config file %s", config_file_path)
    load_from_file(cfg, config_file_path)
    load_from_cli(cfg, flags, resolver)
    return cfg


def load(
    logger: logging.Logger,
    args: Sequence[str],
    resolver: Optional[ClusterCredentialResolver] = None,
) -> Config:
    """Build the bridge configuration from defaults, the config file and ``args``.

    The first error aborts the whole load; nothing is partially returned.
    """
    flags = parse_flags(args)
    return load_from_flags(logger, flags, resolver)
