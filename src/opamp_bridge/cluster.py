from __future__ import annotations
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from kubernetes import client
from kubernetes import config as kube_config

from .errors import CredentialError


KubeConfigLoader = Callable[[str, client.Configuration], None]
InClusterLoader = Callable[[client.Configuration], None]


@dataclass(frozen=True)
class CollectorKind:
    group: str
    version: str
    kind: str
    plural: str


COLLECTOR_GROUP = "opentelemetry.io"

# Collector resources the bridge is allowed to read and manage.
KNOWN_COLLECTOR_KINDS: Tuple[CollectorKind, ...] = (
    CollectorKind(COLLECTOR_GROUP, "v1alpha1", "OpenTelemetryCollector", "opentelemetrycollectors"),
    CollectorKind(COLLECTOR_GROUP, "v1beta1", "OpenTelemetryCollector", "opentelemetrycollectors"),
)


def _load_kube_config(path: str, configuration: client.Configuration) -> None:
    kube_config.load_kube_config(
        config_file=path,
        client_configuration=configuration,
        persist_config=False,
    )


def _load_incluster_config(configuration: client.Configuration) -> None:
    kube_config.load_incluster_config(client_configuration=configuration)


class ClusterCredentialResolver:
    """Resolves cluster access from a kubeconfig file or the in-cluster service account."""

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        kube_config_loader: KubeConfigLoader = _load_kube_config,
        in_cluster_loader: InClusterLoader = _load_incluster_config,
    ) -> None:
        self._log = logger or logging.getLogger("opamp-bridge.cluster")
        self._kube_config_loader = kube_config_loader
        self._in_cluster_loader = in_cluster_loader

    def resolve(self, kube_config_file_path: str) -> client.Configuration:
        if kube_config_file_path and Path(kube_config_file_path).exists():
            configuration = client.Configuration()
            try:
                self._kube_config_loader(kube_config_file_path, configuration)
            except Exception as e:
                raise CredentialError(
                    f"failed to load kubeconfig {kube_config_file_path}: {e}"
                ) from e
            self._log.debug("using kubeconfig %s", kube_config_file_path)
            return configuration

        self._log.debug(
            "kubeconfig %s not found, using in-cluster configuration",
            kube_config_file_path or "-",
        )
        configuration = client.Configuration()
        try:
            self._in_cluster_loader(configuration)
        except Exception as e:
            raise CredentialError(f"failed to load in-cluster configuration: {e}") from e
        return configuration


class CollectorClient:
    """Access to the OpenTelemetryCollector custom resources of the cluster."""

    def __init__(self, api_client: client.ApiClient, kind: CollectorKind = KNOWN_COLLECTOR_KINDS[-1]) -> None:
        self.api_client = api_client
        self.kind = kind
        self._custom = client.CustomObjectsApi(api_client)

    def list_collectors(self, namespace: Optional[str] = None) -> Dict[str, Any]:
        if namespace:
            return self._custom.list_namespaced_custom_object(
                self.kind.group, self.kind.version, namespace, self.kind.plural
            )
        return self._custom.list_cluster_custom_object(
            self.kind.group, self.kind.version, self.kind.plural
        )

    def get_collector(self, name: str, namespace: str) -> Dict[str, Any]:
        return self._custom.get_namespaced_custom_object(
            self.kind.group, self.kind.version, namespace, self.kind.plural, name
        )

    def close(self) -> None:
        self.api_client.close()


def get_kubernetes_client(
    cluster_config: Optional[client.Configuration],
    version: str = "v1beta1",
) -> CollectorClient:
    if cluster_config is None:
        raise CredentialError("no cluster configuration resolved")
    for kind in KNOWN_COLLECTOR_KINDS:
        if kind.version == version:
            return CollectorClient(client.ApiClient(cluster_config), kind)
    raise ValueError(f"unsupported collector version {version!r}")
