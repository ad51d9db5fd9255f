"""Tests for cluster credential resolution and the collector API client."""

from unittest.mock import MagicMock, patch

import pytest
from kubernetes import client

from opamp_bridge.cluster import (
    KNOWN_COLLECTOR_KINDS,
    ClusterCredentialResolver,
    CollectorClient,
    get_kubernetes_client,
)
from opamp_bridge.errors import CredentialError

from conftest import FAKE_CLUSTER_HOST, IN_CLUSTER_HOST


def test_resolve_existing_kubeconfig(resolver, kubeconfig_file, kube_config_loader, in_cluster_loader):
    configuration = resolver.resolve(kubeconfig_file)

    assert configuration.host == FAKE_CLUSTER_HOST
    kube_config_loader.assert_called_once()
    assert kube_config_loader.call_args.args[0] == kubeconfig_file
    in_cluster_loader.assert_not_called()


def test_resolve_missing_kubeconfig_falls_back(resolver, tmp_path, kube_config_loader, in_cluster_loader):
    configuration = resolver.resolve(str(tmp_path / "missing"))

    assert configuration.host == IN_CLUSTER_HOST
    kube_config_loader.assert_not_called()
    in_cluster_loader.assert_called_once()


def test_resolve_empty_path_uses_in_cluster(resolver, in_cluster_loader):
    assert resolver.resolve("").host == IN_CLUSTER_HOST
    in_cluster_loader.assert_called_once()


def test_resolve_broken_kubeconfig_does_not_fall_back(resolver, kubeconfig_file, kube_config_loader, in_cluster_loader):
    kube_config_loader.side_effect = ValueError("invalid kube-config")

    with pytest.raises(CredentialError, match="invalid kube-config"):
        resolver.resolve(kubeconfig_file)
    in_cluster_loader.assert_not_called()


def test_resolve_fallback_failure(resolver, tmp_path, in_cluster_loader):
    in_cluster_loader.side_effect = RuntimeError("Service host/port is not set.")

    with pytest.raises(CredentialError, match="Service host/port is not set"):
        resolver.resolve(str(tmp_path / "missing"))


def test_real_loader_reads_kubeconfig(logger, kubeconfig_file):
    configuration = ClusterCredentialResolver(logger=logger).resolve(kubeconfig_file)

    assert configuration.host == "https://127.0.0.1:6443"


def test_real_loader_malformed_kubeconfig(logger, write_file):
    path = write_file("kubeconfig", "clusters: [unclosed\n")
    in_cluster_loader = MagicMock()
    resolver = ClusterCredentialResolver(logger=logger, in_cluster_loader=in_cluster_loader)

    with pytest.raises(CredentialError):
        resolver.resolve(path)
    in_cluster_loader.assert_not_called()


def test_real_in_cluster_fallback(logger, tmp_path, in_cluster_env):
    configuration = ClusterCredentialResolver(logger=logger).resolve(str(tmp_path / "no-kubeconfig"))

    assert configuration.host == "https://10.96.0.1:443"


def test_real_in_cluster_fallback_outside_cluster(logger, tmp_path, monkeypatch):
    monkeypatch.delenv("KUBERNETES_SERVICE_HOST", raising=False)
    monkeypatch.delenv("KUBERNETES_SERVICE_PORT", raising=False)

    with pytest.raises(CredentialError, match="in-cluster"):
        ClusterCredentialResolver(logger=logger).resolve(str(tmp_path / "no-kubeconfig"))


def test_known_collector_kinds():
    assert {(k.group, k.version) for k in KNOWN_COLLECTOR_KINDS} == {
        ("opentelemetry.io", "v1alpha1"),
        ("opentelemetry.io", "v1beta1"),
    }
    assert all(k.plural == "opentelemetrycollectors" for k in KNOWN_COLLECTOR_KINDS)


def test_get_kubernetes_client_requires_cluster_config():
    with pytest.raises(CredentialError):
        get_kubernetes_client(None)


def test_get_kubernetes_client_unknown_version():
    with pytest.raises(ValueError):
        get_kubernetes_client(client.Configuration(), version="v2")


def test_collector_client_lists_custom_objects():
    configuration = client.Configuration()
    configuration.host = FAKE_CLUSTER_HOST
    with patch("opamp_bridge.cluster.client.CustomObjectsApi") as api_class:
        api = api_class.return_value
        api.list_namespaced_custom_object.return_value = {"items": [{"metadata": {"name": "simplest"}}]}
        api.list_cluster_custom_object.return_value = {"items": []}

        collectors = get_kubernetes_client(configuration)
        assert isinstance(collectors, CollectorClient)
        assert collectors.api_client.configuration.host == FAKE_CLUSTER_HOST

        assert collectors.list_collectors("observability")["items"][0]["metadata"]["name"] == "simplest"
        api.list_namespaced_custom_object.assert_called_once_with(
            "opentelemetry.io", "v1beta1", "observability", "opentelemetrycollectors"
        )
        assert collectors.list_collectors() == {"items": []}
        api.list_cluster_custom_object.assert_called_once_with(
            "opentelemetry.io", "v1beta1", "opentelemetrycollectors"
        )

        collectors.get_collector("simplest", "observability")
        api.get_namespaced_custom_object.assert_called_once_with(
            "opentelemetry.io", "v1beta1", "observability", "opentelemetrycollectors", "simplest"
        )
        collectors.close()
