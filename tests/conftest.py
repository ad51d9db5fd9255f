"""Shared fixtures for the bridge configuration tests."""

import logging
import textwrap
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from opamp_bridge.cluster import ClusterCredentialResolver

FAKE_CLUSTER_HOST = "https://fake-cluster:6443"
IN_CLUSTER_HOST = "https://10.96.0.1:443"

KUBECONFIG = textwrap.dedent(
    """\
    apiVersion: v1
    kind: Config
    clusters:
    - name: test
      cluster:
        server: https://127.0.0.1:6443
    contexts:
    - name: test
      context:
        cluster: test
        user: test
    current-context: test
    users:
    - name: test
      user:
        token: test-token
    """
)


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("opamp-bridge.test")


@pytest.fixture
def kube_config_loader() -> MagicMock:
    """Loader standing in for load_kube_config."""

    def _load(path, configuration):
        configuration.host = FAKE_CLUSTER_HOST

    return MagicMock(side_effect=_load)


@pytest.fixture
def in_cluster_loader() -> MagicMock:
    """Loader standing in for load_incluster_config."""

    def _load(configuration):
        configuration.host = IN_CLUSTER_HOST

    return MagicMock(side_effect=_load)


@pytest.fixture
def resolver(logger, kube_config_loader, in_cluster_loader) -> ClusterCredentialResolver:
    return ClusterCredentialResolver(
        logger=logger,
        kube_config_loader=kube_config_loader,
        in_cluster_loader=in_cluster_loader,
    )


@pytest.fixture
def write_file(tmp_path: Path):
    """Write dedented text to a file under tmp_path and return its path as str."""

    def _write(name: str, content: str) -> str:
        path = tmp_path / name
        path.write_text(textwrap.dedent(content), encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture
def kubeconfig_file(write_file) -> str:
    return write_file("kubeconfig", KUBECONFIG)


@pytest.fixture
def in_cluster_env(tmp_path: Path, monkeypatch):
    """Simulate a pod's service account mount and environment."""
    from kubernetes.config import incluster_config

    token = tmp_path / "token"
    token.write_text("in-cluster-token")
    cert = tmp_path / "ca.crt"
    cert.write_text("-----BEGIN CERTIFICATE-----\nfake\n-----END CERTIFICATE-----\n")
    monkeypatch.setattr(incluster_config, "SERVICE_TOKEN_FILENAME", str(token))
    monkeypatch.setattr(incluster_config, "SERVICE_CERT_FILENAME", str(cert))
    monkeypatch.setenv("KUBERNETES_SERVICE_HOST", "10.96.0.1")
    monkeypatch.setenv("KUBERNETES_SERVICE_PORT", "443")
    return tmp_path
