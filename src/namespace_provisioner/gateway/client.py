"""
namespace_provisioner.gateway.client

HTTP client factory for talking to the cluster API server.

Responsibilities:
- Load cluster access via the `kubernetes` config loader: in-cluster service
  account first, then kubeconfig (`$KUBECONFIG` or `~/.kube/config`).
- Apply explicit overrides (server URL, token, TLS verification) from settings.
- Build the shared `httpx.AsyncClient` from the resulting configuration.
"""

from __future__ import annotations

import os
import ssl
from typing import Any

import httpx
from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from kubernetes.config.config_exception import ConfigException

from namespace_provisioner.gateway.errors import ClusterConfigError
from namespace_provisioner.observability.logging import get_logger
from namespace_provisioner.settings import Settings

log = get_logger(__name__)

DEFAULT_KUBECONFIG = "~/.kube/config"


def kubeconfig_path(settings: Settings) -> str:
    # Read at call time; the kubernetes package resolves $KUBECONFIG at import.
    return os.path.expanduser(
        settings.kubeconfig or os.environ.get("KUBECONFIG") or DEFAULT_KUBECONFIG
    )


def load_cluster_config(settings: Settings) -> k8s_client.Configuration:
    cfg = k8s_client.Configuration()
    try:
        k8s_config.load_incluster_config(client_configuration=cfg)
        log.info("cluster_config_loaded", source="in-cluster")
    except ConfigException:
        path = kubeconfig_path(settings)
        try:
            k8s_config.load_kube_config(
                config_file=path,
                context=settings.kube_context,
                client_configuration=cfg,
            )
            log.info("cluster_config_loaded", source="kubeconfig", path=path)
        except ConfigException as e:
            if settings.api_server_url is None:
                raise ClusterConfigError(
                    f"no in-cluster config and no usable kubeconfig at {path}: {e}"
                ) from e
            log.warning("cluster_config_missing", path=path, error=str(e))

    if settings.api_server_url is not None:
        cfg.host = settings.api_server_url
    if settings.api_token:
        cfg.api_key = {"authorization": f"Bearer {settings.api_token}"}
    if not settings.verify_tls:
        cfg.verify_ssl = False
    return cfg


def _tls_verify(cfg: k8s_client.Configuration) -> bool | ssl.SSLContext:
    if not cfg.verify_ssl:
        return False
    ctx = ssl.create_default_context(cafile=cfg.ssl_ca_cert or None)
    if cfg.cert_file:
        # Client-certificate users from kubeconfig.
        ctx.load_cert_chain(cfg.cert_file, cfg.key_file or None)
    return ctx


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    cfg = load_cluster_config(settings)

    headers = {"Accept": "application/json"}
    authorization = cfg.get_api_key_with_prefix("authorization")
    if authorization:
        headers["Authorization"] = authorization

    kwargs: dict[str, Any] = {}
    if settings.request_timeout_seconds is not None:
        kwargs["timeout"] = settings.request_timeout_seconds

    return httpx.AsyncClient(
        base_url=cfg.host,
        headers=headers,
        verify=_tls_verify(cfg),
        **kwargs,
    )


# --- Module Notes -----------------------------------------------------------
# The same client is shared by the gateway and the group observer; watch requests
# override the read timeout per call. Only the config loader comes from `kubernetes`;
# requests themselves go through httpx.
