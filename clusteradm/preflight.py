"""Preflight checks run before joining a cluster to a hub."""

from __future__ import annotations

import json
import re
import ssl
import urllib.request
from dataclasses import dataclass, field
from typing import Any, Callable

from clusteradm.kubeconfig import KubeConfig

INSTALL_MODE_DEFAULT = "Default"
INSTALL_MODE_HOSTED = "Hosted"

_CLUSTER_GROUP_VERSION = "cluster.open-cluster-management.io/v1"
_CLUSTER_NAME_RE = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")


class PreflightError(Exception):
    """A problem found by a preflight check."""


def valid_api_host(host: str) -> bool:
    """Whether the address starts with http:// or https://."""
    return host.startswith(("http://", "https://"))


def _current(config: KubeConfig):
    context = next((c for c in config.contexts if c.name == config.current_context), None)
    cluster = None
    user = None
    if context is not None:
        cluster = next((c for c in config.clusters if c.name == context.cluster), None)
        user = next((u for u in config.auth_infos if u.name == context.auth_info), None)
    if cluster is None and config.clusters:
        cluster = config.clusters[0]
    return context, cluster, user


class _HttpDiscovery:
    """Queries the discovery endpoints of an API server."""

    def __init__(self, config: KubeConfig) -> None:
        _, named, user = _current(config)
        if named is None:
            raise ValueError("kubeconfig has no cluster")
        cluster = named.cluster
        self._server = cluster.server.rstrip("/")
        self._token = user.token if user is not None else ""
        if cluster.certificate_authority_data:
            ctx = ssl.create_default_context(
                cadata=cluster.certificate_authority_data.decode("ascii")
            )
        else:
            ctx = ssl.create_default_context()
        if cluster.insecure_skip_tls_verify:
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_NONE
        self._ssl = ctx

    def _get(self, path: str) -> Any:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        request = urllib.request.Request(self._server + path, headers=headers)
        with urllib.request.urlopen(request, context=self._ssl, timeout=30) as response:
            return json.load(response)

    def server_version(self) -> Any:
        return self._get("/version")

    def server_resources_for_group_version(self, group_version: str) -> list[str]:
        data = self._get(f"/apis/{group_version}")
        return [r.get("name", "") for r in data.get("resources") or []]


@dataclass
class HubKubeconfigCheck:
    """Checks that the hub kubeconfig is usable and the hub serves OCM APIs."""

    config: KubeConfig | None
    discovery_factory: Callable[[KubeConfig], Any] = field(default=_HttpDiscovery, repr=False)

    def check(self) -> tuple[list[str], list[Exception]]:
        if self.config is None:
            return [], [PreflightError("no hubconfig found")]
        if len(self.config.clusters) != 1:
            return [], [PreflightError("error cluster length")]
        cluster = self.config.clusters[0].cluster
        if not valid_api_host(cluster.server):
            return [], [PreflightError("--hub-apiserver should start with http:// or https://")]
        if not cluster.certificate_authority_data:
            return ["no ca detected, creating hub kubeconfig without ca"], []

        try:
            discovery = self.discovery_factory(self.config)
            discovery.server_version()
        except (OSError, ValueError) as exc:
            return [], [exc]

        errors: list[Exception] = []
        resources: list[str] = []
        try:
            resources = discovery.server_resources_for_group_version(_CLUSTER_GROUP_VERSION)
        except (OSError, ValueError) as exc:
            errors.append(exc)
        if not resources:
            errors.append(PreflightError(f"no apigroup {_CLUSTER_GROUP_VERSION} detected"))
        return [], errors

    def name(self) -> str:
        return "HubKubeconfig check"


def _validate_kubeconfig_file(path: str) -> None:
    with open(path, encoding="utf-8") as fh:
        config = KubeConfig.from_yaml(fh.read())
    context, cluster, _ = _current(config)
    if context is None:
        raise ValueError(f"context {config.current_context!r} not found in {path}")
    if cluster is None or cluster.name != context.cluster or not cluster.cluster.server:
        raise ValueError(f"cluster {context.cluster!r} with a server not found in {path}")


@dataclass
class DeployModeCheck:
    """Checks the deploy mode against the managed kubeconfig flag."""

    mode: str
    internal_endpoint: bool = False
    managed_kubeconfig_file: str = ""
    validate_kubeconfig: Callable[[str], None] = field(
        default=_validate_kubeconfig_file, repr=False
    )

    def check(self) -> tuple[list[str], list[Exception]]:
        if self.mode not in (INSTALL_MODE_DEFAULT, INSTALL_MODE_HOSTED):
            return [], [PreflightError("deploy mode should be default or hosted")]
        if self.mode == INSTALL_MODE_DEFAULT:
            if self.managed_kubeconfig_file:
                return [], [
                    PreflightError(
                        "--managed-cluster-kubeconfig should not be set in default deploy mode"
                    )
                ]
            return [], []
        if not self.managed_kubeconfig_file:
            return [], [
                PreflightError("--managed-cluster-kubeconfig should be set in hosted deploy mode")
            ]
        # An internal endpoint kubeconfig only works from inside the management cluster.
        if not self.internal_endpoint:
            try:
                self.validate_kubeconfig(self.managed_kubeconfig_file)
            except (OSError, ValueError) as exc:
                return [], [
                    PreflightError(f"validate managed kubeconfig file failed: {exc}")
                ]
        return [], []

    def name(self) -> str:
        return "DeployMode Check"


@dataclass
class ClusterNameCheck:
    """Checks that the cluster name is a valid DNS label."""

    cluster_name: str

    def check(self) -> tuple[list[str], list[Exception]]:
        if not _CLUSTER_NAME_RE.match(self.cluster_name):
            return [], [
                PreflightError(
                    "validate ClusterName failed: should match `^[a-z0-9]([-a-z0-9]*[a-z0-9])?$`"
                )
            ]
        return [], []

    def name(self) -> str:
        return "ClusterName Check"