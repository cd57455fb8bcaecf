"""Minimal kubeconfig model used when joining a cluster to a hub."""

from __future__ import annotations

import base64
import binascii
import copy
from dataclasses import dataclass, field
from typing import Any

import yaml
from cryptography import x509
from cryptography.hazmat.primitives.serialization import Encoding


@dataclass
class Cluster:
    """Connection details of a cluster."""

    server: str = ""
    insecure_skip_tls_verify: bool = False
    certificate_authority_data: bytes | None = None
    proxy_url: str = ""


@dataclass
class NamedCluster:
    """A cluster stanza with its name."""

    name: str = ""
    cluster: Cluster = field(default_factory=Cluster)


@dataclass
class AuthInfo:
    """A named user entry holding a bearer token."""

    name: str = ""
    token: str = ""


@dataclass
class Context:
    """A named context tying a cluster to a user."""

    name: str = ""
    cluster: str = ""
    auth_info: str = ""
    namespace: str = ""


@dataclass
class KubeConfig:
    """A kubeconfig document."""

    clusters: list[NamedCluster] = field(default_factory=list)
    auth_infos: list[AuthInfo] = field(default_factory=list)
    contexts: list[Context] = field(default_factory=list)
    current_context: str = ""

    def to_yaml(self) -> str:
        """Serialise the configuration as kubeconfig YAML."""
        document = {
            "clusters": [_cluster_to_dict(c) for c in self.clusters],
            "contexts": [_context_to_dict(c) for c in self.contexts],
            "current-context": self.current_context,
            "preferences": {},
            "users": [_user_to_dict(u) for u in self.auth_infos],
        }
        return yaml.safe_dump(document, default_flow_style=False, sort_keys=True)

    @classmethod
    def from_yaml(cls, text: str) -> "KubeConfig":
        """Parse kubeconfig YAML; raises ValueError on malformed input."""
        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ValueError(f"invalid kubeconfig: {exc}") from exc
        if document is None:
            document = {}
        if not isinstance(document, dict):
            raise ValueError("invalid kubeconfig: document is not a mapping")
        return cls(
            clusters=[_cluster_from_dict(e) for e in document.get("clusters") or []],
            auth_infos=[_user_from_dict(e) for e in document.get("users") or []],
            contexts=[_context_from_dict(e) for e in document.get("contexts") or []],
            current_context=document.get("current-context") or "",
        )


def _cluster_to_dict(named: NamedCluster) -> dict[str, Any]:
    c = named.cluster
    body: dict[str, Any] = {"server": c.server}
    if c.insecure_skip_tls_verify:
        body["insecure-skip-tls-verify"] = True
    if c.certificate_authority_data:
        body["certificate-authority-data"] = base64.b64encode(
            c.certificate_authority_data
        ).decode("ascii")
    if c.proxy_url:
        body["proxy-url"] = c.proxy_url
    return {"name": named.name, "cluster": body}


def _context_to_dict(ctx: Context) -> dict[str, Any]:
    body: dict[str, Any] = {"cluster": ctx.cluster, "user": ctx.auth_info}
    if ctx.namespace:
        body["namespace"] = ctx.namespace
    return {"name": ctx.name, "context": body}


def _user_to_dict(user: AuthInfo) -> dict[str, Any]:
    body: dict[str, Any] = {}
    if user.token:
        body["token"] = user.token
    return {"name": user.name, "user": body}


def _mapping(entry: Any, what: str) -> dict[str, Any]:
    if entry is None:
        return {}
    if not isinstance(entry, dict):
        raise ValueError(f"invalid kubeconfig: {what} is not a mapping")
    return entry


def _cluster_from_dict(entry: Any) -> NamedCluster:
    entry = _mapping(entry, "cluster entry")
    body = _mapping(entry.get("cluster"), "cluster")
    ca = body.get("certificate-authority-data")
    ca_bytes = None
    if ca:
        try:
            ca_bytes = base64.b64decode(ca, validate=True)
        except (binascii.Error, TypeError) as exc:
            raise ValueError(f"invalid certificate-authority-data: {exc}") from exc
    return NamedCluster(
        name=entry.get("name") or "",
        cluster=Cluster(
            server=body.get("server") or "",
            insecure_skip_tls_verify=bool(body.get("insecure-skip-tls-verify", False)),
            certificate_authority_data=ca_bytes,
            proxy_url=body.get("proxy-url") or "",
        ),
    )


def _user_from_dict(entry: Any) -> AuthInfo:
    entry = _mapping(entry, "user entry")
    body = _mapping(entry.get("user"), "user")
    return AuthInfo(name=entry.get("name") or "", token=body.get("token") or "")


def _context_from_dict(entry: Any) -> Context:
    entry = _mapping(entry, "context entry")
    body = _mapping(entry.get("context"), "context")
    return Context(
        name=entry.get("name") or "",
        cluster=body.get("cluster") or "",
        auth_info=body.get("user") or "",
        namespace=body.get("namespace") or "",
    )


def format_mode(s: str) -> str:
    """Capitalise a deploy mode: first letter upper, the rest lower."""
    if not s:
        return ""
    return s[:1].upper() + s[1:].lower()


def create_bootstrap_config(hub_api_server: str, token: str) -> KubeConfig:
    """Build a bootstrap kubeconfig holding the token but no CA."""
    return KubeConfig(
        clusters=[
            NamedCluster(
                name="hub",
                cluster=Cluster(server=hub_api_server, insecure_skip_tls_verify=True),
            )
        ],
        auth_infos=[AuthInfo(name="bootstrap", token=token)],
        contexts=[
            Context(
                name="bootstrap",
                cluster="hub",
                auth_info="bootstrap",
                namespace="default",
            )
        ],
        current_context="bootstrap",
    )


def build_hub_config(
    bootstrap: KubeConfig, hub_api_server: str, ca_data: bytes | None
) -> KubeConfig:
    """Return a secured copy of the bootstrap config that trusts the given CA."""
    if not bootstrap.clusters:
        raise ValueError("bootstrap config has no cluster")
    config = copy.deepcopy(bootstrap)
    cluster = config.clusters[0].cluster
    cluster.insecure_skip_tls_verify = False
    cluster.server = hub_api_server
    cluster.certificate_authority_data = ca_data
    return config


def merge_certificate_data(*args: bytes | None) -> bytes:
    """Merge PEM bundles into one, dropping duplicate certificates."""
    merged: list[x509.Certificate] = []
    seen: set[bytes] = set()
    for bundle in args:
        if not bundle:
            continue
        for cert in x509.load_pem_x509_certificates(bundle):
            raw = cert.public_bytes(Encoding.DER)
            if raw not in seen:
                seen.add(raw)
                merged.append(cert)
    return b"".join(cert.public_bytes(Encoding.PEM) for cert in merged)