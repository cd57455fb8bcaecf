"""Certificates of the cluster-proxy server and TLS contexts built from them."""

from __future__ import annotations

import os
import re
import ssl
import tempfile
from dataclasses import dataclass
from typing import Mapping, Sequence

from cryptography import x509
from cryptography.hazmat.primitives.serialization import Encoding

IN_CLUSTER_SECRET_PROXY_CA = "proxy-server-ca"
IN_CLUSTER_SECRET_SERVER = "proxy-server"
IN_CLUSTER_SECRET_CLIENT = "proxy-client"

_PEM_CERT_RE = re.compile(
    rb"-----BEGIN CERTIFICATE-----.*?-----END CERTIFICATE-----", re.DOTALL
)


@dataclass
class ProxyCertificates:
    """PEM data of the proxy CA and of the proxy server and client key pairs."""

    ca: bytes = b""
    server_cert: bytes = b""
    server_key: bytes = b""
    client_cert: bytes = b""
    client_key: bytes = b""

    @classmethod
    def from_secrets(
        cls,
        ca_secret: Mapping[str, bytes],
        server_secret: Mapping[str, bytes],
        client_secret: Mapping[str, bytes],
    ) -> "ProxyCertificates":
        """Collect the certificates from the data of the three proxy secrets."""
        return cls(
            ca=ca_secret.get("ca.crt", b""),
            server_cert=server_secret.get("tls.crt", b""),
            server_key=server_secret.get("tls.key", b""),
            client_cert=client_secret.get("tls.crt", b""),
            client_key=client_secret.get("tls.key", b""),
        )


class _ClientContext(ssl.SSLContext):
    """A client context that remembers the server name to verify."""

    server_name: str | None = None
    next_protocols: list[str] = []

    def wrap_socket(
        self,
        sock,
        server_side=False,
        do_handshake_on_connect=True,
        suppress_ragged_eofs=True,
        server_hostname=None,
        session=None,
    ):
        if server_hostname is None and not server_side:
            server_hostname = self.server_name
        return super().wrap_socket(
            sock,
            server_side=server_side,
            do_handshake_on_connect=do_handshake_on_connect,
            suppress_ragged_eofs=suppress_ragged_eofs,
            server_hostname=server_hostname,
            session=session,
        )

    def wrap_bio(self, incoming, outgoing, server_side=False, server_hostname=None, session=None):
        if server_hostname is None and not server_side:
            server_hostname = self.server_name
        return super().wrap_bio(
            incoming,
            outgoing,
            server_side=server_side,
            server_hostname=server_hostname,
            session=session,
        )


def _append_certs_from_pem(context: ssl.SSLContext, pem_data: bytes) -> None:
    # Blocks that do not parse are skipped, as a certificate pool does.
    for block in _PEM_CERT_RE.findall(pem_data or b""):
        try:
            cert = x509.load_pem_x509_certificate(block)
            context.load_verify_locations(cadata=cert.public_bytes(Encoding.DER))
        except (ValueError, ssl.SSLError):
            continue


def build_tls_context(
    ca_data: bytes,
    cert_data: bytes,
    key_data: bytes,
    server_name: str,
    protos: Sequence[str] | None = None,
) -> ssl.SSLContext:
    """Build a TLS 1.2+ client context trusting the CA and presenting the key pair."""
    context = _ClientContext(ssl.PROTOCOL_TLS_CLIENT)
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    _append_certs_from_pem(context, ca_data)

    with tempfile.TemporaryDirectory() as directory:
        cert_path = os.path.join(directory, "tls.crt")
        key_path = os.path.join(directory, "tls.key")
        with open(cert_path, "wb") as fh:
            fh.write(cert_data or b"")
        with open(key_path, "wb") as fh:
            fh.write(key_data or b"")
        try:
            context.load_cert_chain(cert_path, key_path)
        except (ssl.SSLError, OSError) as exc:
            raise ValueError(f"failed loading key pair: {exc}") from exc

    context.server_name = server_name or None
    context.next_protocols = list(protos or [])
    if context.next_protocols:
        context.set_alpn_protocols(context.next_protocols)
    return context