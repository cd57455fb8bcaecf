"""Options and output of the command probing cluster-proxy health."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from typing import TextIO

from clusteradm.cluster_option import ClusterOption

ADDR_LOCALHOST = "127.0.0.1"
DEFAULT_PROXY_SERVER_PORT = 8090

HEADER = ("CLUSTER NAME", "INSTALLED", "AVAILABLE", "PROBED HEALTH", "LATENCY")

_EXAMPLE = """
# Probing healthiness of each managed clusters through the konnectivity tunnels installed by cluster-proxy addon
{0} proxy health
"""


def _parse_bool(raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in ("1", "t", "true"):
        return True
    if lowered in ("0", "f", "false"):
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value: {raw!r}")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser of the proxy health command."""
    parser = argparse.ArgumentParser(
        prog="health",
        description="check the healthiness of a certain managed cluster that have cluster-proxy addon",
        epilog=_EXAMPLE.format("clusteradm"),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--in-cluster-proxy-cert-lookup",
        dest="in_cluster_proxy_cert_lookup",
        type=_parse_bool,
        nargs="?",
        const=True,
        default=True,
        help="If true, will be looking for the proxy client credentials "
        "from the ManagedProxyConfiguration in the hub cluster",
    )
    parser.add_argument("--proxy-ca-cert", dest="proxy_client_ca_cert_path", default="",
                        help="The path to proxy server's CA certificate")
    parser.add_argument("--proxy-cert", dest="proxy_client_cert_path", default="",
                        help="The path to proxy server's corresponding client certificate")
    parser.add_argument("--proxy-key", dest="proxy_client_key_path", default="",
                        help="The path to proxy server's corresponding client key")
    parser.add_argument("--proxy-server-host", dest="proxy_server_host", default=ADDR_LOCALHOST,
                        help="Konnectivity proxy server's entry hostname")
    parser.add_argument("--proxy-server-port", dest="proxy_server_port", type=int,
                        default=DEFAULT_PROXY_SERVER_PORT,
                        help="Konnectivity proxy server's entry port")
    ClusterOption().allowing_unset().add_arguments(parser)
    return parser


@dataclass
class HealthOptions:
    """Command-line options of proxy health."""

    in_cluster_proxy_cert_lookup: bool = True
    proxy_client_ca_cert_path: str = ""
    proxy_client_cert_path: str = ""
    proxy_client_key_path: str = ""
    proxy_server_host: str = ADDR_LOCALHOST
    proxy_server_port: int = DEFAULT_PROXY_SERVER_PORT
    cluster_option: ClusterOption = field(
        default_factory=lambda: ClusterOption().allowing_unset()
    )
    is_proxy_client_cert_provided: bool = False
    is_proxy_server_address_provided: bool = False

    def complete(self) -> None:
        """Decide whether a proxy server address was given."""
        if (
            self.proxy_client_ca_cert_path
            and self.proxy_client_cert_path
            and self.proxy_client_key_path
        ):
            self.is_proxy_server_address_provided = True
        if self.proxy_server_host != ADDR_LOCALHOST:
            self.is_proxy_server_address_provided = True

    def validate(self) -> None:
        """Raise ValueError when local credentials are needed but missing."""
        if not self.in_cluster_proxy_cert_lookup:
            if not self.proxy_client_ca_cert_path:
                raise ValueError("--proxy-ca-cert must be set when in-cluster lookup is disabled")
            if not self.proxy_client_cert_path:
                raise ValueError("--proxy-cert must be set when in-cluster lookup is disabled")
            if not self.proxy_client_key_path:
                raise ValueError("--proxy-key must be set when in-cluster lookup is disabled")
        self.cluster_option.validate()


class HealthTableWriter:
    """Writes the health table as space-aligned columns on flush."""

    _MIN_WIDTH = 4
    _PADDING = 4

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._lines: list[tuple[str, ...]] = [HEADER]

    def row(
        self, cluster_name: str, installed: str, available: str, health: str, latency: str
    ) -> None:
        """Add one cluster's row to the table."""
        self._lines.append((cluster_name, installed, available, health, latency))

    def flush(self) -> None:
        """Write out the buffered lines with aligned columns."""
        if not self._lines:
            return
        columns = max(len(line) for line in self._lines) - 1
        widths = []
        for column in range(columns):
            cells = [len(line[column]) for line in self._lines if len(line) > column + 1]
            widths.append(max([self._MIN_WIDTH] + [w + self._PADDING for w in cells]))
        for line in self._lines:
            padded = [cell.ljust(widths[i]) for i, cell in enumerate(line[:-1])]
            self._stream.write("".join(padded) + line[-1] + "\n")
        self._lines = []