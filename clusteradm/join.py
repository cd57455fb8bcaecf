"""Options and local logic of the command that joins a cluster to a hub."""

from __future__ import annotations

import argparse
import secrets
import string
from dataclasses import dataclass, field

from clusteradm.feature_gates import (
    DEFAULT_SPOKE_REGISTRATION_FEATURE_GATES,
    DEFAULT_SPOKE_WORK_FEATURE_GATES,
    FeatureGate,
    MutableFeatureGate,
    convert_to_feature_gate_api,
)
from clusteradm.kubeconfig import KubeConfig, format_mode, merge_certificate_data
from clusteradm.preflight import INSTALL_MODE_HOSTED

AGENT_NAMESPACE_PREFIX = "open-cluster-management-"
OPERATOR_NAMESPACE = "open-cluster-management"
DEFAULT_OPERATOR_NAME = "klusterlet"
AWS_IRSA_AUTHENTICATION = "awsirsa"

INSTALL_MODE_SINGLETON = "Singleton"
INSTALL_MODE_SINGLETON_HOSTED = "SingletonHosted"

DEFAULT_REGISTRY = "quay.io/open-cluster-management"
DEFAULT_CLIENT_CERT_EXPIRATION_SECONDS = 31536000

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits

_EXAMPLE = """
# Join a cluster to the hub
{0} join --hub-token <tokenID.tokenSecret> --hub-apiserver <hub_apiserver_url> --cluster-name <cluster_name>
# join a cluster to the hub with hosted mode
{0} join --hub-token <tokenID.tokenSecret> --hub-apiserver <hub_apiserver_url> --cluster-name <cluster_name> --mode hosted --managed-cluster-kubeconfig <managed-cluster-kubeconfig-file>
# join a cluster to the hub while the hub provided no valid CA data in kube-public namespace
{0} join --hub-token <tokenID.tokenSecret> --hub-apiserver <hub_apiserver_url> --cluster-name <cluster_name> --ca-file <ca-file>
{0} join --hub-token <tokenID.tokenSecret> --hub-apiserver <hub_apiserver_url> --cluster-name <cluster_name> --registration-auth awsirsa --hub-cluster-arn arn:aws:eks:us-west-2:123456789012:cluster/hub-cluster-1
"""


def random_suffix(length: int) -> str:
    """Return a random string of lower-case letters and digits."""
    return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(length))


def _parse_bool(raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in ("1", "t", "true"):
        return True
    if lowered in ("0", "f", "false"):
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value: {raw!r}")


def _parse_string_map(raw: str) -> dict[str, str]:
    result: dict[str, str] = {}
    for part in raw.split(","):
        if not part:
            continue
        key, sep, value = part.partition("=")
        if not sep:
            raise argparse.ArgumentTypeError(f"{part} must be formatted as key=value")
        result[key] = value
    return result


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser of the join command."""
    parser = argparse.ArgumentParser(
        prog="join",
        description="join specific cluster to the hub cluster",
        epilog=_EXAMPLE.format("clusteradm"),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    def flag(name: str, dest: str, default: bool, text: str) -> None:
        parser.add_argument(
            name, dest=dest, type=_parse_bool, nargs="?", const=True, default=default, help=text
        )

    parser.add_argument("--feature-gates", dest="feature_gates", default="",
                        help="A set of key=value pairs that describe feature gates.")
    parser.add_argument("--hub-token", dest="token", default="", help="The token to access the hub")
    parser.add_argument("--hub-apiserver", dest="hub_api_server", default="",
                        help="The api server url to the hub")
    parser.add_argument("--ca-file", dest="ca_file", default="",
                        help="the file path to hub ca, optional")
    parser.add_argument("--cluster-name", dest="cluster_name", default="",
                        help="The name of the joining cluster")
    parser.add_argument("--output-file", dest="output_file", default="",
                        help="The generated resources will be copied in the specified file")
    parser.add_argument("--image-registry", dest="registry", default=DEFAULT_REGISTRY,
                        help="The name of the image registry serving OCM images.")
    parser.add_argument("--image-pull-credential-file", dest="image_pull_cred_file", default="",
                        help="The docker config json file filled into the default image pull secret.")
    parser.add_argument("--bundle-version", dest="bundle_version", default="default",
                        help="The version of predefined compatible image versions.")
    flag("--force-internal-endpoint-lookup", "force_hub_in_cluster_endpoint_lookup", False,
         "If true, look for the hub's internal endpoint in the public cluster-info.")
    flag("--force-internal-endpoint-lookup-managed", "force_managed_in_cluster_endpoint_lookup",
         False, "If true, access the managed cluster through its internal endpoint.")
    flag("--wait", "wait", False, "If true, running the cluster registration in foreground.")
    parser.add_argument("-m", "--mode", dest="mode", default="default",
                        help="mode to deploy klusterlet, can be default or hosted")
    parser.add_argument("--managed-cluster-kubeconfig", dest="managed_kubeconfig_file", default="",
                        help="The external managed cluster kubeconfig in hosted mode")
    flag("--singleton", "singleton", False,
         "If true, deploy singleton mode of klusterlet.")
    parser.add_argument("--proxy-url", dest="proxy_url", default="",
                        help="the URL of a forward proxy server used by agents to reach the hub.")
    parser.add_argument("--proxy-ca-file", dest="proxy_ca_file", default="",
                        help="the file path to proxy ca, optional")
    parser.add_argument("--resource-qos-class", dest="resource_qos_class", default="Default",
                        help="Default, BestEffort or ResourceRequirement.")
    parser.add_argument("--resource-limits", dest="resource_limits", type=_parse_string_map,
                        default=None, help="for example: cpu=800m,memory=800Mi")
    parser.add_argument("--resource-requests", dest="resource_requests", type=_parse_string_map,
                        default=None, help="for example: cpu=500m,memory=500Mi")
    flag("--create-namespace", "create_namespace", True,
         "If true, create the operator and agent namespaces, otherwise use existing ones")
    flag("--enable-sync-labels", "enable_sync_labels", False,
         "If true, sync the labels from klusterlet to all agent resources.")
    parser.add_argument("--client-cert-expiration-seconds", dest="client_cert_expiration_seconds",
                        type=int, default=DEFAULT_CLIENT_CERT_EXPIRATION_SECONDS,
                        help="the seconds of a client certificate to expire.")
    parser.add_argument("--registration-auth", dest="registration_auth", default="",
                        help="The type of authentication to use for registering with hub")
    parser.add_argument("--hub-cluster-arn", dest="hub_cluster_arn", default="",
                        help="The arn of the hub cluster to which managed-cluster will join")
    return parser


def _spoke_feature_gate() -> MutableFeatureGate:
    gate = MutableFeatureGate()
    gate.add(DEFAULT_SPOKE_REGISTRATION_FEATURE_GATES)
    gate.add(DEFAULT_SPOKE_WORK_FEATURE_GATES)
    return gate


@dataclass
class JoinOptions:
    """Command-line options of join and the values derived from them."""

    token: str = ""
    hub_api_server: str = ""
    ca_file: str = ""
    cluster_name: str = ""
    output_file: str = ""
    registry: str = DEFAULT_REGISTRY
    image_pull_cred_file: str = ""
    bundle_version: str = "default"
    force_hub_in_cluster_endpoint_lookup: bool = False
    force_managed_in_cluster_endpoint_lookup: bool = False
    wait: bool = False
    mode: str = "default"
    managed_kubeconfig_file: str = ""
    singleton: bool = False
    proxy_url: str = ""
    proxy_ca_file: str = ""
    resource_qos_class: str = "Default"
    resource_limits: dict[str, str] | None = None
    resource_requests: dict[str, str] | None = None
    create_namespace: bool = True
    enable_sync_labels: bool = False
    client_cert_expiration_seconds: int = DEFAULT_CLIENT_CERT_EXPIRATION_SECONDS
    registration_auth: str = ""
    hub_cluster_arn: str = ""
    feature_gates: str = ""
    hub_in_cluster_endpoint: str = ""

    hub_ca_data: bytes | None = field(default=None, init=False)
    docker_config_json: str = field(default="", init=False)
    klusterlet_name: str = field(default="", init=False)
    klusterlet_namespace: str = field(default="", init=False)
    registration_feature_gates: list[FeatureGate] = field(default_factory=list, init=False)
    work_feature_gates: list[FeatureGate] = field(default_factory=list, init=False)
    bootstrap_hub_kubeconfig: str = field(default="", init=False)

    def __post_init__(self) -> None:
        self.resource_limits = dict(self.resource_limits or {})
        self.resource_requests = dict(self.resource_requests or {})

    def complete(self) -> None:
        """Check the required options and derive the klusterlet settings."""
        if not self.token:
            raise ValueError("token is missing")
        if not self.hub_api_server:
            raise ValueError("hub-server is missing")
        if not self.cluster_name:
            raise ValueError("cluster-name is missing")
        if not self.registry:
            raise ValueError(
                "the OCM image registry should not be empty, like quay.io/open-cluster-management"
            )
        if not self.mode:
            raise ValueError("the mode should not be empty, like default")
        self.mode = format_mode(self.mode)

        if self.image_pull_cred_file:
            try:
                with open(self.image_pull_cred_file, encoding="utf-8") as fh:
                    self.docker_config_json = fh.read()
            except OSError as exc:
                raise ValueError(
                    f"failed read the image pull credential file "
                    f"{self.image_pull_cred_file}: {exc}"
                ) from exc

        self.klusterlet_name, self.klusterlet_namespace = self.klusterlet_name_and_namespace()

        gate = _spoke_feature_gate()
        if self.feature_gates:
            gate.set(self.feature_gates)
        self.registration_feature_gates = convert_to_feature_gate_api(
            gate, DEFAULT_SPOKE_REGISTRATION_FEATURE_GATES
        )
        self.work_feature_gates = convert_to_feature_gate_api(
            gate, DEFAULT_SPOKE_WORK_FEATURE_GATES
        )

        if self.ca_file:
            with open(self.ca_file, "rb") as fh:
                self.hub_ca_data = fh.read()

    def klusterlet_name_and_namespace(self) -> tuple[str, str]:
        """Return the klusterlet name and its namespace on the managed cluster."""
        agent_namespace = AGENT_NAMESPACE_PREFIX + "agent"
        if self.mode == INSTALL_MODE_HOSTED:
            # a random suffix keeps several hosted klusterlets apart
            name = f"{DEFAULT_OPERATOR_NAME}-hosted-{random_suffix(6)}"
            return name, AGENT_NAMESPACE_PREFIX + name
        return DEFAULT_OPERATOR_NAME, agent_namespace

    def install_mode(self) -> str:
        """The klusterlet install mode given the deploy mode and singleton flag."""
        if self.mode == INSTALL_MODE_HOSTED and self.singleton:
            return INSTALL_MODE_SINGLETON_HOSTED
        if self.singleton:
            return INSTALL_MODE_SINGLETON
        return self.mode

    def set_kubeconfig(self, hub_config: KubeConfig) -> str:
        """Apply endpoint and proxy settings to the hub config and return it as YAML."""
        if not hub_config.clusters:
            raise ValueError("hub config has no cluster")
        cluster = hub_config.clusters[0].cluster
        if self.force_hub_in_cluster_endpoint_lookup:
            cluster.server = self.hub_in_cluster_endpoint
        if self.proxy_url:
            cluster.proxy_url = self.proxy_url
            if self.proxy_ca_file:
                with open(self.proxy_ca_file, "rb") as fh:
                    proxy_ca_data = fh.read()
                cluster.certificate_authority_data = merge_certificate_data(
                    cluster.certificate_authority_data, proxy_ca_data
                )
        self.bootstrap_hub_kubeconfig = hub_config.to_yaml()
        return self.bootstrap_hub_kubeconfig

    def validate_registration_auth(self) -> None:
        """Raise ValueError when awsirsa auth is chosen without a hub cluster ARN."""
        if self.registration_auth == AWS_IRSA_AUTHENTICATION and not self.hub_cluster_arn:
            raise ValueError("hubClusterArn cannot be empty if registrationAuth type is awsirsa")

    def accept_instructions(self, header: str) -> str:
        """The message telling the user how to accept the cluster on the hub."""
        return (
            "Please log onto the hub cluster and run the following command:\n\n"
            f"    {header} accept --clusters {self.cluster_name}\n\n"
            "This is not needed when the ManagedClusterAutoApproval feature is enabled\n"
        )