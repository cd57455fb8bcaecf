import datetime

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding
from cryptography.x509.oid import NameOID

from clusteradm.feature_gates import FeatureGate, FeatureGateMode
from clusteradm.join import JoinOptions, build_parser, random_suffix
from clusteradm.kubeconfig import KubeConfig, build_hub_config, create_bootstrap_config


def _options(*extra):
    args = ["--hub-token", "token", "--hub-apiserver", "https://hub:6443",
            "--cluster-name", "c1", *extra]
    return JoinOptions(**vars(build_parser().parse_args(args)))


def _self_signed_pem(common_name):
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + datetime.timedelta(days=1))
        .sign(key, hashes.SHA256())
    )
    return cert.public_bytes(Encoding.PEM)


def test_random_suffix_shape():
    value = random_suffix(6)
    assert len(value) == 6
    assert all(ch.islower() or ch.isdigit() for ch in value)


def test_parser_defaults():
    opts = _options()
    assert opts.registry == "quay.io/open-cluster-management"
    assert opts.bundle_version == "default"
    assert opts.mode == "default"
    assert opts.create_namespace is True
    assert opts.client_cert_expiration_seconds == 31536000
    assert opts.resource_qos_class == "Default"
    assert opts.resource_limits == {}


def test_parser_resource_limits_and_bool():
    opts = _options("--resource-limits", "cpu=800m,memory=800Mi", "--create-namespace=false")
    assert opts.resource_limits == {"cpu": "800m", "memory": "800Mi"}
    assert opts.create_namespace is False


@pytest.mark.parametrize(
    "field, message",
    [("token", "token is missing"),
     ("hub_api_server", "hub-server is missing"),
     ("cluster_name", "cluster-name is missing")],
)
def test_complete_missing_required(field, message):
    opts = _options()
    setattr(opts, field, "")
    with pytest.raises(ValueError, match=message):
        opts.complete()


def test_complete_empty_mode():
    opts = _options("--mode", "")
    with pytest.raises(ValueError, match="mode should not be empty"):
        opts.complete()


def test_complete_default_mode():
    opts = _options()
    opts.complete()
    assert opts.mode == "Default"
    assert opts.klusterlet_name == "klusterlet"
    assert opts.klusterlet_namespace == "open-cluster-management-agent"


def test_complete_hosted_mode():
    opts = _options("--mode", "HOSTED")
    opts.complete()
    assert opts.mode == "Hosted"
    assert opts.klusterlet_name.startswith("klusterlet-hosted-")
    assert len(opts.klusterlet_name) == len("klusterlet-hosted-") + 6
    assert opts.klusterlet_namespace == "open-cluster-management-" + opts.klusterlet_name


def test_complete_feature_gates_defaults():
    opts = _options()
    opts.complete()
    assert sorted(opts.registration_feature_gates, key=lambda g: g.feature) == [
        FeatureGate("AddonManagement", FeatureGateMode.ENABLE),
        FeatureGate("ClusterClaim", FeatureGateMode.ENABLE),
    ]
    assert opts.work_feature_gates == []


def test_complete_feature_gates_user_setting():
    opts = _options("--feature-gates", "MultipleHubs=true")
    opts.complete()
    assert FeatureGate("MultipleHubs", FeatureGateMode.ENABLE) in opts.registration_feature_gates


def test_complete_reads_files(tmp_path):
    ca = tmp_path / "ca.crt"
    ca.write_bytes(b"ca-bytes")
    cred = tmp_path / "config.json"
    cred.write_text('{"auths": {}}')
    opts = _options("--ca-file", str(ca), "--image-pull-credential-file", str(cred))
    opts.complete()
    assert opts.hub_ca_data == b"ca-bytes"
    assert opts.docker_config_json == '{"auths": {}}'


def test_complete_missing_credential_file(tmp_path):
    opts = _options("--image-pull-credential-file", str(tmp_path / "absent.json"))
    with pytest.raises(ValueError, match="failed read the image pull credential file"):
        opts.complete()


@pytest.mark.parametrize(
    "mode, singleton, expected",
    [("Hosted", True, "SingletonHosted"),
     ("Default", True, "Singleton"),
     ("Hosted", False, "Hosted"),
     ("Default", False, "Default")],
)
def test_install_mode(mode, singleton, expected):
    opts = JoinOptions(mode=mode, singleton=singleton)
    assert opts.install_mode() == expected


def test_validate_registration_auth():
    with pytest.raises(ValueError, match="hubClusterArn cannot be empty"):
        JoinOptions(registration_auth="awsirsa").validate_registration_auth()
    opts = JoinOptions(registration_auth="awsirsa", hub_cluster_arn="arn:aws:eks:x")
    opts.validate_registration_auth()
    assert opts.hub_cluster_arn == "arn:aws:eks:x"


def test_accept_instructions():
    text = JoinOptions(cluster_name="c1").accept_instructions("clusteradm")
    assert "    clusteradm accept --clusters c1\n" in text
    assert text.endswith("This is not needed when the ManagedClusterAutoApproval feature is enabled\n")


def test_set_kubeconfig_endpoint_and_proxy():
    hub = build_hub_config(create_bootstrap_config("https://hub:6443", "token"), "https://hub:6443", None)
    opts = JoinOptions(force_hub_in_cluster_endpoint_lookup=True,
                       hub_in_cluster_endpoint="https://10.0.0.1:443",
                       proxy_url="http://proxy:3128")
    text = opts.set_kubeconfig(hub)
    parsed = KubeConfig.from_yaml(text)
    assert parsed.clusters[0].cluster.server == "https://10.0.0.1:443"
    assert parsed.clusters[0].cluster.proxy_url == "http://proxy:3128"
    assert opts.bootstrap_hub_kubeconfig == text


def test_set_kubeconfig_merges_proxy_ca(tmp_path):
    hub_ca = _self_signed_pem("hub")
    proxy_ca = _self_signed_pem("proxy")
    path = tmp_path / "proxy.crt"
    path.write_bytes(proxy_ca + hub_ca)
    hub = build_hub_config(create_bootstrap_config("https://hub:6443", "token"), "https://hub:6443", hub_ca)
    opts = JoinOptions(proxy_url="http://proxy:3128", proxy_ca_file=str(path))
    parsed = KubeConfig.from_yaml(opts.set_kubeconfig(hub))
    merged = parsed.clusters[0].cluster.certificate_authority_data
    certs = x509.load_pem_x509_certificates(merged)
    assert len(certs) == 2
    assert merged == hub_ca + proxy_ca


def test_set_kubeconfig_without_proxy_keeps_server():
    hub = build_hub_config(create_bootstrap_config("https://hub:6443", "token"), "https://hub:6443", None)
    parsed = KubeConfig.from_yaml(JoinOptions().set_kubeconfig(hub))
    assert parsed.clusters[0].cluster.server == "https://hub:6443"
    assert parsed.clusters[0].cluster.proxy_url == ""


def test_set_kubeconfig_requires_cluster():
    with pytest.raises(ValueError):
        JoinOptions().set_kubeconfig(KubeConfig())