import base64
import datetime

import pytest
import yaml
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from clusteradm.kubeconfig import (
    KubeConfig,
    build_hub_config,
    create_bootstrap_config,
    format_mode,
    merge_certificate_data,
)

HUB = "https://hub.example.com:6443"


def _make_cert(common_name):
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.timezone.utc)
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
    return cert.public_bytes(serialization.Encoding.PEM)


def _names(pem):
    return [
        c.subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value
        for c in x509.load_pem_x509_certificates(pem)
    ]


@pytest.mark.parametrize(
    "raw, expected",
    [("hosted", "Hosted"), ("DEFAULT", "Default"), ("Hosted", "Hosted"), ("", "")],
)
def test_format_mode(raw, expected):
    assert format_mode(raw) == expected


def test_bootstrap_config_fields():
    config = create_bootstrap_config(HUB, "token")
    assert config.clusters[0].name == "hub"
    assert config.clusters[0].cluster.server == HUB
    assert config.clusters[0].cluster.insecure_skip_tls_verify is True
    assert config.auth_infos[0].token == "token"
    assert config.contexts[0].namespace == "default"
    assert config.current_context == "bootstrap"


def test_yaml_round_trip():
    config = build_hub_config(create_bootstrap_config(HUB, "token"), HUB, b"ca-bytes")
    config.clusters[0].cluster.proxy_url = "http://proxy.example.com:3128"
    assert KubeConfig.from_yaml(config.to_yaml()) == config


def test_yaml_layout():
    document = yaml.safe_load(create_bootstrap_config(HUB, "token").to_yaml())
    assert document["clusters"][0]["cluster"]["insecure-skip-tls-verify"] is True
    assert document["users"][0]["user"]["token"] == "token"
    assert document["contexts"][0]["context"]["user"] == "bootstrap"
    assert document["current-context"] == "bootstrap"


def test_build_hub_config_does_not_touch_bootstrap():
    bootstrap = create_bootstrap_config(HUB, "token")
    hub = build_hub_config(bootstrap, HUB, b"ca-bytes")
    assert bootstrap.clusters[0].cluster.insecure_skip_tls_verify is True
    assert bootstrap.clusters[0].cluster.certificate_authority_data is None
    assert hub.clusters[0].cluster.insecure_skip_tls_verify is False
    assert hub.clusters[0].cluster.certificate_authority_data == b"ca-bytes"
    document = yaml.safe_load(hub.to_yaml())
    cluster = document["clusters"][0]["cluster"]
    assert "insecure-skip-tls-verify" not in cluster
    assert base64.b64decode(cluster["certificate-authority-data"]) == b"ca-bytes"


def test_build_hub_config_requires_cluster():
    with pytest.raises(ValueError):
        build_hub_config(KubeConfig(), HUB, None)


def test_from_yaml_rejects_non_mapping():
    with pytest.raises(ValueError):
        KubeConfig.from_yaml("- a\n- b\n")


def test_from_yaml_rejects_bad_yaml():
    with pytest.raises(ValueError):
        KubeConfig.from_yaml("clusters: [unclosed")


def test_merge_deduplicates_and_keeps_order():
    a = _make_cert("a")
    b = _make_cert("b")
    merged = merge_certificate_data(a, b + a, b)
    assert _names(merged) == ["a", "b"]


def test_merge_skips_empty_bundles():
    a = _make_cert("a")
    assert merge_certificate_data(None, b"", a) == a
    assert merge_certificate_data(b"", None) == b""


def test_merge_rejects_garbage():
    with pytest.raises(ValueError):
        merge_certificate_data(b"not a certificate")