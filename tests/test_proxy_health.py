import io

import pytest

from clusteradm.cluster_option import ClusterOption
from clusteradm.proxy_health import (
    ADDR_LOCALHOST,
    HEADER,
    HealthOptions,
    HealthTableWriter,
    build_parser,
)


def test_parser_defaults():
    ns = build_parser().parse_args([])
    assert ns.proxy_server_host == "127.0.0.1"
    assert ns.proxy_server_port == 8090
    assert ns.in_cluster_proxy_cert_lookup is True
    assert ns.clusters == []
    assert ns.cluster == ""


def test_parser_values():
    ns = build_parser().parse_args(
        [
            "--in-cluster-proxy-cert-lookup=false",
            "--proxy-ca-cert", "ca.pem",
            "--proxy-cert", "cert.pem",
            "--proxy-key", "key.pem",
            "--proxy-server-port", "9000",
            "--clusters", "a,b",
        ]
    )
    assert ns.in_cluster_proxy_cert_lookup is False
    assert ns.proxy_client_ca_cert_path == "ca.pem"
    assert ns.proxy_client_cert_path == "cert.pem"
    assert ns.proxy_client_key_path == "key.pem"
    assert ns.proxy_server_port == 9000
    assert ns.clusters == ["a", "b"]


def test_complete_defaults_use_local_proxy():
    options = HealthOptions()
    options.complete()
    assert options.is_proxy_server_address_provided is False


def test_complete_with_all_paths():
    options = HealthOptions(
        proxy_client_ca_cert_path="ca.pem",
        proxy_client_cert_path="cert.pem",
        proxy_client_key_path="key.pem",
    )
    options.complete()
    assert options.is_proxy_server_address_provided is True
    assert options.is_proxy_client_cert_provided is False


def test_complete_with_remote_host():
    options = HealthOptions(proxy_server_host="proxy.example.com")
    options.complete()
    assert options.is_proxy_server_address_provided is True


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({}, "--proxy-ca-cert must be set when in-cluster lookup is disabled"),
        ({"proxy_client_ca_cert_path": "ca.pem"},
         "--proxy-cert must be set when in-cluster lookup is disabled"),
        ({"proxy_client_ca_cert_path": "ca.pem", "proxy_client_cert_path": "cert.pem"},
         "--proxy-key must be set when in-cluster lookup is disabled"),
    ],
)
def test_validate_missing_local_credentials(kwargs, message):
    options = HealthOptions(in_cluster_proxy_cert_lookup=False, **kwargs)
    with pytest.raises(ValueError) as info:
        options.validate()
    assert str(info.value) == message


def test_validate_empty_cluster_value():
    options = HealthOptions(cluster_option=ClusterOption(clusters=[""]).allowing_unset())
    with pytest.raises(ValueError) as info:
        options.validate()
    assert str(info.value) == "--clusters cannot be set as an empty value"


def test_default_cluster_option_allows_unset():
    assert HealthOptions().cluster_option.allow_unset is True
    assert HealthOptions().proxy_server_host == ADDR_LOCALHOST


def test_writer_buffers_until_flush():
    out = io.StringIO()
    writer = HealthTableWriter(out)
    writer.row("cluster1", "True", "True", "True", "1ms")
    assert out.getvalue() == ""
    writer.flush()
    lines = out.getvalue().splitlines()
    assert len(lines) == 2
    assert lines[0].split() [:2] == ["CLUSTER", "NAME"]
    assert lines[1].split() == ["cluster1", "True", "True", "True", "1ms"]


def test_writer_aligns_columns():
    out = io.StringIO()
    writer = HealthTableWriter(out)
    writer.row("a-very-long-cluster-name", "False", "False", "Unknown", "<timeout>")
    writer.row("c2", "True", "True", "True", "2ms")
    writer.flush()
    lines = out.getvalue().splitlines()
    header, first, second = lines
    for title, value in zip(HEADER[1:], ("False", "False", "Unknown", "<timeout>")):
        assert header.index(title) == first.index(value)
    assert second.index("True") == header.index("INSTALLED")
    assert header.index("INSTALLED") == len("a-very-long-cluster-name") + 4
    assert second.endswith("2ms")


def test_writer_header_column_width():
    out = io.StringIO()
    writer = HealthTableWriter(out)
    writer.flush()
    header = out.getvalue().splitlines()[0]
    assert header.index("INSTALLED") == len("CLUSTER NAME") + 4
    assert header.endswith("LATENCY")


def test_writer_flush_clears_buffer():
    out = io.StringIO()
    writer = HealthTableWriter(out)
    writer.flush()
    first = out.getvalue()
    writer.flush()
    assert out.getvalue() == first