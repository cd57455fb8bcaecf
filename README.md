# clusteradm

A Python library for the client side of an Open Cluster Management setup:
the options, checks and data that go into joining a managed cluster to a
hub, removing it again, uninstalling built-in hub add-ons, and reaching
managed clusters through the cluster-proxy add-on.

Most functions work on plain data (kubeconfig models, secret data, lists of
klusterlets, callables that delete or fetch a resource) so that they can be
driven by whatever Kubernetes client you use.

## Installation

Install the package with your usual Python tooling. It needs Python 3.10 or
later and depends on PyYAML and cryptography.

## Modules

| Module | Contents |
| --- | --- |
| `clusteradm.kubeconfig` | `KubeConfig`, `Cluster`, `NamedCluster`, `AuthInfo`, `Context`; YAML round trips with `to_yaml` / `from_yaml`; `create_bootstrap_config`, `build_hub_config`, `merge_certificate_data`, `format_mode` |
| `clusteradm.cluster_option` | `ClusterOption`: the `-c/--cluster` and `--clusters` options, `all_clusters()` and `validate()` |
| `clusteradm.flags` | `ClusteradmFlags`: `--dry-run` and `--timeout` (default 300), plus `set_context` |
| `clusteradm.feature_gates` | `FeatureSpec`, `MutableFeatureGate`, `FeatureGate`, `FeatureGateMode`, the default hub and spoke gate tables and `convert_to_feature_gate_api` |
| `clusteradm.preflight` | `HubKubeconfigCheck`, `DeployModeCheck`, `ClusterNameCheck` and `valid_api_host` |
| `clusteradm.join` | `JoinOptions`, `build_parser()` for the join options, and `random_suffix` |
| `clusteradm.unjoin` | `UnjoinOptions`, `UnjoinValues`, `KlusterletInfo`, `Backoff`, `purge_operator`, `wait_resource_to_be_deleted`, `NotFoundError`, `AggregateError` |
| `clusteradm.hubaddon` | `UninstallHubAddonOptions` and `check_existing_addon` |
| `clusteradm.proxy_tls` | `ProxyCertificates` and `build_tls_context` |
| `clusteradm.proxy_health` | `HealthOptions`, `build_parser()` and `HealthTableWriter` |
| `clusteradm.proxy_kubectl` | `KubectlOptions`, `managed_service_account_token`, `generate_kubeconfig`, `run_kubectl_command`, `interactive_session` |

## Examples

Preflight checks return a pair of warnings and errors:

```python
from clusteradm.preflight import ClusterNameCheck, DeployModeCheck, valid_api_host

valid_api_host("https://1.2.3.4")   # True
valid_api_host("1.2.3.4")           # False

warnings, errors = ClusterNameCheck("cluster1").check()        # ([], [])
warnings, errors = DeployModeCheck(mode="Hosted").check()
# errors: "--managed-cluster-kubeconfig should be set in hosted deploy mode"
```

`HubKubeconfigCheck` checks the hub kubeconfig; when it carries CA data it
asks the hub's `/version` and `/apis/cluster.open-cluster-management.io/v1`
endpoints over HTTPS. Pass `discovery_factory` to use another client.

Building the bootstrap kubeconfig that a klusterlet uses to reach the hub:

```python
from clusteradm.kubeconfig import build_hub_config, create_bootstrap_config, format_mode

bootstrap = create_bootstrap_config("https://hub.example.com:6443", "token")
hub = build_hub_config(bootstrap, "https://hub.example.com:6443", ca_data=None)
print(hub.to_yaml())

format_mode("HOSTED")   # "Hosted"
```

Completing join options derives the klusterlet name, namespace, install mode
and feature gates:

```python
from clusteradm.join import JoinOptions

options = JoinOptions(
    token="token",
    hub_api_server="https://hub.example.com:6443",
    cluster_name="cluster1",
)
options.complete()
options.klusterlet_name, options.klusterlet_namespace
# ("klusterlet", "open-cluster-management-agent")
options.install_mode()   # "Default"
```

In hosted mode the klusterlet is named `klusterlet-hosted-` followed by six
random lower-case letters and digits.

Turning feature gate settings into the list the operator expects:

```python
from clusteradm.feature_gates import FeatureSpec, MutableFeatureGate, convert_to_feature_gate_api

gates = MutableFeatureGate()
gates.add({"AddonManagement": FeatureSpec(default=False)})

defaults = {"AddonManagement": FeatureSpec(default=True)}
convert_to_feature_gate_api(gates, defaults)
# [FeatureGate(feature="AddonManagement", mode=FeatureGateMode.DISABLE)]
```

Gates that are on by default but switched off are listed as disabled;
default-on gates that the gate set does not know are listed as enabled.

Removing the klusterlet operator gathers every failure except missing
resources into one `AggregateError`:

```python
from clusteradm.unjoin import purge_operator

purge_operator([delete_deployment, delete_crd, delete_cluster_role])
```

## What the package does not do

There is no `clusteradm` command to run: the package offers argument parsers
for the join and proxy health options but no entry point. It does not talk
to a Kubernetes API server to apply or delete resources, render the
klusterlet or cluster manager charts, watch for readiness, or open the
konnectivity tunnel and local HTTPS proxy used by the cluster-proxy
commands. `proxy_kubectl.run_kubectl_command` starts `kubectl` with a
generated kubeconfig; the proxy it points at must be provided separately.

## Running the tests

Install the `test` extra and run `pytest` from the project root.