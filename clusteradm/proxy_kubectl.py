"""Run kubectl against a managed cluster through the cluster-proxy add-on."""

from __future__ import annotations

import os
import subprocess
import tempfile
import uuid
from dataclasses import dataclass, field
from typing import BinaryIO, Callable, Mapping, TextIO

import yaml

from clusteradm.cluster_option import ClusterOption

LOCAL_PROXY_SERVER = "https://localhost:9090"
LOCAL_PROXY_PORT = 8090
HTTP_PROXY_PORT = 9090

INTERACTIVE_GREETING = (
    b'Please enter the kubectl command and use "exit" to quit the interactive mode\n'
)
INTERACTIVE_PROMPT = b"kubectl> "
INTERACTIVE_FAREWELL = b"Exit from interactive mode"


@dataclass
class KubectlOptions:
    """Command-line options of proxy kubectl; only in-cluster certificates are used."""

    cluster_option: ClusterOption = field(default_factory=ClusterOption)
    managed_service_account: str = ""
    kubectl_args: str = ""
    interactive_mode: bool = False

    def validate(self) -> None:
        """Raise ValueError when no cluster or no managed service account is given."""
        self.cluster_option.validate()
        if not self.managed_service_account:
            raise ValueError("managedServiceAccount is required")


def managed_service_account_token(secret_data: Mapping[str, bytes | str], secret_name: str) -> str:
    """Return the token held in a managed service account's secret data."""
    if "token" not in secret_data:
        raise ValueError(f"token is not found in secret {secret_name}")
    token = secret_data["token"]
    if isinstance(token, bytes):
        return token.decode("utf-8")
    return token


def generate_kubeconfig(cluster: str, token: str, directory: str | None = None) -> str:
    """Write a kubeconfig that reaches the local proxy with the token; return its path."""
    document = {
        "apiVersion": "v1",
        "kind": "Config",
        "clusters": [
            {
                "name": "cluster",
                "cluster": {
                    "server": LOCAL_PROXY_SERVER,
                    # the local proxy presents its own certificate
                    "insecure-skip-tls-verify": True,
                },
            }
        ],
        "contexts": [
            {"name": "context", "context": {"cluster": "cluster", "user": "user"}}
        ],
        "current-context": "context",
        "preferences": {},
        "users": [{"name": "user", "user": {"token": token}}],
    }
    content = yaml.safe_dump(document, default_flow_style=False, sort_keys=True)
    directory = directory if directory is not None else tempfile.gettempdir()
    path = os.path.join(directory, f"{cluster}-{uuid.uuid4()}.kubeconfig")
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(content)
    os.chmod(path, 0o644)
    return path


def run_kubectl_command(kubeconfig_path: str, args: str) -> bytes:
    """Run kubectl with the space separated arguments; return its combined output."""
    env = dict(os.environ)
    env["KUBECONFIG"] = kubeconfig_path
    try:
        completed = subprocess.run(
            ["kubectl", *args.split(" ")],
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            check=False,
        )
    except OSError:
        # kubectl could not be started: there is no output to show
        return b""
    return completed.stdout or b""


def interactive_session(
    kubeconfig_path: str,
    input_stream: TextIO,
    output_stream: BinaryIO,
    runner: Callable[[str, str], bytes] = run_kubectl_command,
) -> None:
    """Read kubectl commands line by line and run each until "exit" is entered."""
    output_stream.write(INTERACTIVE_GREETING)
    while True:
        output_stream.write(INTERACTIVE_PROMPT)
        line = input_stream.readline()
        if not line.endswith("\n"):
            raise EOFError("read input failed")
        command = line.rstrip("\n")
        if command == "exit":
            output_stream.write(INTERACTIVE_FAREWELL)
            return
        output_stream.write(runner(kubeconfig_path, command))