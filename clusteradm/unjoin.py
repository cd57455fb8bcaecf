"""Options and local logic of the command that removes a cluster from its hub."""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator

from clusteradm.preflight import INSTALL_MODE_DEFAULT, INSTALL_MODE_HOSTED

DEFAULT_KLUSTERLET_NAME = "klusterlet"
DEFAULT_AGENT_NAMESPACE = "open-cluster-management-agent"
MANAGED_KUBECONFIG_SECRET_NAME = "external-managed-kubeconfig"
OPERATOR_NAMESPACE = "open-cluster-management"
KLUSTERLET_CRD_NAME = "klusterlets.operator.open-cluster-management.io"
_OPERATOR_GROUP = "operator.open-cluster-management.io"

# Resources removed when the operator is purged, in deletion order:
# (kind, namespace, name); an empty namespace marks a cluster-scoped resource.
OPERATOR_RESOURCES: tuple[tuple[str, str, str], ...] = (
    ("Deployment", OPERATOR_NAMESPACE, "klusterlet"),
    ("CustomResourceDefinition", "", KLUSTERLET_CRD_NAME),
    ("ClusterRole", "", "klusterlet"),
    ("ClusterRoleBinding", "", "klusterlet"),
    ("ServiceAccount", OPERATOR_NAMESPACE, "klusterlet"),
)


class NotFoundError(Exception):
    """A requested resource does not exist."""

    def __init__(self, resource: str, name: str) -> None:
        self.resource = resource
        self.name = name
        super().__init__(f'{resource} "{name}" not found')


class AggregateError(Exception):
    """Several errors reported together."""

    def __init__(self, errors: Iterable[BaseException]) -> None:
        self.errors = list(errors)
        if len(self.errors) == 1:
            message = str(self.errors[0])
        else:
            message = "[" + ", ".join(str(e) for e in self.errors) + "]"
        super().__init__(message)


@dataclass
class KlusterletInfo:
    """The parts of a klusterlet resource that unjoin looks at."""

    name: str
    cluster_name: str
    mode: str = INSTALL_MODE_DEFAULT


@dataclass
class UnjoinValues:
    """The klusterlet to remove and where its agents run."""

    cluster_name: str = ""
    deploy_mode: str = INSTALL_MODE_DEFAULT
    klusterlet_name: str = DEFAULT_KLUSTERLET_NAME
    agent_namespace: str = DEFAULT_AGENT_NAMESPACE


@dataclass
class UnjoinOptions:
    """Command-line options of unjoin."""

    cluster_name: str = ""
    purge_operator: bool = True
    output_file: str = ""
    values: UnjoinValues = field(default_factory=UnjoinValues)

    def complete(self) -> None:
        """Fill in the values for the default deploy mode."""
        self.values = UnjoinValues(
            cluster_name=self.cluster_name,
            deploy_mode=INSTALL_MODE_DEFAULT,
            klusterlet_name=DEFAULT_KLUSTERLET_NAME,
            agent_namespace=DEFAULT_AGENT_NAMESPACE,
        )

    def validate(self) -> None:
        """Raise ValueError when no cluster name is given."""
        if not self.values.cluster_name:
            raise ValueError("name is missing")

    def resolve_klusterlet(self, klusterlets: Iterable[KlusterletInfo]) -> KlusterletInfo:
        """Find the klusterlet of the cluster; hosted ones update the values."""
        for item in klusterlets:
            if item.cluster_name != self.values.cluster_name:
                continue
            if item.mode == INSTALL_MODE_HOSTED:
                self.values.deploy_mode = item.mode
                self.values.klusterlet_name = item.name
                self.values.agent_namespace = item.name
            return item
        raise NotFoundError(f"klusterlet.{_OPERATOR_GROUP}", self.values.cluster_name)


@dataclass
class Backoff:
    """Exponential backoff between retries."""

    duration: float = 0.01
    factor: float = 5.0
    jitter: float = 0.1
    steps: int = 4
    cap: float = 0.0

    def _jittered(self, duration: float) -> float:
        if self.jitter > 0:
            return duration + random.random() * self.jitter * duration
        return duration

    def delays(self) -> Iterator[float]:
        """Yield the successive waits, growing by the factor up to the cap."""
        duration = self.duration
        steps = self.steps
        while True:
            if steps < 1:
                yield self._jittered(duration)
                continue
            steps -= 1
            current = duration
            if self.factor:
                duration *= self.factor
                if self.cap > 0 and duration > self.cap:
                    duration = self.cap
                    steps = 0
            yield self._jittered(current)


UNJOIN_BACKOFF = Backoff(duration=5.0)


def purge_operator(deleters: Iterable[Callable[[], Any]]) -> None:
    """Run every deletion; missing resources are fine, other failures are gathered."""
    errors: list[Exception] = []
    for delete in deleters:
        try:
            delete()
        except NotFoundError:
            continue
        except Exception as exc:  # every failure is reported together
            errors.append(exc)
    if errors:
        raise AggregateError(errors)


def wait_resource_to_be_deleted(
    get: Callable[[], Any],
    backoff: Backoff | None = None,
    sleep: Callable[[float], Any] = time.sleep,
) -> None:
    """Poll until get raises NotFoundError; raise the last error when attempts run out."""
    backoff = backoff or UNJOIN_BACKOFF
    delays = backoff.delays()
    last_error: Exception | None = None
    for attempt in range(backoff.steps):
        try:
            get()
        except NotFoundError:
            return
        except Exception as exc:  # retried like any other failure
            last_error = exc
        else:
            last_error = RuntimeError("klusterlet still exists")
        if attempt == backoff.steps - 1:
            break
        sleep(next(delays))
    if last_error is not None:
        raise last_error