"""Options selecting one or more managed clusters."""

from __future__ import annotations

import argparse
import csv
from dataclasses import dataclass, field
from typing import Any


def _split_csv(value: str) -> list[str]:
    if value == "":
        return []
    return next(csv.reader([value]))


class _ClusterAction(argparse.Action):
    def __init__(self, option_strings, dest, target=None, **kwargs):
        self._target = target
        super().__init__(option_strings, dest, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None):
        setattr(self._target, self.dest, values)
        setattr(namespace, self.dest, values)


class _ClustersAction(argparse.Action):
    def __init__(self, option_strings, dest, target=None, **kwargs):
        self._target = target
        self._changed = False
        super().__init__(option_strings, dest, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None):
        items = _split_csv(values)
        if self._changed:
            items = list(getattr(self._target, self.dest)) + items
        self._changed = True
        setattr(self._target, self.dest, items)
        setattr(namespace, self.dest, list(items))


@dataclass
class ClusterOption:
    """Holds --cluster and --clusters and checks that they make sense."""

    cluster: str = ""
    clusters: list[str] = field(default_factory=list)
    allow_unset: bool = False

    def allowing_unset(self) -> "ClusterOption":
        """Allow neither flag to be given; returns self."""
        self.allow_unset = True
        return self

    def add_arguments(self, parser: Any) -> None:
        """Register the cluster flags on an argparse parser."""
        parser.add_argument(
            "-c",
            "--cluster",
            dest="cluster",
            action=_ClusterAction,
            target=self,
            default=self.cluster,
            help="Name of the managed cluster",
        )
        parser.add_argument(
            "--clusters",
            dest="clusters",
            action=_ClustersAction,
            target=self,
            default=list(self.clusters),
            help="A list of the managed clusters.",
        )

    def all_clusters(self) -> set[str]:
        """Return every cluster named by either flag."""
        output = set(self.clusters)
        if self.cluster:
            output.add(self.cluster)
        return output

    def validate(self) -> None:
        """Raise ValueError when the flags are empty or missing."""
        if any(not c for c in self.clusters):
            raise ValueError("--clusters cannot be set as an empty value")
        if not self.cluster and not self.clusters and not self.allow_unset:
            raise ValueError("either --cluster or --clusters needs to be set")