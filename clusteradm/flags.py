"""Flags shared by every command."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import Any


class _BoundAction(argparse.Action):
    def __init__(self, option_strings, dest, target=None, **kwargs):
        self._target = target
        super().__init__(option_strings, dest, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None):
        value = True if self.nargs == 0 else values
        setattr(self._target, self.dest, value)
        setattr(namespace, self.dest, value)


@dataclass
class ClusteradmFlags:
    """Global options: dry run, timeout, context and the client factory."""

    kubectl_factory: Any = None
    dry_run: bool = False
    timeout: int = 300
    context: str = ""

    def add_arguments(self, parser: Any) -> None:
        """Register --dry-run and --timeout on an argparse parser."""
        parser.add_argument(
            "--dry-run",
            dest="dry_run",
            action=_BoundAction,
            target=self,
            nargs=0,
            default=self.dry_run,
            help="If set the generated resources will be displayed but not applied",
        )
        parser.add_argument(
            "--timeout",
            dest="timeout",
            action=_BoundAction,
            target=self,
            type=int,
            default=self.timeout,
            help="extend timeout from 300 secounds ",
        )

    def set_context(self, context: str | None) -> None:
        """Use the given context when one is provided."""
        if context is not None:
            self.context = context