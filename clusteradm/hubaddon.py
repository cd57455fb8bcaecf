"""Options and checks of the command that uninstalls built-in hub add-ons."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Collection, Iterable

DEFAULT_NAMESPACE = "open-cluster-management"


@dataclass
class UninstallHubAddonOptions:
    """Command-line options of uninstall hub-addon."""

    names: str = ""
    namespace: str = DEFAULT_NAMESPACE

    def validate(self, known_addons: Collection[str]) -> None:
        """Raise ValueError unless every name is a known built-in add-on."""
        if not self.names:
            raise ValueError("names is missing")
        for name in self.names.split(","):
            if name not in known_addons:
                raise ValueError(f"invalid add-on name {name}")

    def addon_names(self) -> list[str]:
        """The requested add-ons, without repeats, in the order given."""
        seen: set[str] = set()
        addons: list[str] = []
        for name in self.names.split(","):
            if name in seen:
                continue
            seen.add(name)
            addons.append(name.strip())
        return addons


def check_existing_addon(name: str, namespaces: Iterable[str]) -> None:
    """Raise ValueError when the add-on is still enabled in any cluster namespace."""
    enabled = list(namespaces)
    if enabled:
        raise ValueError(
            f"there are still addons for {name} enabled on some clusters, "
            f"run `cluster addon disable --names {name} --clusters {','.join(enabled)}` "
            "to disable addons"
        )