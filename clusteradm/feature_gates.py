"""Feature gates and their conversion to the operator API form."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Mapping


@dataclass(frozen=True)
class FeatureSpec:
    """The default state of a feature."""

    default: bool
    lock_to_default: bool = False
    pre_release: str = "Beta"


class FeatureGateMode(str, enum.Enum):
    ENABLE = "Enable"
    DISABLE = "Disable"


@dataclass(frozen=True)
class FeatureGate:
    """A feature gate entry as written into an operator resource."""

    feature: str
    mode: FeatureGateMode


_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


def _parse_bool(raw: str) -> bool:
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ValueError(f"invalid syntax: {raw!r}")


class MutableFeatureGate:
    """A set of known features, each of which may be switched on or off."""

    def __init__(self) -> None:
        self._known: dict[str, FeatureSpec] = {}
        self._enabled: dict[str, bool] = {}

    def add(self, specs: Mapping[str, FeatureSpec]) -> None:
        """Register features; a known feature may not change its spec."""
        for name, spec in specs.items():
            existing = self._known.get(name)
            if existing is not None and existing != spec:
                raise ValueError(
                    f"feature gate {name!r} with different spec already exists: {existing}"
                )
        self._known.update(specs)

    def set(self, value: str) -> None:
        """Apply a comma separated list of Feature=bool pairs."""
        updates: dict[str, bool] = {}
        for part in value.split(","):
            part = part.strip()
            if not part:
                continue
            key, sep, raw = part.partition("=")
            key = key.strip()
            if not sep:
                raise ValueError(f"missing bool value for {key}")
            raw = raw.strip()
            try:
                updates[key] = _parse_bool(raw)
            except ValueError as exc:
                raise ValueError(f"invalid value of {key}={raw}, err: {exc}") from exc
        for key, enabled in updates.items():
            spec = self._known.get(key)
            if spec is None:
                raise ValueError(f"unrecognized feature gate: {key}")
            if spec.lock_to_default and spec.default != enabled:
                raise ValueError(
                    f"cannot set feature gate {key} to {str(enabled).lower()}, "
                    f"feature is locked to {str(spec.default).lower()}"
                )
        self._enabled.update(updates)

    def enabled(self, feature: str) -> bool:
        """Whether a feature is on; raises KeyError for unknown features."""
        if feature in self._enabled:
            return self._enabled[feature]
        try:
            return self._known[feature].default
        except KeyError:
            raise KeyError(f"feature {feature!r} is not registered in FeatureGate") from None

    def get_all(self) -> dict[str, FeatureSpec]:
        """Return a copy of every known feature and its spec."""
        return dict(self._known)


DEFAULT_HUB_REGISTRATION_FEATURE_GATES: dict[str, FeatureSpec] = {
    "DefaultClusterSet": FeatureSpec(default=True),
    "V1beta1CSRAPICompatibility": FeatureSpec(default=False, pre_release="Alpha"),
    "ManagedClusterAutoApproval": FeatureSpec(default=False, pre_release="Alpha"),
    "ResourceCleanup": FeatureSpec(default=False, pre_release="Alpha"),
}

DEFAULT_SPOKE_REGISTRATION_FEATURE_GATES: dict[str, FeatureSpec] = {
    "ClusterClaim": FeatureSpec(default=True),
    "AddonManagement": FeatureSpec(default=True),
    "V1beta1CSRAPICompatibility": FeatureSpec(default=False, pre_release="Alpha"),
    "MultipleHubs": FeatureSpec(default=False, pre_release="Alpha"),
}

DEFAULT_HUB_WORK_FEATURE_GATES: dict[str, FeatureSpec] = {
    "NilExecutorValidating": FeatureSpec(default=False, pre_release="Alpha"),
    "ManifestWorkReplicaSet": FeatureSpec(default=False, pre_release="Alpha"),
    "CloudEventsDrivers": FeatureSpec(default=False, pre_release="Alpha"),
}

DEFAULT_SPOKE_WORK_FEATURE_GATES: dict[str, FeatureSpec] = {
    "ExecutorValidatingCaches": FeatureSpec(default=False, pre_release="Alpha"),
    "RawFeedbackJsonString": FeatureSpec(default=False, pre_release="Alpha"),
}

DEFAULT_HUB_ADDON_MANAGER_FEATURE_GATES: dict[str, FeatureSpec] = {
    "AddonManagement": FeatureSpec(default=True),
}


HUB_MUTABLE_FEATURE_GATE = MutableFeatureGate()
HUB_MUTABLE_FEATURE_GATE.add(DEFAULT_HUB_WORK_FEATURE_GATES)
HUB_MUTABLE_FEATURE_GATE.add(DEFAULT_HUB_REGISTRATION_FEATURE_GATES)
HUB_MUTABLE_FEATURE_GATE.add(DEFAULT_HUB_ADDON_MANAGER_FEATURE_GATES)

SPOKE_MUTABLE_FEATURE_GATE = MutableFeatureGate()
SPOKE_MUTABLE_FEATURE_GATE.add(DEFAULT_SPOKE_REGISTRATION_FEATURE_GATES)
SPOKE_MUTABLE_FEATURE_GATE.add(DEFAULT_SPOKE_WORK_FEATURE_GATES)


def convert_to_feature_gate_api(
    feature_gates: MutableFeatureGate,
    default_feature_gate: Mapping[str, FeatureSpec],
) -> list[FeatureGate]:
    """List the gates to write for one component, given the user's settings."""
    features: list[FeatureGate] = []
    known = feature_gates.get_all()

    for feature in known:
        if feature not in default_feature_gate:
            continue
        if feature_gates.enabled(feature):
            features.append(FeatureGate(feature, FeatureGateMode.ENABLE))
        elif default_feature_gate[feature].default:
            features.append(FeatureGate(feature, FeatureGateMode.DISABLE))

    for feature, spec in default_feature_gate.items():
        if feature not in known and spec.default:
            features.append(FeatureGate(feature, FeatureGateMode.ENABLE))

    return features