from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Mapping

from .errors import ManifestError, MissingStableDestinationError


def _mapping(value: Any, what: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ManifestError(f"{what} must be a mapping, got {type(value).__name__}")
    return dict(value)


def _str_map(value: Any, what: str) -> dict[str, str] | None:
    if value is None:
        return None
    return {str(k): str(v) for k, v in _mapping(value, what).items()}


def _opt_str(value: Any) -> str | None:
    return None if value is None else str(value)


@dataclass
class ObjectReference:
    name: str | None = None
    namespace: str | None = None
    cluster: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Any) -> ObjectReference:
        data = _mapping(raw, "ref")
        return cls(
            name=_opt_str(data.pop("name", None)),
            namespace=_opt_str(data.pop("namespace", None)),
            cluster=_opt_str(data.pop("cluster", None)),
            extra=data,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.name is not None:
            out["name"] = self.name
        if self.namespace is not None:
            out["namespace"] = self.namespace
        if self.cluster is not None:
            out["cluster"] = self.cluster
        out.update(copy.deepcopy(self.extra))
        return out


@dataclass
class DestinationReference:
    """A weighted pointer to a backend, optionally pinned to a subset."""

    ref: ObjectReference | None = None
    weight: int | None = None
    subset: dict[str, str] | None = None
    kind: str | None = None
    port: dict[str, Any] | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        if self.ref is None:
            return ""
        return self.ref.name or ""

    @classmethod
    def from_dict(cls, raw: Any) -> DestinationReference:
        data = _mapping(raw, "destination")
        ref = data.pop("ref", None)
        weight = data.pop("weight", None)
        if weight is not None:
            try:
                weight = int(weight)
            except (TypeError, ValueError) as e:
                raise ManifestError(f"destination weight must be an integer, got {weight!r}") from e
        port = data.pop("port", None)
        return cls(
            ref=ObjectReference.from_dict(ref) if ref is not None else None,
            weight=weight,
            subset=_str_map(data.pop("subset", None), "destination subset"),
            kind=_opt_str(data.pop("kind", None)),
            port=_mapping(port, "destination port") if port is not None else None,
            extra=data,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.ref is not None:
            out["ref"] = self.ref.to_dict()
        if self.port is not None:
            out["port"] = copy.deepcopy(self.port)
        if self.kind is not None:
            out["kind"] = self.kind
        if self.subset is not None:
            out["subset"] = dict(self.subset)
        if self.weight is not None:
            out["weight"] = self.weight
        out.update(copy.deepcopy(self.extra))
        return out

    def copy_for(self, name: str, weight: int) -> DestinationReference:
        """Return a copy of this destination pointing at ``name`` with ``weight``.

        Namespace, cluster, subset labels, port, kind and any unrecognised
        fields are carried over; only the ref name and the weight change.
        """
        if self.ref is None:
            raise MissingStableDestinationError(f"destination has no ref to derive {name!r} from")
        ref = ObjectReference(
            name=name,
            namespace=self.ref.namespace,
            cluster=self.ref.cluster,
            extra=copy.deepcopy(self.ref.extra),
        )
        return DestinationReference(
            ref=ref,
            weight=weight,
            subset=dict(self.subset) if self.subset is not None else None,
            kind=self.kind,
            port=copy.deepcopy(self.port),
            extra=copy.deepcopy(self.extra),
        )


@dataclass
class ForwardToAction:
    destinations: list[DestinationReference] | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Any) -> ForwardToAction:
        data = _mapping(raw, "forwardTo")
        dests = data.pop("destinations", None)
        if dests is not None and not isinstance(dests, list):
            raise ManifestError("forwardTo.destinations must be a list")
        return cls(
            destinations=[DestinationReference.from_dict(d) for d in dests] if dests is not None else None,
            extra=data,
        )

    def to_dict(self) -> dict[str, Any]:
        out = copy.deepcopy(self.extra)
        if self.destinations is not None:
            out["destinations"] = [d.to_dict() for d in self.destinations]
        return out


@dataclass
class HTTPRoute:
    name: str | None = None
    labels: dict[str, str] | None = None
    forward_to: ForwardToAction | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Any) -> HTTPRoute:
        data = _mapping(raw, "http route")
        forward_to = data.pop("forwardTo", None)
        return cls(
            name=_opt_str(data.pop("name", None)),
            labels=_str_map(data.pop("labels", None), "http route labels"),
            forward_to=ForwardToAction.from_dict(forward_to) if forward_to is not None else None,
            extra=data,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.name is not None:
            out["name"] = self.name
        if self.labels is not None:
            out["labels"] = dict(self.labels)
        out.update(copy.deepcopy(self.extra))
        if self.forward_to is not None:
            out["forwardTo"] = self.forward_to.to_dict()
        return out


@dataclass
class RouteTable:
    """A Gloo ``RouteTable`` resource.

    Only ``spec.http`` is modelled; the rest of the document is kept verbatim in
    ``manifest`` so that ``to_manifest()`` returns it unchanged.
    """

    name: str
    namespace: str
    labels: dict[str, str] = field(default_factory=dict)
    resource_version: str | None = None
    http: list[HTTPRoute] = field(default_factory=list)
    manifest: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.name}.{self.namespace}"

    @classmethod
    def from_manifest(cls, raw: Any) -> RouteTable:
        doc = _mapping(raw, "RouteTable")
        meta = _mapping(doc.get("metadata"), "metadata")
        name = meta.get("name")
        if not name:
            raise ManifestError("RouteTable metadata.name is required")
        spec = _mapping(doc.get("spec"), "spec")
        http = spec.get("http") or []
        if not isinstance(http, list):
            raise ManifestError("RouteTable spec.http must be a list")
        return cls(
            name=str(name),
            namespace=str(meta.get("namespace") or ""),
            labels=_str_map(meta.get("labels"), "metadata.labels") or {},
            resource_version=_opt_str(meta.get("resourceVersion")),
            http=[HTTPRoute.from_dict(r) for r in http],
            manifest=copy.deepcopy(doc),
        )

    def to_manifest(self) -> dict[str, Any]:
        out = copy.deepcopy(self.manifest)
        spec = out.get("spec")
        if self.http or (isinstance(spec, dict) and "http" in spec):
            out.setdefault("spec", {})["http"] = [r.to_dict() for r in self.http]
        return out

    def copy(self) -> RouteTable:
        return copy.deepcopy(self)


@dataclass
class CanaryStrategy:
    stable_service: str = ""
    canary_service: str = ""
    plugins: dict[str, Any] = field(default_factory=dict)

    @property
    def targets_services(self) -> bool:
        return bool(self.stable_service) and bool(self.canary_service)


@dataclass
class Rollout:
    """The parts of an Argo ``Rollout`` the router reads."""

    name: str
    namespace: str
    canary: CanaryStrategy | None = None
    blue_green: dict[str, Any] | None = None

    @classmethod
    def from_manifest(cls, raw: Any) -> Rollout:
        doc = _mapping(raw, "Rollout")
        meta = _mapping(doc.get("metadata"), "metadata")
        strategy = _mapping(_mapping(doc.get("spec"), "spec").get("strategy"), "spec.strategy")

        canary = None
        if strategy.get("canary") is not None:
            raw_canary = _mapping(strategy["canary"], "spec.strategy.canary")
            routing = _mapping(raw_canary.get("trafficRouting"), "trafficRouting")
            canary = CanaryStrategy(
                stable_service=str(raw_canary.get("stableService") or ""),
                canary_service=str(raw_canary.get("canaryService") or ""),
                plugins=_mapping(routing.get("plugins"), "trafficRouting.plugins"),
            )
        blue_green = None
        if strategy.get("blueGreen") is not None:
            blue_green = _mapping(strategy["blueGreen"], "spec.strategy.blueGreen")

        return cls(
            name=str(meta.get("name") or ""),
            namespace=str(meta.get("namespace") or ""),
            canary=canary,
            blue_green=blue_green,
        )
