from __future__ import annotations

from dataclasses import dataclass


class TrafficRouterError(Exception):
    """Base class for failures reported back to the rollout controller."""

    kind = "internal"


class ConfigurationError(TrafficRouterError):
    kind = "configuration"


class InvalidWeightError(ConfigurationError):
    kind = "invalid-weight"


class UnsupportedStrategyError(TrafficRouterError):
    kind = "unsupported-strategy"


class MissingStableDestinationError(TrafficRouterError):
    """A canary destination had to be created but there is no stable one to copy."""

    kind = "missing-stable-destination"


class ManifestError(TrafficRouterError):
    kind = "manifest"


class StoreError(TrafficRouterError):
    kind = "store"


class NotFoundError(StoreError):
    kind = "not-found"


class ConflictError(StoreError):
    kind = "conflict"


class TransportError(StoreError):
    kind = "transport"


@dataclass(frozen=True)
class RpcResult:
    """Outcome of one RPC operation.

    ``kind`` is None on success. The host only ever sees ``error_string``.
    """

    kind: str | None = None
    message: str = ""

    @classmethod
    def success(cls) -> "RpcResult":
        return cls()

    @classmethod
    def failure(cls, exc: Exception) -> "RpcResult":
        kind = exc.kind if isinstance(exc, TrafficRouterError) else "internal"
        return cls(kind=kind, message=str(exc) or type(exc).__name__)

    @property
    def ok(self) -> bool:
        return self.kind is None

    @property
    def error_string(self) -> str:
        return "" if self.ok else self.message
