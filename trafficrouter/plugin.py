from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from . import events
from .config import PluginConfig, get_plugin_config
from .errors import (
    ConfigurationError,
    InvalidWeightError,
    RpcResult,
    TrafficRouterError,
    UnsupportedStrategyError,
)
from .models import Rollout
from .reconciler import reconcile_route_table
from .selector import get_selected_route_tables
from .store import KubeRouteTableStore, RouteTableStore

TYPE = "GlooPlatformAPI"

logger = logging.getLogger(__name__)


class RpcVerified(str, Enum):
    NOT_VERIFIED = "NotVerified"
    VERIFIED = "Verified"


class RpcPlugin:
    """Traffic router operations called by the rollout controller.

    Every operation returns an ``RpcResult``; errors never escape as exceptions.
    """

    def __init__(self, store: RouteTableStore | None = None):
        self.store = store

    def init(self) -> RpcResult:
        if self.store is not None:
            return RpcResult.success()
        try:
            self.store = KubeRouteTableStore.from_settings()
        except Exception as e:
            logger.error("Failed to initialise route table client: %s", e)
            return RpcResult.failure(e)
        return RpcResult.success()

    def set_weight(
        self,
        rollout: Rollout,
        desired_weight: int,
        additional_destinations: list[dict[str, Any]] | None = None,
    ) -> RpcResult:
        try:
            self._set_weight(rollout, desired_weight)
        except TrafficRouterError as e:
            logger.warning("SetWeight %s.%s failed: %s", rollout.name, rollout.namespace, e)
            events.log_event("ERROR", f"SetWeight {desired_weight} failed: {e}", rollout=self._rollout_key(rollout))
            return RpcResult.failure(e)
        return RpcResult.success()

    def set_header_route(self, rollout: Rollout, header_routing: dict[str, Any] | None = None) -> RpcResult:
        return RpcResult.success()

    def set_mirror_route(self, rollout: Rollout, mirror_route: dict[str, Any] | None = None) -> RpcResult:
        return RpcResult.success()

    def verify_weight(
        self,
        rollout: Rollout,
        desired_weight: int,
        additional_destinations: list[dict[str, Any]] | None = None,
    ) -> tuple[RpcVerified, RpcResult]:
        return RpcVerified.VERIFIED, RpcResult.success()

    def remove_managed_routes(self, rollout: Rollout) -> RpcResult:
        # The canary destination stays behind at weight 0 once the rollout completes.
        return RpcResult.success()

    def type(self) -> str:
        return TYPE

    def _set_weight(self, rollout: Rollout, desired_weight: int) -> None:
        if rollout.blue_green is not None and rollout.canary is None:
            raise UnsupportedStrategyError(f"blue-green strategy is not supported by {TYPE}")
        if rollout.canary is None:
            raise ConfigurationError("rollout has no canary strategy")
        if not rollout.canary.targets_services:
            raise ConfigurationError(
                "canary strategy must declare both stableService and canaryService to route traffic"
            )
        if not 0 <= desired_weight <= 100:
            raise InvalidWeightError(f"desired weight must be between 0 and 100, got {desired_weight}")

        plugin_config = get_plugin_config(rollout)
        logger.debug("For canary strategy, setting weight to %d", desired_weight)
        self._set_weight_for_canary_strategy(rollout, desired_weight, plugin_config)

    def _set_weight_for_canary_strategy(self, rollout: Rollout, desired_weight: int, plugin_config: PluginConfig) -> None:
        if self.store is None:
            raise ConfigurationError("plugin is not initialised")

        # Tables are handled one at a time; the first failed patch stops the batch.
        for before in get_selected_route_tables(self.store, plugin_config.route_table_selector):
            desired = reconcile_route_table(before, rollout, desired_weight, plugin_config)
            try:
                self.store.patch(before, desired)
            except TrafficRouterError as e:
                logger.error("failed to patch RouteTable %s: %s", before.key, e)
                raise
            events.log_event(
                "INFO",
                f"Set canary weight {desired_weight}%, stable weight {100 - desired_weight}%",
                rollout=self._rollout_key(rollout),
                route_table=before.key,
            )

    @staticmethod
    def _rollout_key(rollout: Rollout) -> str:
        return f"{rollout.name}.{rollout.namespace}"
