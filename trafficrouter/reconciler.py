from __future__ import annotations

import logging

from .config import PluginConfig
from .errors import ConfigurationError, MissingStableDestinationError
from .matcher import matches_canary, matches_stable
from .models import CanaryStrategy, DestinationReference, ForwardToAction, Rollout, RouteTable
from .selector import is_route_selected

logger = logging.getLogger(__name__)


def reconcile_destinations(forward_to: ForwardToAction, canary: CanaryStrategy, desired_weight: int) -> bool:
    """Set stable/canary weights on one forward-to action, in place.

    The stable destination gets ``100 - desired_weight`` and the canary gets
    ``desired_weight``. Other destinations keep their weights; nothing is
    renormalised. When no canary destination exists one is derived from the
    stable destination and appended. Returns True if a destination was added.
    """
    remaining_weight = 100 - desired_weight
    destinations = forward_to.destinations if forward_to.destinations is not None else []

    stable: DestinationReference | None = None
    canary_dest: DestinationReference | None = None
    for dest in destinations:
        if stable is None and matches_stable(dest, canary):
            dest.weight = remaining_weight
            stable = dest
        if canary_dest is None and matches_canary(dest, canary):
            dest.weight = desired_weight
            canary_dest = dest
        if stable is not None and canary_dest is not None:
            break

    if canary_dest is not None:
        return False

    if stable is None:
        raise MissingStableDestinationError(
            f"no matching stable destination {canary.stable_service!r} to clone "
            f"canary destination {canary.canary_service!r} from"
        )
    destinations.append(stable.copy_for(canary.canary_service, desired_weight))
    forward_to.destinations = destinations
    return True


def reconcile_route_table(
    route_table: RouteTable,
    rollout: Rollout,
    desired_weight: int,
    plugin_config: PluginConfig,
) -> RouteTable:
    """Return a copy of ``route_table`` with weights set for ``desired_weight``.

    Routes without a forward-to action, or that the route selector rejects,
    come out unchanged. ``route_table`` itself is not modified and serves as
    the snapshot the patch is computed against.
    """
    if rollout.canary is None or not rollout.canary.targets_services:
        raise ConfigurationError("rollout must declare both stableService and canaryService")

    desired = route_table.copy()
    for http_route in desired.http:
        if http_route.forward_to is None:
            continue
        if not is_route_selected(plugin_config.route_selector, http_route):
            logger.debug("Skipping route %s.%s: not selected", desired.name, http_route.name)
            continue
        try:
            created = reconcile_destinations(http_route.forward_to, rollout.canary, desired_weight)
        except MissingStableDestinationError as e:
            raise MissingStableDestinationError(f"RouteTable {desired.key} route {http_route.name!r}: {e}") from e
        if created:
            logger.debug("Created canary destination on route %s of RouteTable %s", http_route.name, desired.key)
    return desired
