from __future__ import annotations

import logging
from typing import Mapping

from .config import ObjectSelector, RouteSelector
from .errors import ConfigurationError
from .models import HTTPRoute, RouteTable
from .store import RouteTableStore

logger = logging.getLogger(__name__)


def labels_match(selector: Mapping[str, str] | None, labels: Mapping[str, str] | None) -> bool:
    """Permissive label match.

    Only keys present on both sides are compared (case-insensitively); a key
    the target does not carry never disqualifies it.
    """
    if not selector:
        return True
    labels = labels or {}
    for key, want in selector.items():
        if key in labels and labels[key].casefold() != want.casefold():
            return False
    return True


def is_route_selected(route_selector: RouteSelector | None, route: HTTPRoute) -> bool:
    if route_selector is None:
        return True
    if route_selector.name and route_selector.name.casefold() != (route.name or "").casefold():
        return False
    if route_selector.labels is not None and not labels_match(route_selector.labels, route.labels):
        return False
    return True


def get_selected_route_tables(store: RouteTableStore, selector: ObjectSelector | None) -> list[RouteTable]:
    """Fetch the route tables a rollout targets.

    A non-empty name means a single get (labels are ignored); otherwise the
    tables are listed by label within the selector namespace.
    """
    if selector is None:
        raise ConfigurationError("routeTable selector is required")

    if not selector.is_name_empty():
        logger.debug("Getting route table %s.%s", selector.name, selector.namespace)
        return [store.get(selector.name, selector.namespace)]

    labels = dict(selector.labels) if selector.labels else None
    tables = store.list(labels=labels, namespace=selector.namespace or None)
    logger.debug("Listed route tables labels=%s namespace=%s: found %d", labels, selector.namespace, len(tables))
    return tables
