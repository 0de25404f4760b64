from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from .errors import ConflictError, NotFoundError, TransportError
from .models import RouteTable
from .settings import Settings, settings as default_settings

GROUP = "networking.gloo.solo.io"
VERSION = "v2"
PLURAL = "routetables"

HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409

# Raised below ApiException when the API server cannot be reached or times out.
TRANSPORT_ERRORS = (HTTPError, OSError)

logger = logging.getLogger(__name__)


class RouteTableStore(Protocol):
    def get(self, name: str, namespace: str) -> RouteTable: ...

    def list(self, labels: Mapping[str, str] | None = None, namespace: str | None = None) -> list[RouteTable]: ...

    def patch(self, original: RouteTable, desired: RouteTable) -> None: ...


def create_merge_patch(before: Any, after: Any) -> Any:
    """JSON merge patch (RFC 7386) turning ``before`` into ``after``.

    Lists are replaced as a whole; removed keys become ``None``.
    """
    if not isinstance(before, dict) or not isinstance(after, dict):
        return after
    patch: dict[str, Any] = {}
    for key in before:
        if key not in after:
            patch[key] = None
    for key, value in after.items():
        if key not in before:
            patch[key] = value
            continue
        old = before[key]
        if isinstance(old, dict) and isinstance(value, dict):
            sub = create_merge_patch(old, value)
            if sub:
                patch[key] = sub
        elif old != value:
            patch[key] = value
    return patch


def label_selector(labels: Mapping[str, str] | None) -> str | None:
    if not labels:
        return None
    return ",".join(f"{k}={v}" for k, v in sorted(labels.items()))


def _translate(e: ApiException, what: str) -> Exception:
    if e.status == HTTP_NOT_FOUND:
        return NotFoundError(f"{what}: not found")
    if e.status == HTTP_CONFLICT:
        return ConflictError(f"{what}: conflict: {e.reason}")
    return TransportError(f"{what}: {e.status} {e.reason}")


class KubeRouteTableStore:
    """Route table access through the Kubernetes custom objects API."""

    def __init__(self, api: client.CustomObjectsApi, cfg: Settings | None = None):
        self.api = api
        self.settings = cfg or default_settings

    @classmethod
    def from_settings(cls, cfg: Settings | None = None) -> KubeRouteTableStore:
        """Build a store from the pod's service account, or from kubeconfig outside a cluster.

        An explicit ``TR_KUBECONFIG`` skips the in-cluster attempt.
        """
        cfg = cfg or default_settings
        conf = client.Configuration()
        if cfg.kubeconfig is None:
            try:
                config.load_incluster_config(client_configuration=conf)
            except config.ConfigException as e:
                logger.debug("In-cluster config unavailable (%s), falling back to kubeconfig", e)
            else:
                logger.info("Loaded in-cluster kubernetes config")
                return cls(client.CustomObjectsApi(client.ApiClient(conf)), cfg)
        config.load_kube_config(
            config_file=cfg.kubeconfig,
            context=cfg.kube_context,
            client_configuration=conf,
        )
        logger.info("Loaded kubeconfig (context=%s)", cfg.kube_context or "current")
        return cls(client.CustomObjectsApi(client.ApiClient(conf)), cfg)

    def get(self, name: str, namespace: str) -> RouteTable:
        what = f"get RouteTable {name}.{namespace}"
        try:
            obj = self.api.get_namespaced_custom_object(
                GROUP, VERSION, namespace, PLURAL, name,
                _request_timeout=self.settings.api_timeout_s,
            )
        except ApiException as e:
            raise _translate(e, what) from e
        except TRANSPORT_ERRORS as e:
            raise TransportError(f"{what}: {e}") from e
        return RouteTable.from_manifest(obj)

    def list(self, labels: Mapping[str, str] | None = None, namespace: str | None = None) -> list[RouteTable]:
        selector = label_selector(labels)
        what = f"list RouteTables ({selector or 'all'})"
        try:
            if namespace:
                result = self.api.list_namespaced_custom_object(
                    GROUP, VERSION, namespace, PLURAL,
                    label_selector=selector,
                    _request_timeout=self.settings.api_timeout_s,
                )
            else:
                result = self.api.list_cluster_custom_object(
                    GROUP, VERSION, PLURAL,
                    label_selector=selector,
                    _request_timeout=self.settings.api_timeout_s,
                )
        except ApiException as e:
            raise _translate(e, what) from e
        except TRANSPORT_ERRORS as e:
            raise TransportError(f"{what}: {e}") from e
        return [RouteTable.from_manifest(item) for item in result.get("items", [])]

    def patch(self, original: RouteTable, desired: RouteTable) -> None:
        body = create_merge_patch(original.to_manifest(), desired.to_manifest())
        if not body:
            logger.debug("RouteTable %s unchanged, skipping patch", original.key)
            return
        if self.settings.optimistic_lock and original.resource_version:
            body.setdefault("metadata", {})["resourceVersion"] = original.resource_version
        what = f"patch RouteTable {original.key}"
        try:
            self.api.patch_namespaced_custom_object(
                GROUP, VERSION, original.namespace, PLURAL, original.name, body,
                _request_timeout=self.settings.api_timeout_s,
            )
        except ApiException as e:
            raise _translate(e, what) from e
        except TRANSPORT_ERRORS as e:
            raise TransportError(f"{what}: {e}") from e
