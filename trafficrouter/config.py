from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError
from .models import Rollout

PLUGIN_NAME = "solo-io/glooplatform"

logger = logging.getLogger(__name__)


class ObjectSelector(BaseModel):
    """Selects route tables: by exact name when ``name`` is set, else by labels."""

    name: str = Field("", description="Route table name; takes precedence over labels")
    namespace: str = Field("", description="Defaults to the rollout namespace")
    labels: dict[str, str] | None = None

    @field_validator("name", "namespace", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        # An explicit YAML null reads the same as an omitted field.
        return "" if v is None else v

    def is_name_empty(self) -> bool:
        return self.name == ""


class RouteSelector(BaseModel):
    name: str = Field("", description="HTTP route name, case-insensitive")
    labels: dict[str, str] | None = None

    @field_validator("name", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class PluginConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    route_table_selector: ObjectSelector | None = Field(None, alias="routeTableSelector")
    route_selector: RouteSelector | None = Field(None, alias="routeSelector")

    # Parsed for compatibility with existing rollouts; weights do not depend on them.
    canary_subset_selector: dict[str, str] | None = Field(None, alias="canarySubsetSelector")
    stable_subset_selector: dict[str, str] | None = Field(None, alias="stableSubsetSelector")


def _decode_blob(blob: Any) -> Any:
    if isinstance(blob, (bytes, bytearray)):
        blob = blob.decode("utf-8")
    if isinstance(blob, str):
        try:
            return json.loads(blob)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"invalid {PLUGIN_NAME} configuration: {e}") from e
    return blob


def get_plugin_config(rollout: Rollout) -> PluginConfig:
    """Read this plugin's configuration out of the rollout's traffic routing section."""
    if rollout.canary is None:
        raise ConfigurationError("rollout has no canary strategy to read plugin configuration from")

    logger.debug("Checking for config for plugin %s", PLUGIN_NAME)
    if PLUGIN_NAME not in rollout.canary.plugins:
        raise ConfigurationError(f"no configuration found for plugin {PLUGIN_NAME}")
    raw = _decode_blob(rollout.canary.plugins[PLUGIN_NAME])
    if raw is None:
        raw = {}

    try:
        cfg = PluginConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"invalid {PLUGIN_NAME} configuration: {e}") from e

    if cfg.route_table_selector is not None and cfg.route_table_selector.namespace == "":
        cfg.route_table_selector.namespace = rollout.namespace
    return cfg
