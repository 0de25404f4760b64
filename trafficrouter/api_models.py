from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _RpcModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RolloutRequest(_RpcModel):
    rollout: dict[str, Any] = Field(..., description="Argo Rollout manifest")


class SetWeightRequest(RolloutRequest):
    desired_weight: int = Field(..., alias="desiredWeight", ge=0, le=100, description="Canary weight (percentage)")
    additional_destinations: list[dict[str, Any]] = Field(default_factory=list, alias="additionalDestinations")


class VerifyWeightRequest(SetWeightRequest):
    pass


class SetHeaderRouteRequest(RolloutRequest):
    header_route: dict[str, Any] | None = Field(None, alias="headerRoute")


class SetMirrorRouteRequest(RolloutRequest):
    mirror_route: dict[str, Any] | None = Field(None, alias="mirrorRoute")


class RpcResponse(_RpcModel):
    error_string: str = Field("", alias="errorString")


class VerifyWeightResponse(RpcResponse):
    verified: str
