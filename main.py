from __future__ import annotations

import logging

from fastapi import FastAPI, Query

from trafficrouter import events
from trafficrouter.api_models import (
    RolloutRequest,
    RpcResponse,
    SetHeaderRouteRequest,
    SetMirrorRouteRequest,
    SetWeightRequest,
    VerifyWeightRequest,
    VerifyWeightResponse,
)
from trafficrouter.errors import RpcResult, TrafficRouterError
from trafficrouter.models import Rollout
from trafficrouter.plugin import RpcPlugin, RpcVerified
from trafficrouter.settings import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("trafficrouter")

app = FastAPI(title="Gloo Platform traffic router")

plugin = RpcPlugin()


def _respond(result: RpcResult) -> RpcResponse:
    return RpcResponse(error_string=result.error_string)


def _rollout(body: RolloutRequest) -> tuple[Rollout | None, RpcResult]:
    try:
        return Rollout.from_manifest(body.rollout), RpcResult.success()
    except TrafficRouterError as e:
        return None, RpcResult.failure(e)


@app.on_event("startup")
def startup() -> None:
    if settings.enable_journal:
        events.init_db()
    result = plugin.init()
    if not result.ok:
        logger.warning("Route table client not initialised at startup: %s", result.message)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "healthy"}


@app.get("/type")
def plugin_type() -> dict[str, str]:
    return {"type": plugin.type()}


@app.post("/init", response_model=RpcResponse, response_model_by_alias=True)
def init() -> RpcResponse:
    return _respond(plugin.init())


@app.post("/set-weight", response_model=RpcResponse, response_model_by_alias=True)
def set_weight(body: SetWeightRequest) -> RpcResponse:
    rollout, result = _rollout(body)
    if rollout is None:
        return _respond(result)
    return _respond(plugin.set_weight(rollout, body.desired_weight, body.additional_destinations))


@app.post("/set-header-route", response_model=RpcResponse, response_model_by_alias=True)
def set_header_route(body: SetHeaderRouteRequest) -> RpcResponse:
    rollout, result = _rollout(body)
    if rollout is None:
        return _respond(result)
    return _respond(plugin.set_header_route(rollout, body.header_route))


@app.post("/set-mirror-route", response_model=RpcResponse, response_model_by_alias=True)
def set_mirror_route(body: SetMirrorRouteRequest) -> RpcResponse:
    rollout, result = _rollout(body)
    if rollout is None:
        return _respond(result)
    return _respond(plugin.set_mirror_route(rollout, body.mirror_route))


@app.post("/verify-weight", response_model=VerifyWeightResponse, response_model_by_alias=True)
def verify_weight(body: VerifyWeightRequest) -> VerifyWeightResponse:
    rollout, result = _rollout(body)
    if rollout is None:
        return VerifyWeightResponse(verified=RpcVerified.NOT_VERIFIED.value, error_string=result.error_string)
    verified, result = plugin.verify_weight(rollout, body.desired_weight, body.additional_destinations)
    return VerifyWeightResponse(verified=verified.value, error_string=result.error_string)


@app.post("/remove-managed-routes", response_model=RpcResponse, response_model_by_alias=True)
def remove_managed_routes(body: RolloutRequest) -> RpcResponse:
    rollout, result = _rollout(body)
    if rollout is None:
        return _respond(result)
    return _respond(plugin.remove_managed_routes(rollout))


@app.get("/events")
def list_events(limit: int = Query(100, ge=1, le=1000)) -> list[dict]:
    return events.latest_events(limit)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
