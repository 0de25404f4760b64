import importlib.util
import os

import pytest
from fastapi.testclient import TestClient

from trafficrouter.plugin import RpcPlugin


def _import_main_module(project_root):
    """Import main.py as a module without requiring it to be installed as a package."""
    main_path = os.path.join(project_root, "main.py")
    spec = importlib.util.spec_from_file_location("trafficrouter_main", main_path)
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)  # type: ignore[attr-defined]
    return mod


@pytest.fixture
def main(fake_store):
    project_root = os.path.dirname(os.path.dirname(__file__))
    mod = _import_main_module(project_root)
    # Inject the in-memory store so startup does not look for a kubeconfig
    mod.plugin = RpcPlugin(fake_store)
    return mod


@pytest.fixture
def client(main):
    with TestClient(main.app) as c:
        yield c


def test_health_and_type(client):
    assert client.get("/health").json() == {"status": "healthy"}
    assert client.get("/type").json() == {"type": "GlooPlatformAPI"}


def test_set_weight_success(client, fake_store, rollout_manifest):
    r = client.post("/set-weight", json={"rollout": rollout_manifest, "desiredWeight": 25, "additionalDestinations": []})

    assert r.status_code == 200
    assert r.json() == {"errorString": ""}
    ((_, after),) = fake_store.patches
    assert [(d.name, d.weight) for d in after.http[1].forward_to.destinations] == [("stable", 75), ("canary", 25)]


def test_errors_are_flattened_to_a_string(client, rollout_manifest):
    rollout_manifest["spec"]["strategy"] = {"blueGreen": {"activeService": "active"}}

    r = client.post("/set-weight", json={"rollout": rollout_manifest, "desiredWeight": 25})

    assert r.status_code == 200
    assert r.json() == {"errorString": "blue-green strategy is not supported by GlooPlatformAPI"}


def test_malformed_rollout_is_reported(client):
    r = client.post("/set-weight", json={"rollout": {"spec": {"strategy": "canary"}}, "desiredWeight": 5})

    assert r.status_code == 200
    assert "spec.strategy must be a mapping" in r.json()["errorString"]


def test_desired_weight_is_bounded(client, rollout_manifest, fake_store):
    r = client.post("/set-weight", json={"rollout": rollout_manifest, "desiredWeight": 150})

    assert r.status_code == 422
    assert fake_store.patches == []


def test_verify_weight_always_verified(client, rollout_manifest):
    r = client.post("/verify-weight", json={"rollout": rollout_manifest, "desiredWeight": 10})
    assert r.json() == {"verified": "Verified", "errorString": ""}


def test_verify_weight_with_malformed_rollout_is_not_verified(client):
    r = client.post("/verify-weight", json={"rollout": {"spec": {"strategy": "canary"}}, "desiredWeight": 10})

    body = r.json()
    assert body["verified"] == "NotVerified"
    assert "spec.strategy must be a mapping" in body["errorString"]


@pytest.mark.parametrize("path", ["/set-header-route", "/set-mirror-route", "/remove-managed-routes", "/init"])
def test_no_op_endpoints(client, rollout_manifest, fake_store, path):
    r = client.post(path, json={"rollout": rollout_manifest})
    assert r.json() == {"errorString": ""}
    assert fake_store.patches == []


def test_events_endpoint(client, rollout_manifest):
    client.post("/set-weight", json={"rollout": rollout_manifest, "desiredWeight": 40})

    events = client.get("/events", params={"limit": 5}).json()

    assert len(events) == 1
    assert events[0]["route_table"] == "rollouts-demo-routetable.gloo-rollouts-demo"
