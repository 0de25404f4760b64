import pytest

from trafficrouter.config import PluginConfig, RouteSelector
from trafficrouter.errors import ConfigurationError, MissingStableDestinationError
from trafficrouter.matcher import matches_canary, matches_stable
from trafficrouter.models import CanaryStrategy, DestinationReference, ForwardToAction, ObjectReference
from trafficrouter.reconciler import reconcile_destinations, reconcile_route_table


def _dest(name, weight=None, namespace="gloo-rollouts-demo", subset=None):
    return DestinationReference(
        ref=ObjectReference(name=name, namespace=namespace),
        weight=weight,
        subset=subset,
        kind="SERVICE",
        port={"number": 80},
    )


def _by_name(route_table, route_name):
    for r in route_table.http:
        if r.name == route_name:
            return r.forward_to.destinations
    raise KeyError(route_name)


def _set_demo_destinations(*dests):
    def modify(doc):
        doc["spec"]["http"][1]["forwardTo"]["destinations"] = [d.to_dict() for d in dests]

    return modify


CANARY = CanaryStrategy(stable_service="stable", canary_service="canary")


def test_matchers_ignore_case_and_namespace():
    d = _dest("STABLE", namespace="elsewhere")
    assert matches_stable(d, CANARY)
    assert not matches_canary(d, CANARY)
    assert not matches_stable(DestinationReference(), CANARY)


def test_canary_destination_is_synthesized_from_stable(route_table, rollout):
    stable_only = route_table.copy()
    stable_only.http[1].forward_to.destinations[0].subset = {"version": "v1"}

    desired = reconcile_route_table(stable_only, rollout, 10, PluginConfig())

    dests = _by_name(desired, "demo")
    assert len(dests) == 2
    stable, canary = dests
    assert (stable.name, stable.weight) == ("stable", 90)
    assert (canary.name, canary.weight) == ("canary", 10)
    assert canary.ref.namespace == "gloo-rollouts-demo"
    assert canary.subset == {"version": "v1"}
    assert canary.port == {"number": 80}
    assert canary.kind == "SERVICE"
    # the new destination is a copy, not an alias of the stable one
    assert canary.ref is not stable.ref


def test_existing_canary_destination_is_updated_in_place(make_route_table, rollout):
    table = make_route_table(_set_demo_destinations(_dest("stable", 100), _dest("canary", 0)))

    desired = reconcile_route_table(table, rollout, 10, PluginConfig())

    dests = _by_name(desired, "demo")
    assert [(d.name, d.weight) for d in dests] == [("stable", 90), ("canary", 10)]


def test_reconcile_twice_does_not_duplicate_canary(route_table, rollout):
    once = reconcile_route_table(route_table, rollout, 30, PluginConfig())
    twice = reconcile_route_table(once, rollout, 30, PluginConfig())

    assert twice.to_manifest() == once.to_manifest()
    assert [d.name for d in _by_name(twice, "demo")] == ["stable", "canary"]


@pytest.mark.parametrize("weight", [0, 1, 50, 99, 100])
def test_two_destination_weights_sum_to_100(route_table, rollout, weight):
    desired = reconcile_route_table(route_table, rollout, weight, PluginConfig())

    weights = {d.name: d.weight for d in _by_name(desired, "demo")}
    assert weights["canary"] == weight
    assert weights["stable"] + weights["canary"] == 100


def test_original_snapshot_is_not_mutated(route_table, rollout, route_table_manifest):
    reconcile_route_table(route_table, rollout, 40, PluginConfig())
    assert route_table.to_manifest() == route_table_manifest


def test_unrelated_destinations_keep_their_weight(make_route_table, rollout):
    table = make_route_table(_set_demo_destinations(_dest("stable", 70), _dest("legacy", 30)))

    desired = reconcile_route_table(table, rollout, 20, PluginConfig())

    weights = [(d.name, d.weight) for d in _by_name(desired, "demo")]
    # no renormalisation: the total is allowed to drift above 100
    assert weights == [("stable", 80), ("legacy", 30), ("canary", 20)]


def test_routes_not_selected_are_left_untouched(make_route_table, rollout, route_table_manifest):
    def add_other_route(doc):
        other = {
            "name": "other",
            "labels": {"route": "other"},
            "forwardTo": {"destinations": [{"ref": {"name": "stable", "namespace": "gloo-rollouts-demo"}, "weight": 100}]},
        }
        doc["spec"]["http"].append(other)

    table = make_route_table(add_other_route)
    cfg = PluginConfig(routeSelector=RouteSelector(labels={"route": "demo"}))

    desired = reconcile_route_table(table, rollout, 25, cfg)

    before = table.to_manifest()["spec"]["http"]
    after = desired.to_manifest()["spec"]["http"]
    assert after[0] == before[0]  # no forwardTo action
    assert after[2] == before[2]  # rejected by the route selector
    assert [(d.name, d.weight) for d in _by_name(desired, "demo")] == [("stable", 75), ("canary", 25)]


def test_missing_stable_destination_fails(make_route_table, rollout):
    table = make_route_table(_set_demo_destinations(_dest("legacy", 100)))

    with pytest.raises(MissingStableDestinationError) as exc:
        reconcile_route_table(table, rollout, 10, PluginConfig())

    assert "no matching stable destination" in str(exc.value)
    assert "demo" in str(exc.value)


def test_canary_without_stable_only_sets_canary_weight():
    forward_to = ForwardToAction(destinations=[_dest("canary", 0)])

    created = reconcile_destinations(forward_to, CANARY, 15)

    assert created is False
    assert [(d.name, d.weight) for d in forward_to.destinations] == [("canary", 15)]


def test_first_matching_destination_wins():
    forward_to = ForwardToAction(destinations=[_dest("stable", 50), _dest("Stable", 50), _dest("canary", 0)])

    reconcile_destinations(forward_to, CANARY, 10)

    assert [d.weight for d in forward_to.destinations] == [90, 50, 10]


def test_rollout_without_service_names_is_rejected(route_table, rollout):
    rollout.canary.canary_service = ""
    with pytest.raises(ConfigurationError):
        reconcile_route_table(route_table, rollout, 10, PluginConfig())
