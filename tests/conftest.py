import copy
import os
import sys

import pytest

# Ensure project root is importable (so `import main` / `import cli` work reliably across environments)
_project_root = os.path.dirname(os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from trafficrouter import events  # noqa: E402
from trafficrouter.errors import ManifestError, NotFoundError  # noqa: E402
from trafficrouter.manifests import load_manifest_file  # noqa: E402
from trafficrouter.models import Rollout, RouteTable  # noqa: E402
from trafficrouter.settings import Settings  # noqa: E402

EXAMPLES_DIR = os.path.join(_project_root, "examples", "0-rollout-initial-state-green")


class FakeRouteTableStore:
    """In-memory route table store that records every call."""

    def __init__(self, tables=None, patch_errors=None):
        self.tables = list(tables or [])
        self.patch_errors = dict(patch_errors or {})  # table key -> exception
        self.gets = []
        self.lists = []
        self.patches = []  # (original, desired)

    def get(self, name, namespace):
        self.gets.append((name, namespace))
        for t in self.tables:
            if t.name == name and t.namespace == namespace:
                return t.copy()
        raise NotFoundError(f"get RouteTable {name}.{namespace}: not found")

    def list(self, labels=None, namespace=None):
        self.lists.append((labels, namespace))
        out = []
        for t in self.tables:
            if namespace and t.namespace != namespace:
                continue
            if labels and any(t.labels.get(k) != v for k, v in labels.items()):
                continue
            out.append(t.copy())
        return out

    def patch(self, original, desired):
        self.patches.append((original, desired))
        err = self.patch_errors.get(original.key)
        if err is not None:
            raise err


def load_example(filename):
    try:
        return load_manifest_file(os.path.join(EXAMPLES_DIR, filename))
    except ManifestError as e:
        # Fixture data must parse; there is nothing to test otherwise.
        pytest.fail(f"{filename}: {e}")


@pytest.fixture(autouse=True)
def journal(tmp_path, monkeypatch):
    """Point the event journal at a per-test sqlite file."""
    monkeypatch.setattr(events, "settings", Settings(db_path=str(tmp_path / "events.db")))
    return events


@pytest.fixture
def rollout_manifest():
    return load_example("rollout.yaml")


@pytest.fixture
def route_table_manifest():
    return load_example("route-table.yaml")


@pytest.fixture
def rollout(rollout_manifest):
    return Rollout.from_manifest(rollout_manifest)


@pytest.fixture
def route_table(route_table_manifest):
    return RouteTable.from_manifest(route_table_manifest)


@pytest.fixture
def make_route_table(route_table_manifest):
    """Build a RouteTable from the example, optionally modifying a copy of its manifest first."""

    def _make(modify=None, name=None, namespace=None):
        doc = copy.deepcopy(route_table_manifest)
        if name:
            doc["metadata"]["name"] = name
        if namespace:
            doc["metadata"]["namespace"] = namespace
        if modify is not None:
            modify(doc)
        return RouteTable.from_manifest(doc)

    return _make


@pytest.fixture
def make_store():
    return FakeRouteTableStore


@pytest.fixture
def fake_store(route_table):
    return FakeRouteTableStore([route_table])
