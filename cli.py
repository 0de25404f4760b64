from __future__ import annotations

import argparse
import json
import sys

import requests

from trafficrouter.errors import ManifestError
from trafficrouter.manifests import load_manifest_file
from trafficrouter.settings import settings


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _finish(r: requests.Response) -> int:
    body = r.json()
    _print(body)
    if not r.ok:
        return 1
    return 0 if not body.get("errorString") else 1


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Gloo Platform traffic router CLI")
    p.add_argument("--api", default=settings.api_url, help="Traffic router API base URL")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("type", help="Show the traffic router type")
    sub.add_parser("init", help="(Re)initialise the route table client")

    s_ev = sub.add_parser("events", help="Show journal events")
    s_ev.add_argument("--limit", type=int, default=20)

    s_sw = sub.add_parser("set-weight", help="Set the canary weight for a rollout")
    s_sw.add_argument("--rollout", required=True, help="Path to the Rollout manifest (YAML or JSON)")
    s_sw.add_argument("--weight", type=int, required=True, help="Canary weight, 0-100")

    s_vw = sub.add_parser("verify-weight", help="Ask whether the canary weight took effect")
    s_vw.add_argument("--rollout", required=True)
    s_vw.add_argument("--weight", type=int, required=True)

    s_rm = sub.add_parser("remove-managed-routes", help="Remove routes managed by the router")
    s_rm.add_argument("--rollout", required=True)

    args = p.parse_args(argv)

    base = args.api.rstrip("/")

    if args.cmd == "type":
        _print(requests.get(f"{base}/type", timeout=10).json())
        return 0

    if args.cmd == "init":
        return _finish(requests.post(f"{base}/init", timeout=30))

    if args.cmd == "events":
        _print(requests.get(f"{base}/events", params={"limit": args.limit}, timeout=10).json())
        return 0

    try:
        rollout = load_manifest_file(args.rollout)
    except ManifestError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    if args.cmd == "set-weight":
        payload = {"rollout": rollout, "desiredWeight": args.weight, "additionalDestinations": []}
        return _finish(requests.post(f"{base}/set-weight", json=payload, timeout=30))

    if args.cmd == "verify-weight":
        payload = {"rollout": rollout, "desiredWeight": args.weight}
        return _finish(requests.post(f"{base}/verify-weight", json=payload, timeout=30))

    if args.cmd == "remove-managed-routes":
        return _finish(requests.post(f"{base}/remove-managed-routes", json={"rollout": rollout}, timeout=30))

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
