# src/taskos/cli.py
from __future__ import annotations

import argparse
import base64
import json
import sys
from typing import Any, List, Optional

from taskos.config import TaskosConfig, load_config
from taskos.crypto.envelope import KeyMaterial, fetch_and_decrypt
from taskos.env import load_dotenv_if_present
from taskos.errors import ConfigurationError, TaskosError
from taskos.ledger.client import LedgerReadClient, SuiJsonRpcClient
from taskos.ledger.registry import RegistryResolver
from taskos.marketplace.events import MarketplaceEventReader
from taskos.marketplace.purchases import fetch_purchases
from taskos.storage.walrus import BlobStore, WalrusStorageClient
from taskos.util.log_events import configure_structured_logging


def build_client(cfg: TaskosConfig) -> LedgerReadClient:
    """Ledger client for CLI runs. Tests monkeypatch this."""
    return SuiJsonRpcClient.from_config(cfg)


def build_storage(cfg: TaskosConfig) -> BlobStore:
    """Blob store for CLI runs. Tests monkeypatch this."""
    return WalrusStorageClient.from_config(cfg)


def _print(obj: Any) -> None:
    print(json.dumps(obj, indent=2, sort_keys=True))


def _parse_args(argv: List[str]) -> argparse.Namespace:
    ap = argparse.ArgumentParser(prog="taskos", description="TaskOS ledger and content inspector")
    ap.add_argument("--config", dest="config_path", default=None, help="JSON or YAML config file")
    ap.add_argument("--log-level", dest="log_level", default=None)

    sub = ap.add_subparsers(dest="command", required=True)

    sub.add_parser("tasks", help="resolve the task registry")

    p = sub.add_parser("assigned", help="tasks assigned to (or shared with) an address")
    p.add_argument("address")

    p = sub.add_parser("listings", help="marketplace listings from ExperienceListed events")
    p.add_argument("--limit", type=int, default=50)

    p = sub.add_parser("purchases", help="purchases owned by a wallet")
    p.add_argument("owner")

    p = sub.add_parser("decrypt", help="fetch and decrypt a task content blob")
    p.add_argument("blob_id")
    p.add_argument("--task-id", dest="task_id", required=True)
    p.add_argument("--creator", required=True)
    p.add_argument("--out", default="", help="write plaintext here instead of printing base64")

    return ap.parse_args(argv)


def _run(args: argparse.Namespace, cfg: TaskosConfig) -> int:
    if args.command == "tasks":
        snap = RegistryResolver(build_client(cfg), cfg).resolve()
        _print(snap.to_json())
        return 0 if snap.ok else 1

    if args.command == "assigned":
        snap = RegistryResolver(build_client(cfg), cfg).resolve()
        if not snap.ok:
            _print(snap.to_json())
            return 1
        _print(
            {
                "ok": True,
                "address": args.address,
                "assigned": [t.to_json() for t in snap.assigned_to(args.address)],
                "shared": [{"task": t.to_json(), "role": g.role} for t, g in snap.shared_with(args.address)],
            }
        )
        return 0

    if args.command == "listings":
        recs = MarketplaceEventReader(build_client(cfg), cfg).fetch_listings(max(1, int(args.limit)))
        _print({"ok": True, "count": len(recs), "listings": [r.to_json() for r in recs]})
        return 0

    if args.command == "purchases":
        recs = fetch_purchases(build_client(cfg), cfg, args.owner)
        _print({"ok": True, "count": len(recs), "purchases": [r.to_json() for r in recs]})
        return 0

    if args.command == "decrypt":
        res = fetch_and_decrypt(build_storage(cfg), args.blob_id, KeyMaterial(args.task_id, args.creator))
        if not res.ok:
            _print({"ok": False, "reason": res.reason, "format": res.envelope_format})
            return 1
        plaintext = res.plaintext or b""
        if args.out:
            with open(args.out, "wb") as f:
                f.write(plaintext)
            _print({"ok": True, "format": res.envelope_format, "size": len(plaintext), "out": args.out})
        else:
            _print(
                {
                    "ok": True,
                    "format": res.envelope_format,
                    "size": len(plaintext),
                    "plaintext_b64": base64.b64encode(plaintext).decode("ascii"),
                }
            )
        return 0

    raise AssertionError(f"unhandled command {args.command!r}")


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(list(sys.argv[1:] if argv is None else argv))
    load_dotenv_if_present()

    try:
        cfg = load_config(config_path=args.config_path)
    except (ConfigurationError, ValueError, OSError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    configure_structured_logging(args.log_level or cfg.log_level)

    try:
        return _run(args, cfg)
    except ConfigurationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    except TaskosError as e:
        _print({"ok": False, "error": e.to_json()})
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
