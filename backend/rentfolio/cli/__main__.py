# backend/rentfolio/cli/__main__.py
from __future__ import annotations

import argparse
import json
import sys

from rentfolio.config import settings
from rentfolio.db import init_db
from rentfolio.logging_config import configure_logging
from rentfolio.services.store import build_store


def _print(payload: dict) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def cmd_seed(args: argparse.Namespace) -> int:
    """Seed demo data into an empty store (remote + local cache)."""
    store = build_store(settings)
    result = store.boot(seed_demo=True, admin_password=settings.bootstrap_admin_password)
    store.sync.flush()
    _print({"ok": True, "source": result.source, "seeded": result.source == "empty", **store.sync.snapshot()})
    return 0


def cmd_push(args: argparse.Namespace) -> int:
    store = build_store(settings)
    store.boot(seed_demo=False, admin_password=settings.bootstrap_admin_password)
    store.sync.cancel_timer()
    wrote = store.sync.push(store.snapshot(), force=args.force)
    snap = store.sync.snapshot()
    _print({"ok": snap["status"] in ("synced", "idle"), "wrote": wrote, **snap})
    return 0 if snap["status"] != "error" else 1


def cmd_pull(args: argparse.Namespace) -> int:
    """Load from the spreadsheet (tombstone-filtered) and refresh the local cache."""
    store = build_store(settings)
    result = store.boot(seed_demo=False, admin_password=settings.bootstrap_admin_password)
    store.sync.flush()
    s = store.state
    _print(
        {
            "source": result.source,
            "removed_by_tombstones": result.removed,
            "properties": len(s.properties),
            "units": len(s.records),
            "payments": len(s.payments),
            **store.sync.snapshot(),
        }
    )
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    store = build_store(settings)
    cached = store.sync.cache.load_snapshot()
    _print(
        {
            "configured": store.sync.configured,
            "cache_present": cached is not None,
            "tombstones": len(store.sync.tombstones),
            "spreadsheet_id": settings.sheets_spreadsheet_id,
        }
    )
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    """Decoded local snapshot as JSON."""
    store = build_store(settings)
    cached = store.sync.cache.load_snapshot()
    if cached is None:
        print("no local cache", file=sys.stderr)
        return 1
    out = json.dumps(cached.to_snapshot(), indent=2, ensure_ascii=False)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(out)
    else:
        print(out)
    return 0


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="rentfolio")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("seed", help="seed demo data when the store is empty").set_defaults(func=cmd_seed)

    push = sub.add_parser("push", help="push local state to the spreadsheet")
    push.add_argument("--force", action="store_true", help="write even if content is unchanged")
    push.set_defaults(func=cmd_push)

    sub.add_parser("pull", help="load from the spreadsheet into the local cache").set_defaults(func=cmd_pull)
    sub.add_parser("status", help="show sync configuration and cache state").set_defaults(func=cmd_status)

    export = sub.add_parser("export", help="print the decoded local snapshot")
    export.add_argument("-o", "--output", default=None)
    export.set_defaults(func=cmd_export)

    args = p.parse_args(argv)
    configure_logging()
    init_db()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
