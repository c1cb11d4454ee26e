#!/usr/bin/env python3
"""
Replay a JSON file of farm transactions against an in-memory store.

File format::

    {
      "mint": [["alice", "STAKE", 1000], ["owner", "REWARD", 5000]],
      "transactions": [
        {"sender": "owner", "now": 0, "ops": [{"action": "initialize_pool", ...}]},
        ...
      ]
    }

``module``/``version`` default to the configured values when an op omits them.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from farmledger.integration.config import load_config
from farmledger.integration.farm_engine import apply_farm_ops
from farmledger.state.store import AccountStore


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("replay", type=Path, help="JSON replay file")
    parser.add_argument("--config", type=Path, default=None, help="optional YAML config")
    parser.add_argument("--log-level", default="WARNING")
    parser.add_argument("--snapshot", action="store_true", help="print the final store snapshot")
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
    config = load_config(args.config)

    data = json.loads(args.replay.read_text(encoding="utf-8"))
    store = AccountStore()
    for account, asset, amount in data.get("mint", []):
        store.ledger.credit(str(account), str(asset), int(amount))

    failures = 0
    for i, tx in enumerate(data.get("transactions", [])):
        ops = [{"module": config.module, "version": config.version, **op} for op in tx.get("ops", [])]
        res = apply_farm_ops(store, ops, tx_sender=tx["sender"], now=int(tx["now"]), config=config)
        if res.ok:
            for effect in res.effects or []:
                print(f"[farm-replay] tx {i}: {json.dumps(effect, sort_keys=True)}")
        else:
            failures += 1
            print(f"[farm-replay] tx {i}: REJECTED ({res.code}) {res.error}")

    if args.snapshot:
        print(json.dumps(store.snapshot(), indent=2, sort_keys=True))
    print(f"[farm-replay] commitment={store.commitment_hex()} rejected={failures}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
