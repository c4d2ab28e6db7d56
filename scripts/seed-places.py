#!/usr/bin/env python3
"""
seed-places.py - Load demo venues into the VibeCheck realtime tree.

Writes a handful of places for one city directly through the tree store
configured by DATABASE_URL, so a fresh development database has something
to list and review.

Usage:
    python scripts/seed-places.py
    python scripts/seed-places.py --state PI --city Teresina --reset
"""

import argparse
import asyncio
import re
import unicodedata

from vibecheck.db.engine import dispose_engine, get_session_factory, init_db
from vibecheck.services.places import PLACES_PATH, materialize_places
from vibecheck.services.tree_store import TreeStore, join_path


# ANSI color codes
class C:
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RESET = "\033[0m"


DEMO_PLACES = [
    ("Bar do Zé", "Rua Areolino de Abreu, 120", "Bar"),
    ("Boteco da Esquina", "Av. Frei Serafim, 2200", "Bar"),
    ("Pizzaria Forno a Lenha", "Rua Riachuelo, 45", "Restaurante"),
    ("Balada Origem", "Av. Dom Severino, 800", "Balada"),
    ("Espetinho do Neném", "Rua Coelho Rodrigues, 310", "Lanchonete"),
]


def slugify(name: str) -> str:
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "-", ascii_name.lower()).strip("-")


async def seed(state: str, city: str, reset: bool) -> int:
    await init_db()
    store = TreeStore(get_session_factory())
    try:
        if reset:
            await store.remove(PLACES_PATH)
            print(f"  {C.YELLOW}Removed existing places{C.RESET}")

        updates = {
            join_path(PLACES_PATH, slugify(name)): {
                "name": name,
                "address": address,
                "type": kind,
                "city": city,
                "state": state,
            }
            for name, address, kind in DEMO_PLACES
        }
        await store.update(updates)

        for path in updates:
            print(f"  {C.GREEN}OK{C.RESET}    {C.BOLD}{path}{C.RESET}")

        listed = materialize_places(await store.get(PLACES_PATH), city, state)
        return len(listed)
    finally:
        await dispose_engine()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed demo places into the realtime tree")
    parser.add_argument("--state", type=str, default="PI", help="State code (default: PI)")
    parser.add_argument("--city", type=str, default="Teresina", help="City (default: Teresina)")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Remove every existing place before seeding",
    )
    args = parser.parse_args()

    print(f"\n{C.BOLD}VibeCheck Place Seeder{C.RESET}")
    print(f"{C.DIM}{'=' * 60}{C.RESET}\n")

    try:
        count = asyncio.run(seed(args.state, args.city, args.reset))
    except ValueError as exc:
        print(f"  {C.RED}Seeding failed{C.RESET} {C.DIM}{exc}{C.RESET}\n")
        raise SystemExit(1)

    print(f"\n  {C.CYAN}{count}{C.RESET} places listed for {args.city}/{args.state}\n")


if __name__ == "__main__":
    main()
