#!/usr/bin/env python3
"""Import a profiles.json population into the configured profile store.

Typical use: move the JSON file population into PostgreSQL after switching
PROFILE_STORE_BACKEND=postgres. Upserts are keyed by handle, so re-running
the import is idempotent. Scores are clamped to 0-100 on the way in.

Run:
  python -m scripts.import_profiles path/to/profiles.json

Env vars:
  PROFILE_STORE_BACKEND, PROFILES_PATH, DATABASE_URL (see profile_score/settings.py)
"""

import asyncio
import json
import os
import sys

# Ensure imports work when executed as a script/module
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv  # noqa: E402

from profile_score.services.analysis import record_profile  # noqa: E402
from profile_score.settings import get_settings  # noqa: E402
from profile_score.stores.postgres import close_db, init_db  # noqa: E402
from profile_score.stores.profiles import get_profile_store, parse_profiles  # noqa: E402

load_dotenv()


async def main(path: str) -> None:
    with open(path, "r", encoding="utf-8") as f:
        profiles = parse_profiles(json.load(f), source=path)

    settings = get_settings()
    if settings.profile_store_backend == "postgres":
        await init_db()

    store = get_profile_store()
    try:
        for record in profiles:
            await record_profile(store, record)
        total = len(await store.load())
    finally:
        await close_db()

    print(f"Imported {len(profiles)} profiles into the {settings.profile_store_backend} store ({total} total)")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        raise SystemExit("usage: python -m scripts.import_profiles path/to/profiles.json")
    asyncio.run(main(sys.argv[1]))
