#!/usr/bin/env python3
"""
Seed the demo catalog (attributes, categories, two products with variants).
Safe to run repeatedly; existing rows are left alone.

Usage:
    python scripts/seed_catalog.py [--reset]
"""
import argparse
import os
import sys

# allow running from repo/scripts
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from catalog.cache import get_cache
from catalog.db import SessionLocal, init_db
from catalog.db.seed import seed_catalog
from catalog.utils.logging import configure_logging

if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--reset", action="store_true", help="drop and recreate all tables first")
    args = parser.parse_args()

    configure_logging()
    init_db(reset=args.reset)
    cache = get_cache()
    if args.reset:
        cache.delete_prefix("")
    db = SessionLocal()
    try:
        created = seed_catalog(db, cache)
        print("Seeded products:", created)
    finally:
        db.close()
        cache.close()
