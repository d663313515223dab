#!/usr/bin/env python3
"""
Run ad-hoc reconciliation queries against a freshly loaded gazetteer.

Usage:
    python scripts/reconcile_query.py "London"
    python scripts/reconcile_query.py "Paris" "Berlin" --type P --limit 3
    python scripts/reconcile_query.py "Thames" --tsv data/GB.txt --type H
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.logging import setup_service_logging
from gazetteer.loaders import load_generation
from reconciliation import (
    EngineConfig,
    GenerationManager,
    LoadError,
    Query,
    ReconciliationEngine,
)


def main():
    parser = argparse.ArgumentParser(
        description="Reconcile place names against GeoNames"
    )
    parser.add_argument("names", nargs="+", help="Place names to reconcile")
    parser.add_argument(
        "--type",
        action="append",
        default=[],
        help="Type filter, e.g. P or P.PPLC (repeatable)",
    )
    parser.add_argument("--limit", type=int, default=None, help="Candidates per query")
    parser.add_argument("--tsv", help="Load from a GeoNames dump instead of the database")
    parser.add_argument("--database", help="Staging database URL")
    parser.add_argument(
        "--max-lines",
        type=int,
        default=None,
        help="Stop reading the dump after this many lines",
    )

    args = parser.parse_args()
    setup_service_logging()

    manager = GenerationManager(EngineConfig.from_settings())
    try:
        generation = load_generation(
            manager,
            source="tsv" if args.tsv else ("database" if args.database else None),
            tsv_path=args.tsv,
            database_url=args.database,
            limit=args.max_lines,
        )
    except (LoadError, OSError) as e:
        print(f"Failed to load gazetteer: {e}")
        sys.exit(1)

    print(f"Loaded {len(generation.store):,} entities")

    batch = {
        f"q{i}": Query(key=f"q{i}", text=name, type_filters=tuple(args.type), limit=args.limit)
        for i, name in enumerate(args.names)
    }
    engine = ReconciliationEngine(manager)
    try:
        results = engine.reconcile(batch)
    finally:
        engine.close()

    for key, query in batch.items():
        result = results[key]
        print(f"\n{query.text!r}")
        print("-" * 60)
        if result.error:
            print(f"  ERROR: {result.error}")
            continue
        if not result.candidates:
            print("  (no candidates)")
        for candidate in result.candidates:
            flag = "MATCH" if candidate.match else ""
            print(
                f"  {candidate.score:>3}  {candidate.entity_id:<10} {candidate.name:<30} "
                f"{candidate.type_id:<8} {candidate.country_code:<3} "
                f"{candidate.population:>11,}  {flag}"
            )


if __name__ == "__main__":
    main()
