#!/usr/bin/env python3
"""
Show the state of the source files and the staging database.

Usage:
    python scripts/status.py
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.exc import SQLAlchemyError

from config.settings import settings
from gazetteer.database import make_session_factory
from gazetteer.importer import count_by_feature_class
from gazetteer.models import FeatureCode, GeoName
from reconciliation import FeatureClass


def describe_file(label: str, path: Path):
    if path.exists():
        size_mb = path.stat().st_size / (1024 * 1024)
        print(f"  ✓ {label}: {path} ({size_mb:,.1f} MB)")
    else:
        print(f"  ✗ {label}: {path} (MISSING)")


def main():
    parser = argparse.ArgumentParser(description="Show gazetteer status")
    parser.add_argument(
        "--database",
        default=settings.DATABASE_URL,
        help="Staging database URL",
    )
    args = parser.parse_args()

    print("\n=== FILES ===\n")
    describe_file("GeoNames dump", Path(settings.GEONAMES_TSV))
    describe_file("Feature codes", Path(settings.FEATURE_CODES_TXT))

    print("\n=== DATABASE ===\n")
    print(f"Database: {args.database}")

    db = make_session_factory(args.database)()
    try:
        total = db.query(GeoName).count()
        codes = db.query(FeatureCode).count()
        print(f"Geonames:      {total:,}")
        print(f"Feature codes: {codes:,}")

        if total:
            print("\nBy feature class:")
            for feature_class, count in count_by_feature_class(db):
                parsed = FeatureClass.parse(feature_class)
                label = parsed.label if parsed else "(unknown)"
                print(f"  {feature_class or '-':<3} {count:>12,}  {label}")
    except SQLAlchemyError as e:
        print(f"  ✗ Database error: {e}")
        sys.exit(1)
    finally:
        db.close()

    print(f"\nService: http://{settings.HOST}:{settings.PORT}{settings.RECONCILE_PATH}")


if __name__ == "__main__":
    main()
