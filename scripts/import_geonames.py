#!/usr/bin/env python3
"""
Import a GeoNames dump and the feature code list into the staging database.

Re-running with the same files leaves the database unchanged.

Usage:
    python scripts/import_geonames.py
    python scripts/import_geonames.py --tsv data/GB.txt --feature-codes data/featureCodes_en.txt
    python scripts/import_geonames.py --limit 10000
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.logging import setup_service_logging
from config.settings import settings
from gazetteer.database import make_session_factory
from gazetteer.importer import import_feature_codes, import_geonames
from gazetteer.loaders import GeoNamesTsvLoader, read_feature_codes


def main():
    parser = argparse.ArgumentParser(
        description="Import GeoNames data into the staging database"
    )
    parser.add_argument(
        "--tsv",
        default=settings.GEONAMES_TSV,
        help=f"GeoNames dump file (default: {settings.GEONAMES_TSV})",
    )
    parser.add_argument(
        "--feature-codes",
        default=settings.FEATURE_CODES_TXT,
        help="featureCodes_en.txt (skipped if missing)",
    )
    parser.add_argument(
        "--database",
        default=settings.DATABASE_URL,
        help="Target database URL",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Stop after this many dump lines (for testing)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=5000,
        help="Rows per INSERT batch",
    )

    args = parser.parse_args()
    setup_service_logging()

    tsv_path = Path(args.tsv)
    if not tsv_path.exists():
        print(f"Dump file not found: {tsv_path}")
        print("Download allCountries.zip from https://download.geonames.org/export/dump/")
        sys.exit(1)

    print("=" * 60)
    print("GEONAMES IMPORT")
    print("=" * 60)
    print(f"Source:   {tsv_path}")
    print(f"Database: {args.database}")
    if args.limit:
        print(f"Limit:    {args.limit:,} lines")
    print("=" * 60)

    SessionFactory = make_session_factory(args.database)
    db = SessionFactory()

    try:
        stats = import_geonames(
            db,
            GeoNamesTsvLoader(tsv_path, limit=args.limit),
            batch_size=args.batch_size,
        )
        print(f"\nRecords read: {stats.records_read:,}")
        print(f"Inserted:     {stats.inserted:,}")
        print(f"Skipped:      {stats.skipped:,}")

        codes_path = Path(args.feature_codes)
        if codes_path.exists():
            count = import_feature_codes(db, read_feature_codes(codes_path))
            print(f"Feature codes: {count}")
        else:
            print(f"\nFeature code file not found, skipping: {codes_path}")

    finally:
        db.close()


if __name__ == "__main__":
    main()
