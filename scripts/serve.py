#!/usr/bin/env python3
"""
Run the reconciliation service.

Usage:
    python scripts/serve.py
    python scripts/serve.py --public --port 8001
    python scripts/serve.py --tsv data/GB.txt
    python scripts/serve.py --database sqlite:///data/geonames.db
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import uvicorn

from api.app import create_app
from config.logging import setup_service_logging
from config.settings import settings
from gazetteer.loaders import load_generation
from reconciliation import EngineConfig, GenerationManager, LoadError


def main():
    parser = argparse.ArgumentParser(
        description="Serve the GeoNames reconciliation API"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.PORT,
        help=f"Port to listen on (default: {settings.PORT})",
    )
    parser.add_argument(
        "--public",
        action="store_true",
        default=settings.PUBLIC,
        help="Listen on all interfaces (0.0.0.0) instead of HOST",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--tsv",
        help="Load entities directly from a GeoNames dump file",
    )
    source.add_argument(
        "--database",
        help="Load entities from a staging database URL",
    )
    parser.add_argument(
        "--feature-codes",
        help="featureCodes_en.txt for type names",
    )

    args = parser.parse_args()
    setup_service_logging()

    manager = GenerationManager(EngineConfig.from_settings())
    try:
        load_generation(
            manager,
            source="tsv" if args.tsv else ("database" if args.database else None),
            tsv_path=args.tsv,
            database_url=args.database,
            feature_codes_path=args.feature_codes,
        )
    except (LoadError, OSError) as e:
        print(f"Failed to load gazetteer: {e}")
        sys.exit(1)

    host = "0.0.0.0" if args.public else settings.HOST
    print(f"Serving on http://{host}:{args.port}{settings.RECONCILE_PATH}")
    uvicorn.run(create_app(manager), host=host, port=args.port, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
