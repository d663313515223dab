"""
Data loaders

Supply the entity store with rows in its fixed column set:

    id, name, asciiname, alternatenames, featureClass, featureCode,
    countryCode, adminCodes, population, lat, lon

Two sources are supported: the GeoNames ``allCountries.txt`` dump itself and
the SQLite staging database written by ``scripts/import_geonames.py``.
Loaders are restartable; every call to ``rows()`` reads from the start.
"""

import csv
import logging
import sys
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy.orm import Session, sessionmaker

from config.settings import settings
from gazetteer.database import make_session_factory
from gazetteer.models import FeatureCode, GeoName

logger = logging.getLogger(__name__)

# GeoNames dump layout (tab separated, no header)
GEONAMES_COLUMNS = (
    "geonameid", "name", "asciiname", "alternatenames", "latitude", "longitude",
    "feature_class", "feature_code", "country_code", "cc2",
    "admin1_code", "admin2_code", "admin3_code", "admin4_code",
    "population", "elevation", "dem", "timezone", "modification_date",
)

# alternatenames can exceed the csv module's default field limit
csv.field_size_limit(min(sys.maxsize, 2**31 - 1))


def record_to_row(record: dict) -> dict:
    """Map a dump record onto the entity store's column set."""
    return {
        "id": record["geonameid"],
        "name": record["name"],
        "asciiname": record["asciiname"],
        "alternatenames": record["alternatenames"],
        "featureClass": record["feature_class"],
        "featureCode": record["feature_code"],
        "countryCode": record["country_code"],
        "adminCodes": [
            record["admin1_code"],
            record["admin2_code"],
            record["admin3_code"],
            record["admin4_code"],
        ],
        "population": record["population"],
        "lat": record["latitude"],
        "lon": record["longitude"],
    }


class GeoNamesTsvLoader:
    """
    Reads the GeoNames dump (allCountries.txt or a per-country file).

    Usage:
        loader = GeoNamesTsvLoader("data/allCountries.txt")
        store = EntityStore.load(loader.rows())
    """

    def __init__(self, path, limit: Optional[int] = None):
        self.path = Path(path)
        self.limit = limit
        self.malformed_lines = 0

    def records(self) -> Iterator[dict]:
        """Yield raw dump records keyed by GEONAMES_COLUMNS."""
        self.malformed_lines = 0
        count = 0
        with open(self.path, "r", newline="", encoding="utf-8") as f:
            reader = csv.reader(f, delimiter="\t", quoting=csv.QUOTE_NONE)
            for line_number, fields in enumerate(reader, 1):
                if not fields:
                    continue
                if line_number == 1 and fields[0] == "geonameid":
                    continue  # header added by hand
                if len(fields) != len(GEONAMES_COLUMNS):
                    self.malformed_lines += 1
                    logger.debug(
                        f"{self.path.name}:{line_number}: expected "
                        f"{len(GEONAMES_COLUMNS)} fields, got {len(fields)}"
                    )
                    continue

                yield dict(zip(GEONAMES_COLUMNS, fields))
                count += 1
                if self.limit and count >= self.limit:
                    break

        if self.malformed_lines:
            logger.warning(f"Skipped {self.malformed_lines} malformed lines in {self.path}")

    def rows(self) -> Iterator[dict]:
        for record in self.records():
            yield record_to_row(record)

    def __iter__(self):
        return self.rows()


class DatabaseLoader:
    """
    Streams the ``geonames`` table of the staging database.

    Usage:
        loader = DatabaseLoader(make_session_factory(settings.DATABASE_URL))
        store = EntityStore.load(loader.rows())
    """

    def __init__(self, session_factory: sessionmaker, batch_size: int = 10000):
        self.session_factory = session_factory
        self.batch_size = batch_size

    def rows(self) -> Iterator[dict]:
        db: Session = self.session_factory()
        try:
            query = db.query(GeoName).order_by(GeoName.geonameid).yield_per(self.batch_size)
            for geoname in query:
                yield geoname.to_row()
        finally:
            db.close()

    def feature_codes(self) -> dict[str, tuple[str, str]]:
        db: Session = self.session_factory()
        try:
            return {
                fc.code: (fc.name, fc.description or "")
                for fc in db.query(FeatureCode).all()
            }
        finally:
            db.close()

    def __iter__(self):
        return self.rows()


def read_feature_codes(path) -> dict[str, tuple[str, str]]:
    """
    Read featureCodes_en.txt.

    Lines are ``code<TAB>name<TAB>description`` with codes such as
    ``P.PPLC``; the ``null`` placeholder line is ignored.

    Returns:
        Dict of type id -> (name, description)
    """
    codes = {}
    with open(path, "r", newline="", encoding="utf-8") as f:
        reader = csv.reader(f, delimiter="\t", quoting=csv.QUOTE_NONE)
        for fields in reader:
            if len(fields) < 2:
                continue
            code = fields[0].strip()
            if not code or code == "null" or code == "code":
                continue
            description = fields[2].strip() if len(fields) > 2 else ""
            codes[code] = (fields[1].strip(), description)

    logger.info(f"Read {len(codes)} feature codes from {path}")
    return codes


def load_generation(
    manager,
    source: Optional[str] = None,
    tsv_path: Optional[str] = None,
    database_url: Optional[str] = None,
    feature_codes_path: Optional[str] = None,
    limit: Optional[int] = None,
):
    """
    Build a generation from the configured source and make it active.

    Args:
        manager: GenerationManager to reload
        source: "database" or "tsv" (default: settings.DATA_SOURCE)
        tsv_path: Dump file (default: settings.GEONAMES_TSV)
        database_url: Staging database (default: settings.DATABASE_URL)
        feature_codes_path: featureCodes_en.txt (default: settings.FEATURE_CODES_TXT)
        limit: Stop after this many dump lines (tsv only)

    Raises:
        ValueError: for an unknown source
        LoadError: if no entities could be loaded
    """
    source = (source or settings.DATA_SOURCE).lower()
    feature_codes: dict[str, tuple[str, str]] = {}

    if source == "tsv":
        path = tsv_path or settings.GEONAMES_TSV
        logger.info(f"Loading gazetteer from {path}")
        rows = GeoNamesTsvLoader(path, limit=limit).rows()
    elif source == "database":
        url = database_url or settings.DATABASE_URL
        logger.info(f"Loading gazetteer from {url}")
        loader = DatabaseLoader(make_session_factory(url))
        feature_codes = loader.feature_codes()
        rows = loader.rows()
    else:
        raise ValueError(f"Unknown data source: {source!r} (expected 'database' or 'tsv')")

    codes_path = Path(feature_codes_path or settings.FEATURE_CODES_TXT)
    if not feature_codes and codes_path.exists():
        feature_codes = read_feature_codes(codes_path)

    return manager.reload(rows, feature_codes=feature_codes)
