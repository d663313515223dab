"""
Import the GeoNames dump into the staging database.

Replaces the contents of the ``geonames`` and ``feature_codes`` tables, so a
re-import of the same files leaves the database unchanged.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Mapping, Optional

from sqlalchemy import delete, func, insert
from sqlalchemy.orm import Session

from gazetteer.loaders import GeoNamesTsvLoader
from gazetteer.models import FeatureCode, GeoName

logger = logging.getLogger(__name__)


@dataclass
class ImportStats:
    """Statistics from an import run."""
    records_read: int = 0
    inserted: int = 0
    skipped: int = 0


def _int_or_none(value: str) -> Optional[int]:
    try:
        return int(value) if value not in (None, "") else None
    except ValueError:
        return None


def _float_or_none(value: str) -> Optional[float]:
    try:
        return float(value) if value not in (None, "") else None
    except ValueError:
        return None


def _date_or_none(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value) if value else None
    except ValueError:
        return None


def record_to_values(record: Mapping[str, str]) -> Optional[dict]:
    """Convert a dump record into column values; None if it has no usable id."""
    geonameid = _int_or_none(record.get("geonameid"))
    if geonameid is None:
        return None
    return {
        "geonameid": geonameid,
        "name": record.get("name") or "",
        "asciiname": record.get("asciiname") or None,
        "alternatenames": record.get("alternatenames") or None,
        "latitude": _float_or_none(record.get("latitude")),
        "longitude": _float_or_none(record.get("longitude")),
        "feature_class": record.get("feature_class") or None,
        "feature_code": record.get("feature_code") or None,
        "country_code": record.get("country_code") or None,
        "cc2": record.get("cc2") or None,
        "admin1_code": record.get("admin1_code") or None,
        "admin2_code": record.get("admin2_code") or None,
        "admin3_code": record.get("admin3_code") or None,
        "admin4_code": record.get("admin4_code") or None,
        "population": _int_or_none(record.get("population")) or 0,
        "elevation": _int_or_none(record.get("elevation")),
        "dem": _int_or_none(record.get("dem")),
        "timezone": record.get("timezone") or None,
        "modification_date": _date_or_none(record.get("modification_date")),
    }


def import_geonames(
    db: Session,
    loader: GeoNamesTsvLoader,
    batch_size: int = 5000,
) -> ImportStats:
    """
    Replace the geonames table with the contents of a dump file.

    Args:
        db: Database session
        loader: Dump reader
        batch_size: Rows per INSERT batch

    Returns:
        ImportStats with counts
    """
    stats = ImportStats()
    seen_ids: set[int] = set()

    try:
        db.execute(delete(GeoName))

        batch = []
        for record in loader.records():
            stats.records_read += 1
            values = record_to_values(record)
            if values is None or values["geonameid"] in seen_ids:
                stats.skipped += 1
                continue
            seen_ids.add(values["geonameid"])
            batch.append(values)

            if len(batch) >= batch_size:
                db.execute(insert(GeoName), batch)
                stats.inserted += len(batch)
                batch = []
                if stats.inserted % (batch_size * 20) == 0:
                    logger.info(f"  Imported {stats.inserted:,} rows...")

        if batch:
            db.execute(insert(GeoName), batch)
            stats.inserted += len(batch)

        db.commit()

    except Exception as e:
        logger.error(f"Import failed, rolling back: {e}")
        db.rollback()
        raise

    logger.info(
        f"Imported {stats.inserted:,} geonames "
        f"({stats.records_read:,} read, {stats.skipped:,} skipped)"
    )
    return stats


def import_feature_codes(db: Session, codes: Mapping[str, tuple[str, str]]) -> int:
    """Replace the feature_codes table. Returns the number of codes written."""
    try:
        db.execute(delete(FeatureCode))
        rows = [
            {"code": code, "name": name, "description": description}
            for code, (name, description) in sorted(codes.items())
        ]
        if rows:
            db.execute(insert(FeatureCode), rows)
        db.commit()
    except Exception as e:
        logger.error(f"Feature code import failed, rolling back: {e}")
        db.rollback()
        raise

    logger.info(f"Imported {len(rows)} feature codes")
    return len(rows)


def count_by_feature_class(db: Session) -> list[tuple[str, int]]:
    """Row counts per feature class, largest first."""
    return (
        db.query(GeoName.feature_class, func.count(GeoName.geonameid))
        .group_by(GeoName.feature_class)
        .order_by(func.count(GeoName.geonameid).desc())
        .all()
    )

