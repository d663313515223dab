"""
GeoNames Reconciliation Service - Database Models

SQLAlchemy ORM models for the gazetteer staging database. The column layout
follows the GeoNames ``allCountries.txt`` dump so an import is a straight copy.
"""

from datetime import date
from typing import Optional

from sqlalchemy import BigInteger, Date, Float, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class GeoName(Base):
    """
    One row of the GeoNames dump.

    alternatenames is kept as the dump's comma-separated text.
    """

    __tablename__ = "geonames"

    geonameid: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    asciiname: Mapped[Optional[str]] = mapped_column(Text)
    alternatenames: Mapped[Optional[str]] = mapped_column(Text)
    latitude: Mapped[Optional[float]] = mapped_column(Float)
    longitude: Mapped[Optional[float]] = mapped_column(Float)
    feature_class: Mapped[Optional[str]] = mapped_column(String(1), index=True)
    feature_code: Mapped[Optional[str]] = mapped_column(String(10))
    country_code: Mapped[Optional[str]] = mapped_column(String(2), index=True)
    cc2: Mapped[Optional[str]] = mapped_column(Text)
    admin1_code: Mapped[Optional[str]] = mapped_column(String(20))
    admin2_code: Mapped[Optional[str]] = mapped_column(String(80))
    admin3_code: Mapped[Optional[str]] = mapped_column(String(20))
    admin4_code: Mapped[Optional[str]] = mapped_column(String(20))
    population: Mapped[int] = mapped_column(BigInteger, default=0)
    elevation: Mapped[Optional[int]] = mapped_column(Integer)
    dem: Mapped[Optional[int]] = mapped_column(Integer)
    timezone: Mapped[Optional[str]] = mapped_column(String(40))
    modification_date: Mapped[Optional[date]] = mapped_column(Date)

    __table_args__ = (
        Index("ix_geonames_class_code", "feature_class", "feature_code"),
    )

    @property
    def type_id(self) -> str:
        if self.feature_code:
            return f"{self.feature_class}.{self.feature_code}"
        return self.feature_class or ""

    def to_row(self) -> dict:
        """Loader row in the column set the entity store expects."""
        return {
            "id": str(self.geonameid),
            "name": self.name,
            "asciiname": self.asciiname or "",
            "alternatenames": self.alternatenames or "",
            "featureClass": self.feature_class or "",
            "featureCode": self.feature_code or "",
            "countryCode": self.country_code or "",
            "adminCodes": [
                self.admin1_code or "",
                self.admin2_code or "",
                self.admin3_code or "",
                self.admin4_code or "",
            ],
            "population": self.population or 0,
            "lat": self.latitude,
            "lon": self.longitude,
        }

    def __repr__(self) -> str:
        return f"<GeoName(id={self.geonameid}, name={self.name}, type={self.type_id})>"


class FeatureCode(Base):
    """GeoNames feature code catalog (featureCodes_en.txt)."""

    __tablename__ = "feature_codes"

    code: Mapped[str] = mapped_column(String(12), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    def __repr__(self) -> str:
        return f"<FeatureCode({self.code}: {self.name})>"
