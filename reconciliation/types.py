"""
Type catalog: display names for feature classes and feature codes.

Feature code names come from the GeoNames ``featureCodes_en.txt`` file when it
is available; without it, codes fall back to their class label.
"""

from collections import Counter
from typing import Mapping, Optional

from reconciliation.models import FeatureClass
from reconciliation.normalize import fold


class TypeCatalog:
    """Names for type ids such as ``P`` and ``P.PPLC``."""

    def __init__(self, feature_codes: Optional[Mapping[str, tuple[str, str]]] = None):
        """
        Args:
            feature_codes: type id -> (name, description), e.g.
                ``{"P.PPLC": ("capital of a political entity", "")}``
        """
        self.feature_codes = dict(feature_codes or {})

    def name_for(self, type_id: str) -> str:
        entry = self.feature_codes.get(type_id)
        if entry and entry[0]:
            return entry[0]
        feature_class = FeatureClass.parse(type_id[:1])
        if feature_class is None:
            return type_id
        return feature_class.label

    def description_for(self, type_id: str) -> str:
        entry = self.feature_codes.get(type_id)
        return entry[1] if entry else ""

    def declared_types(self) -> list[dict]:
        """The filterable top-level types, in class-letter order."""
        return [{"id": fc.value, "name": fc.label} for fc in FeatureClass]

    def suggest(
        self,
        prefix: str,
        counts: Counter,
        limit: int = 10,
        offset: int = 0,
    ) -> list[dict]:
        """
        Type ids or names starting with ``prefix``, most frequent first.

        ``counts`` maps type id -> number of entities of that type; feature
        classes count every entity in the class.
        """
        needle = fold(prefix).strip()
        totals = Counter()
        for type_id, count in counts.items():
            totals[type_id] += count
            if "." in type_id:
                totals[type_id[:1]] += count
        for type_id in self.feature_codes:
            totals.setdefault(type_id, 0)

        matches = []
        for type_id, total in totals.items():
            name = self.name_for(type_id)
            if needle and not (
                fold(type_id).startswith(needle) or fold(name).startswith(needle)
                or any(word.startswith(needle) for word in fold(name).split())
            ):
                continue
            matches.append((-total, type_id, name))

        matches.sort()
        return [
            {"id": type_id, "name": name}
            for _, type_id, name in matches[offset:offset + limit]
        ]
