"""
Joins the medal table to the boundary dataset.

The medal source keys countries by committee code (GER, NED, SUI...),
the boundary dataset by ISO 3166-1 alpha-3 (DEU, NLD, CHE...). Matching
is direct code equality first, then the alias table. The alias table is
hand-maintained and will always be incomplete: every gap shows up in the
ReconciliationResult diagnostics instead of failing the join.
"""
import logging
from collections import abc
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Optional, Sequence, Tuple

from .parsers.code_validators import names_match, normalize_country_code, normalize_geo_code
from .parsers.parser_medaltally import country_code_field
from .parsers.record_parser import Field, parse_delimited
from .schemas import GeoFeature, MedalTotal

log = logging.getLogger(__name__)

METHOD_DIRECT = "direct"
METHOD_ALIAS = "alias"

# Codigo del medallero -> ISO alpha-3 del dataset de fronteras.
DEFAULT_ALIAS_ENTRIES = {
    "USA": "USA", "GBR": "GBR", "CHN": "CHN",
    "RUS": "RUS", "GER": "DEU", "FRA": "FRA",
    "JPN": "JPN", "AUS": "AUS", "ITA": "ITA",
    "CAN": "CAN", "KOR": "KOR", "NED": "NLD",
    "NZL": "NZL", "BRA": "BRA", "ESP": "ESP",
    "UKR": "UKR", "HUN": "HUN", "ROC": "RUS",
    "SUI": "CHE", "POL": "POL", "CZE": "CZE",
    "DEN": "DNK", "NOR": "NOR", "SWE": "SWE",
    "RSA": "ZAF", "JAM": "JAM", "CUB": "CUB",
    "KAZ": "KAZ", "IRL": "IRL", "MEX": "MEX",
    "BEL": "BEL", "TUR": "TUR", "AUT": "AUT",
    # Resto de diferencias COI / ISO habituales
    "POR": "PRT", "GRE": "GRC", "CRO": "HRV",
    "SLO": "SVN", "BUL": "BGR", "LAT": "LVA",
    "ALG": "DZA", "INA": "IDN", "MAS": "MYS",
    "PHI": "PHL", "VIE": "VNM", "IRI": "IRN",
    "KSA": "SAU", "UAE": "ARE", "KUW": "KWT",
    "BRN": "BHR", "GUA": "GTM", "CRC": "CRI",
    "HON": "HND", "ESA": "SLV", "NCA": "NIC",
    "PUR": "PRI", "URU": "URY", "PAR": "PRY",
    "CHI": "CHL", "BAH": "BHS", "BAR": "BRB",
    "GRN": "GRD", "LCA": "LCA", "DMA": "DMA",
    "ZAM": "ZMB", "ZIM": "ZWE", "BOT": "BWA",
    "MRI": "MUS", "NIG": "NER", "NGR": "NGA",
    "TAN": "TZA", "SUD": "SDN", "GAM": "GMB",
    "TPE": "TWN", "HKG": "HKG", "MGL": "MNG",
    "MYA": "MMR", "NEP": "NPL", "SRI": "LKA",
    "BAN": "BGD", "FIJ": "FJI", "TGA": "TON",
    "SAM": "WSM", "VAN": "VUT", "SOL": "SLB",
    "LBA": "LBY", "KOS": "XKX",
}


class AliasTable(abc.Mapping):
    """
    Finite code -> code mapping. resolve() returns None for "no alias".
    Targets that are not ISO alpha-3 codes are stored as None.
    """

    def __init__(self, entries: Optional[Mapping[str, Optional[str]]] = None):
        table: Dict[str, Optional[str]] = {}
        for source, target in (entries or {}).items():
            source_code = normalize_country_code(source)
            if source_code is None:
                raise ValueError(f"invalid alias source code {source!r}")
            table[source_code] = normalize_geo_code(target)
        self._entries = MappingProxyType(table)

    def resolve(self, code: Optional[str]) -> Optional[str]:
        if not code:
            return None
        return self._entries.get(code.strip().upper())

    def with_overrides(self, entries: Mapping[str, Optional[str]]) -> "AliasTable":
        merged = dict(self._entries)
        merged.update(entries)
        return AliasTable(merged)

    def without(self, *codes: str) -> "AliasTable":
        drop = {c.strip().upper() for c in codes}
        return AliasTable({k: v for k, v in self._entries.items() if k not in drop})

    def __getitem__(self, key):
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self):
        return len(self._entries)

    def __repr__(self):
        return f"AliasTable({len(self)} entries)"


DEFAULT_ALIASES = AliasTable(DEFAULT_ALIAS_ENTRIES)

ALIAS_FIELDS = {
    "source": Field("medal_code", country_code_field),
    "target": Field("geo_code", default=""),
}


def load_alias_table(text: str, base: Optional[AliasTable] = None) -> AliasTable:
    """Read 'medal_code,geo_code' rows and layer them over `base` (DEFAULT_ALIASES by default)."""
    parsed = parse_delimited(text, ALIAS_FIELDS)
    for warning in parsed.warnings:
        log.warning("Alias file: %s", warning)
    entries = {r["source"]: (r["target"] or None) for r in parsed.records}
    base = DEFAULT_ALIASES if base is None else base
    log.info("Loaded %s alias entries from file.", len(entries))
    return base.with_overrides(entries)


@dataclass(frozen=True)
class FeatureMatch:
    feature: GeoFeature
    total: Optional[MedalTotal] = None
    method: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.total is not None


@dataclass(frozen=True)
class AliasSuggestion:
    """A feature left unmatched whose name equals a medal-table country name."""
    feature_code: Optional[str]
    feature_name: str
    country_code: str


@dataclass(frozen=True)
class ReconciliationResult:
    outcomes: Tuple[FeatureMatch, ...]
    unplaced_totals: Tuple[MedalTotal, ...]
    alias_suggestions: Tuple[AliasSuggestion, ...]

    @property
    def matched(self) -> Tuple[FeatureMatch, ...]:
        return tuple(o for o in self.outcomes if o.matched)

    @property
    def unmatched_features(self) -> Tuple[GeoFeature, ...]:
        return tuple(o.feature for o in self.outcomes if not o.matched)

    @property
    def unplaced_names(self) -> Tuple[str, ...]:
        return tuple(t.country_name for t in self.unplaced_totals)

    def lookup(self, feature_code: Optional[str]) -> Optional[MedalTotal]:
        if not feature_code:
            return None
        for outcome in self.outcomes:
            if outcome.feature.code == feature_code:
                return outcome.total
        return None


def _match_feature(feature: GeoFeature,
                   by_code: Mapping[str, MedalTotal],
                   by_alias: Mapping[str, MedalTotal]) -> FeatureMatch:
    if feature.code is None:
        return FeatureMatch(feature)

    total = by_code.get(feature.code)
    if total is not None:
        return FeatureMatch(feature, total, METHOD_DIRECT)

    total = by_alias.get(feature.code)
    if total is not None:
        return FeatureMatch(feature, total, METHOD_ALIAS)

    return FeatureMatch(feature)


def reconcile(totals: Sequence[MedalTotal],
              features: Iterable[GeoFeature],
              aliases: AliasTable = DEFAULT_ALIASES) -> ReconciliationResult:
    """
    One FeatureMatch per feature, in feature order. Never raises on a
    missing match: the outcome is simply unmatched.
    """
    by_code: Dict[str, MedalTotal] = {}
    by_alias: Dict[str, MedalTotal] = {}
    for total in totals:
        by_code.setdefault(total.country_code, total)
        target = aliases.resolve(total.country_code)
        if target is not None:
            # El primero en el orden del medallero gana (ROC y RUS apuntan a RUS).
            by_alias.setdefault(target, total)

    outcomes = tuple(_match_feature(f, by_code, by_alias) for f in features)

    placed = {o.total.country_code for o in outcomes if o.matched}
    unplaced = tuple(t for t in totals if t.country_code not in placed)

    suggestions = []
    for outcome in outcomes:
        if outcome.matched:
            continue
        found = next((t for t in totals if names_match(t.country_name, outcome.feature.name)), None)
        if found is not None:
            suggestions.append(AliasSuggestion(outcome.feature.code, outcome.feature.name,
                                               found.country_code))

    result = ReconciliationResult(outcomes, unplaced, tuple(suggestions))

    log.info("Reconciliation: %s/%s features matched.", len(result.matched), len(outcomes))
    if unplaced:
        log.warning("Countries with medal data but no map geometry: %s",
                    ", ".join(f"{t.country_name} ({t.country_code})" for t in unplaced))
    for s in suggestions:
        log.warning("Unmapped country '%s' (%s) looks like medal code %s; missing alias entry?",
                    s.feature_name, s.feature_code, s.country_code)
    return result
