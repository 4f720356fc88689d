import datetime
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional, Tuple

from .aggregation import AggregationIndex, build_index
from .parsers import (
    ParsedEntities,
    RowWarning,
    TotalsPolicy,
    parse_detailed_medals,
    parse_geojson,
    parse_medal_totals,
)
from .reconciler import DEFAULT_ALIASES, AliasTable, ReconciliationResult, reconcile
from .relationship import CapSelection, RelationshipMatrix, build_dashboard_matrix, build_relationship_matrix
from .schemas import DetailedMedal, GeoFeature, MedalTotal

log = logging.getLogger(__name__)

PAYLOAD_MEDALS_TOTAL = "medals_total"
PAYLOAD_MEDALS = "medals"
PAYLOAD_GEOJSON = "geojson"


class UnknownPayloadError(KeyError):
    pass


# --- Mapa de enrutamiento: tipo de payload -> parser ---
ROUTING_MAP = {
    PAYLOAD_MEDALS_TOTAL: parse_medal_totals,
    PAYLOAD_MEDALS: parse_detailed_medals,
    PAYLOAD_GEOJSON: parse_geojson,
}


def get_parser_function(kind: str) -> Callable[..., ParsedEntities]:
    parser_func = ROUTING_MAP.get((kind or "").strip().lower())
    if parser_func is None:
        raise UnknownPayloadError(kind)
    return parser_func


def parse_payload(kind: str, payload: Any, policy: TotalsPolicy = TotalsPolicy.SOURCE) -> ParsedEntities:
    """Route a raw payload to its parser. MalformedInputError propagates to the caller."""
    parser_func = get_parser_function(kind)
    log.info(f"Payload '{kind}' recibido. Enrutando a {parser_func.__name__}...")
    if parser_func is parse_medal_totals:
        return parser_func(payload, policy)
    return parser_func(payload)


@dataclass(frozen=True)
class MedalSnapshot:
    """
    Everything the dashboard reads for one data cycle. Immutable: a new
    cycle builds a new snapshot, readers of the old one are unaffected.
    """
    totals: Tuple[MedalTotal, ...]
    medals: Tuple[DetailedMedal, ...]
    features: Tuple[GeoFeature, ...]
    index: AggregationIndex
    reconciliation: Optional[ReconciliationResult]
    matrix: RelationshipMatrix
    dashboard_matrix: RelationshipMatrix
    warnings: Tuple[Tuple[str, RowWarning], ...] = ()
    built_at: datetime.datetime = field(default_factory=lambda: datetime.datetime.now(datetime.timezone.utc))
    totals_by_code: Mapping[str, MedalTotal] = field(default=None)

    def __post_init__(self):
        if self.totals_by_code is None:
            by_code = MappingProxyType({t.country_code: t for t in self.totals})
            object.__setattr__(self, "totals_by_code", by_code)


def build_snapshot_from_entities(
    totals: Iterable[MedalTotal],
    medals: Iterable[DetailedMedal],
    features: Optional[Iterable[GeoFeature]] = None,
    aliases: AliasTable = DEFAULT_ALIASES,
    selection: CapSelection = CapSelection.ALPHABETICAL,
    warnings: Iterable[Tuple[str, RowWarning]] = (),
) -> MedalSnapshot:
    totals = tuple(totals)
    medals = tuple(medals)
    features = None if features is None else tuple(features)

    # Los tres derivados son independientes entre si.
    index = build_index(medals)
    reconciliation = reconcile(totals, features, aliases) if features is not None else None
    matrix = build_relationship_matrix(medals, selection=selection)
    dashboard_matrix = build_dashboard_matrix(medals, selection=selection)

    return MedalSnapshot(
        totals=totals,
        medals=medals,
        features=features or (),
        index=index,
        reconciliation=reconciliation,
        matrix=matrix,
        dashboard_matrix=dashboard_matrix,
        warnings=tuple(warnings),
    )


def build_snapshot(
    totals_text: str,
    medals_text: str,
    geojson: Any = None,
    aliases: AliasTable = DEFAULT_ALIASES,
    policy: TotalsPolicy = TotalsPolicy.SOURCE,
    selection: CapSelection = CapSelection.ALPHABETICAL,
) -> MedalSnapshot:
    """
    load -> parse -> index / reconcile / matrix. Any parse failure aborts
    the whole cycle before anything derived is built.
    """
    parsed_totals = parse_payload(PAYLOAD_MEDALS_TOTAL, totals_text, policy)
    parsed_medals = parse_payload(PAYLOAD_MEDALS, medals_text)
    parsed_geo = parse_payload(PAYLOAD_GEOJSON, geojson) if geojson is not None else None

    warnings = [(PAYLOAD_MEDALS_TOTAL, w) for w in parsed_totals.warnings]
    warnings += [(PAYLOAD_MEDALS, w) for w in parsed_medals.warnings]
    if parsed_geo is not None:
        warnings += [(PAYLOAD_GEOJSON, w) for w in parsed_geo.warnings]

    return build_snapshot_from_entities(
        parsed_totals.items,
        parsed_medals.items,
        parsed_geo.items if parsed_geo is not None else None,
        aliases=aliases,
        selection=selection,
        warnings=warnings,
    )
