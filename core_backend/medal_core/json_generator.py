from typing import List, Optional

from . import queries
from .processing import MedalSnapshot
from .reconciler import ReconciliationResult
from .schemas import DailyMedalCountOut, MapEntryOut


def map_entries(reconciliation: Optional[ReconciliationResult]) -> List[MapEntryOut]:
    if reconciliation is None:
        return []

    entries = []
    for outcome in reconciliation.outcomes:
        entry = MapEntryOut(feature_code=outcome.feature.code, feature_name=outcome.feature.name)
        if outcome.matched:
            total = outcome.total
            entry = entry.model_copy(update={
                "country_code": total.country_code,
                "method": outcome.method,
                "gold": total.gold,
                "silver": total.silver,
                "bronze": total.bronze,
                "total": total.total,
                "has_data": True,
            })
        entries.append(entry)
    return entries


def map_diagnostics(reconciliation: Optional[ReconciliationResult]) -> dict:
    if reconciliation is None:
        return {"unmatched_features": [], "unplaced_countries": [], "alias_suggestions": []}
    return {
        "unmatched_features": [
            {"code": f.code, "name": f.name} for f in reconciliation.unmatched_features
        ],
        "unplaced_countries": [
            {"country_code": t.country_code, "country": t.country_name}
            for t in reconciliation.unplaced_totals
        ],
        "alias_suggestions": [
            {"feature_code": s.feature_code, "feature_name": s.feature_name, "country_code": s.country_code}
            for s in reconciliation.alias_suggestions
        ],
    }


def timeline(snapshot: MedalSnapshot) -> List[DailyMedalCountOut]:
    return [
        DailyMedalCountOut(date=d.date, gold=d.gold, silver=d.silver, bronze=d.bronze, total=d.total)
        for d in snapshot.index.timeline()
    ]


def generate_json(snapshot: Optional[MedalSnapshot]):
    """
    Full dashboard payload. With no snapshot every section is empty and
    `meta.ready` is False, so the client can tell "not loaded" from "failed".
    """
    final_json = {
        "medal_tally": [],
        "medals_by_discipline": {},
        "timeline": [],
        "relationship": None,
        "dashboard_relationship": None,
        "map": {"entries": [], "diagnostics": map_diagnostics(None)},
        "meta": {"ready": False},
    }
    if snapshot is None:
        return final_json

    final_json["medal_tally"] = [
        t.model_dump(mode="json") for t in queries.top_countries(snapshot.totals, len(snapshot.totals))
    ]
    final_json["medals_by_discipline"] = dict(snapshot.index.by_discipline)
    final_json["timeline"] = [d.model_dump(mode="json") for d in timeline(snapshot)]
    final_json["relationship"] = snapshot.matrix.to_schema().model_dump()
    final_json["dashboard_relationship"] = snapshot.dashboard_matrix.to_schema().model_dump()
    final_json["map"] = {
        "entries": [e.model_dump() for e in map_entries(snapshot.reconciliation)],
        "diagnostics": map_diagnostics(snapshot.reconciliation),
    }
    final_json["meta"] = {
        "ready": True,
        "built_at": snapshot.built_at.isoformat(),
        "countries": len(snapshot.totals),
        "medals": len(snapshot.medals),
        "features": len(snapshot.features),
        "warnings": [{"payload": kind, "detail": str(w)} for kind, w in snapshot.warnings],
    }
    return final_json
