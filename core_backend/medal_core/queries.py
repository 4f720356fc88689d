"""
Read-only projections over a MedalSnapshot for the dashboard views.

All functions accept `snapshot=None` (nothing loaded yet) and answer with
an empty result rather than raising.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .schemas import DetailedMedal, DisciplineChartRow, MedalTotal


@dataclass(frozen=True)
class CountryBreakdown:
    country_code: str
    total: Optional[MedalTotal]
    medals: Tuple[DetailedMedal, ...]

    @property
    def found(self) -> bool:
        return self.total is not None


@dataclass(frozen=True)
class DisciplineGroup:
    discipline: str
    medals: Tuple[DetailedMedal, ...]

    @property
    def count(self) -> int:
        return len(self.medals)


def top_countries(totals: Iterable[MedalTotal], n: int = 10) -> List[MedalTotal]:
    """Sorted by total descending, ties by country name ascending."""
    if n <= 0:
        return []
    ranked = sorted(totals, key=lambda t: (-t.total, t.country_name))
    return ranked[:n]


def country_breakdown(snapshot, country_code: str) -> CountryBreakdown:
    code = (country_code or "").strip().upper()
    if snapshot is None:
        return CountryBreakdown(code, None, ())
    return CountryBreakdown(
        country_code=code,
        total=snapshot.totals_by_code.get(code),
        medals=snapshot.index.medals_for_country(code),
    )


def top_disciplines(snapshot, country_code: str, n: int = 5) -> List[DisciplineGroup]:
    """
    The country's medals grouped by discipline, largest group first.
    Equal-sized groups keep the order in which the discipline first appears.
    """
    if snapshot is None or n <= 0:
        return []

    groups = {}
    for medal in snapshot.index.medals_for_country((country_code or "").strip().upper()):
        groups.setdefault(medal.discipline, []).append(medal)

    ranked = sorted(groups.items(), key=lambda item: -len(item[1]))
    return [DisciplineGroup(discipline, tuple(medals)) for discipline, medals in ranked[:n]]


def discipline_chart(snapshot, country_code: str, n: int = 8) -> List[DisciplineChartRow]:
    """Gold/silver/bronze per discipline for the stacked bar chart, top `n` by total."""
    if snapshot is None or n <= 0:
        return []
    rows = snapshot.index.discipline_medal_counts((country_code or "").strip().upper())
    return sorted(rows, key=lambda row: -row.total)[:n]


def recent_medals(snapshot, country_code: str, n: int = 5) -> List[DetailedMedal]:
    if snapshot is None:
        return []
    return list(snapshot.index.recent_medals((country_code or "").strip().upper(), n))
