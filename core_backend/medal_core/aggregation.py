import datetime
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Tuple

from .schemas import DetailedMedal, DisciplineChartRow, MedalType

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DailyMedalCount:
    date: datetime.date
    gold: int = 0
    silver: int = 0
    bronze: int = 0

    @property
    def total(self) -> int:
        return self.gold + self.silver + self.bronze


@dataclass(frozen=True)
class AggregationIndex:
    """
    Groupings over one DetailedMedal collection. Built in one pass by
    build_index(); a new collection means a new index, never an update.
    """
    medals: Tuple[DetailedMedal, ...]
    by_discipline: Mapping[str, int]
    by_country: Mapping[str, Tuple[DetailedMedal, ...]]
    by_day: Mapping[datetime.date, DailyMedalCount]

    def medals_for_country(self, country_code: str, chronological: bool = False) -> Tuple[DetailedMedal, ...]:
        medals = self.by_country.get(country_code, ())
        if chronological:
            # sorted() es estable: a igual fecha se mantiene el orden de origen
            return tuple(sorted(medals, key=lambda m: m.date))
        return medals

    def recent_medals(self, country_code: str, n: int) -> Tuple[DetailedMedal, ...]:
        """Newest first; medals on the same day keep their source order."""
        if n <= 0:
            return ()
        medals = self.by_country.get(country_code, ())
        return tuple(sorted(medals, key=lambda m: m.date, reverse=True)[:n])

    def discipline_medal_counts(self, country_code: str) -> List[DisciplineChartRow]:
        counts: Dict[str, Dict[str, int]] = {}
        for medal in self.by_country.get(country_code, ()):
            row = counts.setdefault(medal.discipline, {"gold": 0, "silver": 0, "bronze": 0})
            row[_MEDAL_KEYS[medal.medal_type]] += 1
        return [DisciplineChartRow(discipline=d, **c) for d, c in counts.items()]

    def timeline(self) -> List[DailyMedalCount]:
        return list(self.by_day.values())


_MEDAL_KEYS = {
    MedalType.GOLD: "gold",
    MedalType.SILVER: "silver",
    MedalType.BRONZE: "bronze",
}


def build_index(medals: Iterable[DetailedMedal]) -> AggregationIndex:
    medals = tuple(medals)

    by_discipline: Dict[str, int] = {}
    by_country: Dict[str, List[DetailedMedal]] = {}
    daily: Dict[datetime.date, Dict[str, int]] = {}

    for medal in medals:
        by_discipline[medal.discipline] = by_discipline.get(medal.discipline, 0) + 1
        by_country.setdefault(medal.country_code, []).append(medal)
        day = daily.setdefault(medal.date, {"gold": 0, "silver": 0, "bronze": 0})
        day[_MEDAL_KEYS[medal.medal_type]] += 1

    by_day = {d: DailyMedalCount(date=d, **daily[d]) for d in sorted(daily)}

    log.info("Aggregation index: %s medals, %s disciplines, %s countries, %s days.",
             len(medals), len(by_discipline), len(by_country), len(by_day))

    return AggregationIndex(
        medals=medals,
        by_discipline=MappingProxyType(by_discipline),
        by_country=MappingProxyType({code: tuple(group) for code, group in by_country.items()}),
        by_day=MappingProxyType(by_day),
    )
