"""
Country x discipline co-occurrence matrix for the chord diagram.

Names are laid out as `countries ++ disciplines`; every medal adds one
to both [country][discipline] and [discipline][country], so the matrix
is symmetric and its diagonal stays zero.
"""
import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .schemas import DetailedMedal, RelationshipMatrixOut

log = logging.getLogger(__name__)

DASHBOARD_CAP = 10


class CapSelection(str, Enum):
    ALPHABETICAL = "alphabetical"  # los primeros N tras ordenar por nombre
    VOLUME = "volume"              # los N con mas medallas


@dataclass(frozen=True)
class RelationshipMatrix:
    names: Tuple[str, ...]
    matrix: Tuple[Tuple[int, ...], ...]
    country_count: int
    selection: CapSelection = CapSelection.ALPHABETICAL

    @property
    def countries(self) -> Tuple[str, ...]:
        return self.names[:self.country_count]

    @property
    def disciplines(self) -> Tuple[str, ...]:
        return self.names[self.country_count:]

    def group_totals(self) -> List[int]:
        return [sum(row) for row in self.matrix]

    def value(self, country: str, discipline: str) -> int:
        try:
            i = self.countries.index(country)
            j = self.country_count + self.disciplines.index(discipline)
        except ValueError:
            return 0
        return self.matrix[i][j]

    def to_schema(self) -> RelationshipMatrixOut:
        return RelationshipMatrixOut(
            names=list(self.names),
            matrix=[list(row) for row in self.matrix],
            country_count=self.country_count,
            selection=self.selection.value,
        )


def _select(counts: Counter, cap: Optional[int], selection: CapSelection) -> List[str]:
    names = sorted(counts)
    if cap is None or cap >= len(names):
        return names
    if selection == CapSelection.VOLUME:
        by_volume = sorted(names, key=lambda name: -counts[name])
        return sorted(by_volume[:cap])
    return names[:cap]


def build_relationship_matrix(
    medals: Iterable[DetailedMedal],
    max_countries: Optional[int] = None,
    max_disciplines: Optional[int] = None,
    selection: CapSelection = CapSelection.ALPHABETICAL,
) -> RelationshipMatrix:
    """
    Build the symmetric matrix. A medal whose country or discipline was
    capped out adds nothing at all.
    """
    for label, cap in (("max_countries", max_countries), ("max_disciplines", max_disciplines)):
        if cap is not None and cap < 0:
            raise ValueError(f"{label} must be >= 0, got {cap}")
    selection = CapSelection(selection)

    medals = list(medals)
    countries = _select(Counter(m.country_name for m in medals), max_countries, selection)
    disciplines = _select(Counter(m.discipline for m in medals), max_disciplines, selection)

    # Indices separados: un pais y una disciplina con el mismo nombre no se mezclan.
    country_idx: Dict[str, int] = {name: i for i, name in enumerate(countries)}
    discipline_idx: Dict[str, int] = {name: len(countries) + i for i, name in enumerate(disciplines)}

    size = len(countries) + len(disciplines)
    matrix = [[0] * size for _ in range(size)]

    for medal in medals:
        i = country_idx.get(medal.country_name)
        j = discipline_idx.get(medal.discipline)
        if i is None or j is None:
            continue
        matrix[i][j] += 1
        matrix[j][i] += 1

    log.info("Relationship matrix %sx%s (%s countries, %s disciplines, selection=%s).",
             size, size, len(countries), len(disciplines), selection.value)

    return RelationshipMatrix(
        names=tuple(countries) + tuple(disciplines),
        matrix=tuple(tuple(row) for row in matrix),
        country_count=len(countries),
        selection=selection,
    )


def build_dashboard_matrix(medals: Sequence[DetailedMedal],
                           selection: CapSelection = CapSelection.ALPHABETICAL) -> RelationshipMatrix:
    return build_relationship_matrix(medals, DASHBOARD_CAP, DASHBOARD_CAP, selection)
