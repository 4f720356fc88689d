import logging
from enum import Enum
from typing import Dict, Iterable, List

from ..schemas import MedalTotal
from .code_validators import normalize_country_code
from .record_parser import (
    Field,
    MalformedInputError,
    ParsedEntities,
    RowWarning,
    count_field,
    parse_delimited,
    text_field,
    write_delimited,
)

log = logging.getLogger(__name__)


class TotalsPolicy(str, Enum):
    SOURCE = "source"        # usar la columna Total (suma calculada si falta)
    RECOMPUTE = "recompute"  # siempre gold + silver + bronze


def country_code_field(raw: str) -> str:
    code = normalize_country_code(raw)
    if code is None:
        raise ValueError(f"invalid country code {raw.strip()!r}")
    return code


TOTALS_FIELDS = {
    "country_code": Field("country_code", country_code_field),
    "country_name": Field("country"),
    "country_long_name": Field("country_long", default=""),
    "gold": Field("Gold Medal", count_field, default=0),
    "silver": Field("Silver Medal", count_field, default=0),
    "bronze": Field("Bronze Medal", count_field, default=0),
    "total": Field("Total", count_field, default=None),
}

TOTALS_HEADER = [field_def.column for field_def in TOTALS_FIELDS.values()]


def parse_medal_totals(text: str, policy: TotalsPolicy = TotalsPolicy.SOURCE) -> ParsedEntities:
    """
    Parsea el CSV de medallero (una fila por pais) y devuelve los MedalTotal.

    - Celdas numericas vacias o corruptas -> 0, con RowWarning.
    - Codigo de pais repetido -> gana la ultima fila, conserva la posicion de la primera.
    - Total de la fuente distinto de la suma -> se aplica `policy` y se avisa.
    """
    log.info(f"Iniciando parser de medallero (policy={TotalsPolicy(policy).value})...")

    try:
        parsed = parse_delimited(text, TOTALS_FIELDS)
    except MalformedInputError as e:
        log.error(f"Medallero mal formado, se descarta el ciclo completo: {e}")
        raise

    warnings: List[RowWarning] = list(parsed.warnings)
    by_code: Dict[str, MedalTotal] = {}

    for line, record in zip(parsed.lines, parsed.records):
        computed = record["gold"] + record["silver"] + record["bronze"]
        source_total = record["total"]

        if source_total is not None and source_total != computed:
            warnings.append(RowWarning(
                line, "Total",
                f"source total {source_total} differs from gold+silver+bronze {computed}",
                str(source_total),
            ))

        if policy == TotalsPolicy.RECOMPUTE or source_total is None:
            total = computed
        else:
            total = source_total

        code = record["country_code"]
        if code in by_code:
            warnings.append(RowWarning(line, "country_code",
                                       f"duplicate country code {code}, last row wins", code))

        by_code[code] = MedalTotal(
            country_code=code,
            country_name=record["country_name"] or code,
            country_long_name=record["country_long_name"],
            gold=record["gold"],
            silver=record["silver"],
            bronze=record["bronze"],
            total=total,
        )

    if warnings:
        log.warning(f"Medallero: {len(warnings)} avisos de calidad de datos.")
    log.info(f"Medallero procesado con {len(by_code)} paises.")

    return ParsedEntities(items=tuple(by_code.values()), warnings=tuple(warnings))


def serialize_medal_totals(totals: Iterable[MedalTotal]) -> str:
    """Write MedalTotals back out with the same header parse_medal_totals reads."""
    rows = (
        (t.country_code, t.country_name, t.country_long_name,
         t.gold, t.silver, t.bronze, t.total)
        for t in totals
    )
    return write_delimited(rows, TOTALS_HEADER)
