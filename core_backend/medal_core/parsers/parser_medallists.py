import logging
from typing import List, Optional

from ..schemas import DetailedMedal, MedalType
from .parser_medaltally import country_code_field
from .record_parser import (
    Field,
    MalformedInputError,
    ParsedEntities,
    RowWarning,
    date_field,
    parse_delimited,
    required_text_field,
)

log = logging.getLogger(__name__)

MEDAL_MAP = {
    "gold medal": MedalType.GOLD,
    "silver medal": MedalType.SILVER,
    "bronze medal": MedalType.BRONZE,
    "gold": MedalType.GOLD,
    "silver": MedalType.SILVER,
    "bronze": MedalType.BRONZE,
    "g": MedalType.GOLD,
    "s": MedalType.SILVER,
    "b": MedalType.BRONZE,
}

MEDAL_CODE_MAP = {
    "1": MedalType.GOLD,
    "2": MedalType.SILVER,
    "3": MedalType.BRONZE,
}


def medal_type_from(raw_type: Optional[str], raw_code: Optional[str] = None) -> Optional[MedalType]:
    """Resolve 'Gold Medal' / 'Gold' / 'G', falling back to the numeric medal_code."""
    medal_type = MEDAL_MAP.get((raw_type or "").strip().lower())
    if medal_type is None:
        code = (raw_code or "").strip()
        if code.endswith(".0"):
            code = code[:-2]
        medal_type = MEDAL_CODE_MAP.get(code)
    return medal_type


MEDALS_FIELDS = {
    "medal_type": Field("medal_type"),
    "medal_code": Field("medal_code", default=""),
    "date": Field("medal_date", date_field),
    "athlete_name": Field("name", default=""),
    "gender": Field("gender", default=""),
    "discipline": Field("discipline", required_text_field),
    "event": Field("event", default=""),
    "event_type": Field("event_type", default=""),
    "country_code": Field("country_code", country_code_field),
    "country_name": Field("country", default=""),
}


def parse_detailed_medals(text: str) -> ParsedEntities:
    """
    Parsea el CSV detallado (una fila por medalla entregada).
    Filas sin tipo de medalla reconocible, sin fecha valida, sin disciplina
    o sin pais se descartan con RowWarning; el resto del fichero sigue.
    """
    log.info("Iniciando parser de medallistas...")

    try:
        parsed = parse_delimited(text, MEDALS_FIELDS)
    except MalformedInputError as e:
        log.error(f"CSV de medallistas mal formado, se descarta el ciclo completo: {e}")
        raise

    warnings: List[RowWarning] = list(parsed.warnings)
    medals = []

    for line, record in zip(parsed.lines, parsed.records):
        medal_type = medal_type_from(record["medal_type"], record["medal_code"])
        if medal_type is None:
            warnings.append(RowWarning(line, "medal_type",
                                       f"unknown medal type {record['medal_type']!r}",
                                       record["medal_type"], row_skipped=True))
            continue

        medals.append(DetailedMedal(
            medal_type=medal_type,
            date=record["date"],
            athlete_name=record["athlete_name"],
            gender=record["gender"],
            discipline=record["discipline"],
            event=record["event"],
            event_type=record["event_type"],
            country_code=record["country_code"],
            country_name=record["country_name"] or record["country_code"],
        ))

    skipped = sum(1 for w in warnings if w.row_skipped)
    if skipped:
        log.warning(f"Medallistas: {skipped} filas descartadas por datos incompletos.")
    log.info(f"Medallistas procesados: {len(medals)} medallas.")

    return ParsedEntities(items=tuple(medals), warnings=tuple(warnings))
