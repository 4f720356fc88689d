"""
Generic delimited-text parser.

Every entity parser describes its columns as a mapping of
field name -> Field(column, transform, default) and lets
parse_delimited() do the reading. The rules are:

* The header row is mandatory.
* A transform signals bad input by raising ValueError. Fields that carry
  a default are coerced to it (the blank/garbled numeric cell case) and
  a RowWarning is recorded, so the coercion is never silent. Fields
  without a default reject the whole row, also with a RowWarning.
* Structurally broken text (unterminated quotes, rows whose column
  count differs from the header) raises MalformedInputError and no
  records at all are returned.
"""
import csv
import datetime
import io
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

log = logging.getLogger(__name__)

BOM = "\ufeff"


class MalformedInputError(ValueError):
    """The payload is not well-formed tabular (or GeoJSON) input."""

    def __init__(self, message: str, line: Optional[int] = None):
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class _Required:
    def __repr__(self):
        return "REQUIRED"


REQUIRED = _Required()


# --- Transforms ---

def text_field(raw: str) -> str:
    return raw.strip()


def required_text_field(raw: str) -> str:
    value = raw.strip()
    if not value:
        raise ValueError("empty value")
    return value


def count_field(raw: str) -> int:
    """Non-negative integer. '3.0' is accepted, blanks and '2.5' are not."""
    value = raw.strip()
    if not value:
        raise ValueError("blank count")
    try:
        number = int(value)
    except ValueError:
        as_float = float(value)
        if not as_float.is_integer():
            raise ValueError(f"non-integral count {value!r}")
        number = int(as_float)
    if number < 0:
        raise ValueError(f"negative count {number}")
    return number


def date_field(raw: str) -> datetime.date:
    """ISO calendar date; a trailing time-of-day part is ignored."""
    value = raw.strip()
    if not value:
        raise ValueError("blank date")
    return datetime.date.fromisoformat(value[:10])


@dataclass(frozen=True)
class Field:
    column: str
    transform: Callable[[str], Any] = text_field
    default: Any = REQUIRED

    @property
    def required(self) -> bool:
        return self.default is REQUIRED


@dataclass(frozen=True)
class RowWarning:
    line: int
    column: str
    message: str
    value: Optional[str] = None
    row_skipped: bool = False

    def __str__(self):
        action = "row skipped" if self.row_skipped else "value coerced"
        return f"line {self.line}, column '{self.column}': {self.message} ({action})"


@dataclass(frozen=True)
class ParseResult:
    records: Tuple[Dict[str, Any], ...]
    warnings: Tuple[RowWarning, ...]
    lines: Tuple[int, ...] = ()

    @property
    def skipped_rows(self) -> int:
        return len({w.line for w in self.warnings if w.row_skipped})


def _read_rows(text: str, delimiter: str) -> List[Tuple[int, List[str]]]:
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter, strict=True)
    rows = []
    try:
        for row in reader:
            rows.append((reader.line_num, row))
    except csv.Error as e:
        raise MalformedInputError(str(e), line=reader.line_num) from e
    return rows


def parse_delimited(
    text: str,
    fields: Mapping[str, Field],
    delimiter: str = ",",
) -> ParseResult:
    """
    Parse `text` into one dict per data row, keyed by the names in `fields`.
    Raises MalformedInputError for anything that is not well-formed tabular text.
    """
    if text is None:
        raise MalformedInputError("no input")
    if text.startswith(BOM):
        text = text[len(BOM):]

    rows = list(_read_rows(text, delimiter))
    start = next((i for i, (_, row) in enumerate(rows) if any(cell.strip() for cell in row)), None)
    if start is None:
        raise MalformedInputError("missing header row", line=1)

    header_line, header = rows[start]
    header = [name.strip() for name in header]
    # Blank rows are skipped only when they are empty or header-shaped
    rows = [rows[start]] + [
        (line, row) for line, row in rows[start + 1:]
        if any(cell.strip() for cell in row) or len(row) not in (0, len(header))
    ]
    positions = {}
    for idx, name in enumerate(header):
        positions.setdefault(name, idx)

    warnings: List[RowWarning] = []
    for name, field_def in fields.items():
        if field_def.column in positions:
            continue
        if field_def.required:
            raise MalformedInputError(f"missing column '{field_def.column}'", line=header_line)
        warnings.append(RowWarning(header_line, field_def.column,
                                   f"column missing, every row defaults to {field_def.default!r}"))

    records = []
    record_lines = []
    for line, row in rows[1:]:
        if len(row) != len(header):
            raise MalformedInputError(
                f"expected {len(header)} columns, found {len(row)}", line=line)

        record = {}
        rejected = False
        for name, field_def in fields.items():
            idx = positions.get(field_def.column)
            if idx is None:
                record[name] = field_def.default
                continue

            raw = row[idx]
            try:
                record[name] = field_def.transform(raw)
            except ValueError as e:
                if field_def.required:
                    warnings.append(RowWarning(line, field_def.column, str(e), raw, row_skipped=True))
                    rejected = True
                    break
                warnings.append(RowWarning(line, field_def.column, str(e), raw))
                record[name] = field_def.default

        if not rejected:
            records.append(record)
            record_lines.append(line)

    for warning in warnings:
        log.debug("Parse warning: %s", warning)

    return ParseResult(records=tuple(records), warnings=tuple(warnings), lines=tuple(record_lines))


def write_delimited(rows: Iterable[Sequence[Any]], header: Sequence[str], delimiter: str = ",") -> str:
    """Inverse of parse_delimited for plain rows: header first, '\\n' line endings."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=delimiter, lineterminator="\n")
    writer.writerow(header)
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue()


@dataclass(frozen=True)
class ParsedEntities:
    """Typed entities produced by one of the entity parsers, plus its data-quality warnings."""
    items: Tuple[Any, ...]
    warnings: Tuple[RowWarning, ...] = ()

    def __len__(self):
        return len(self.items)

    def __iter__(self):
        return iter(self.items)
