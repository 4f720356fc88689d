import re
from typing import Optional

COUNTRY_CODE_LEN = 3

# Natural Earth marca con '-99' los territorios sin codigo ISO asignado.
MISSING_GEO_CODES = {"-99", "-1", ""}

COUNTRY_CODE_RE = re.compile(r"^[A-Z]{3}$")
ISO_A3_RE = re.compile(r"^[A-Z]{3}$")


def normalize_country_code(code: Optional[str]) -> Optional[str]:
    """
    Normalize a medal-dataset country code (IOC/NOC style, e.g. 'GER').
    Returns None when the value cannot be a three-letter code.
    """
    if code is None:
        return None

    code = code.strip().upper()
    if not COUNTRY_CODE_RE.fullmatch(code):
        return None
    return code


def normalize_geo_code(code) -> Optional[str]:
    """
    Normalize a boundary-dataset code (ISO 3166-1 alpha-3).
    Placeholders such as '-99' become None.
    """
    if code is None:
        return None

    code = str(code).strip().upper()
    if code in MISSING_GEO_CODES:
        return None
    if not ISO_A3_RE.fullmatch(code):
        return None
    return code


def normalize_name(name: Optional[str]) -> str:
    """Collapse whitespace and non-breaking spaces in a display name."""
    if not name:
        return ""
    name = name.replace("\u00a0", " ")
    return re.sub(r"\s+", " ", name).strip()


def names_match(left: Optional[str], right: Optional[str]) -> bool:
    """Case-insensitive comparison of two display names."""
    left_norm = normalize_name(left).casefold()
    if not left_norm:
        return False
    return left_norm == normalize_name(right).casefold()
