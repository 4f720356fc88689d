import os
import logging
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .parsers.parser_medaltally import TotalsPolicy
from .relationship import CapSelection

logger = logging.getLogger(__name__)


def _load_env_file(dotenv_path: str) -> None:
    """Load .env handling legacy encodings gracefully."""
    if not os.path.exists(dotenv_path):
        logger.info(".env file not found at %s, using process environment only", dotenv_path)
        return

    encodings_to_try = ("utf-8", "latin-1", None)
    for encoding in encodings_to_try:
        try:
            load_dotenv(dotenv_path=dotenv_path, encoding=encoding)
            return
        except UnicodeDecodeError:
            if encoding is None:
                raise
            logger.warning(
                "Failed loading .env with %s encoding, trying next fallback...",
                encoding,
            )


# The .env file lives in 'core_backend', this module in 'core_backend/medal_core'
dotenv_path = os.path.join(os.path.dirname(__file__), '..', '.env')
_load_env_file(dotenv_path)

DEFAULT_DATA_DIR = os.path.join(os.path.dirname(__file__), '..', 'data')


@dataclass(frozen=True)
class Settings:
    data_dir: str = DEFAULT_DATA_DIR
    medals_total_file: str = "medals_total.csv"
    medals_file: str = "medals.csv"
    geojson_file: str = "countries.geojson"
    aliases_file: Optional[str] = None
    totals_policy: TotalsPolicy = TotalsPolicy.SOURCE
    chord_selection: CapSelection = CapSelection.ALPHABETICAL
    log_level: str = "INFO"

    def path_for(self, filename: Optional[str]) -> Optional[str]:
        if not filename:
            return None
        return os.path.join(self.data_dir, filename)


def _enum_from_env(name: str, enum_cls, default):
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return enum_cls(raw.strip().lower())
    except ValueError:
        logger.warning("Invalid %s=%r, falling back to %s", name, raw, default.value)
        return default


def get_settings() -> Settings:
    """Read settings from the environment (after .env has been loaded)."""
    return Settings(
        data_dir=os.getenv("MEDAL_DATA_DIR", DEFAULT_DATA_DIR),
        medals_total_file=os.getenv("MEDALS_TOTAL_FILE", "medals_total.csv"),
        medals_file=os.getenv("MEDALS_FILE", "medals.csv"),
        geojson_file=os.getenv("GEOJSON_FILE", "countries.geojson"),
        aliases_file=os.getenv("ALIASES_FILE") or None,
        totals_policy=_enum_from_env("TOTALS_POLICY", TotalsPolicy, TotalsPolicy.SOURCE),
        chord_selection=_enum_from_env("CHORD_SELECTION", CapSelection, CapSelection.ALPHABETICAL),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
