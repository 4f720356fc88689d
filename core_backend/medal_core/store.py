import os
import logging
import threading
from typing import Dict, Optional

from .config import Settings, get_settings
from .parsers import ParsedEntities
from .processing import (
    PAYLOAD_GEOJSON,
    PAYLOAD_MEDALS,
    PAYLOAD_MEDALS_TOTAL,
    MedalSnapshot,
    build_snapshot_from_entities,
    get_parser_function,
    parse_payload,
)
from .reconciler import DEFAULT_ALIASES, AliasTable, load_alias_table

logger = logging.getLogger(__name__)


class SnapshotStore:
    """
    Holds the latest parsed payload of each kind and the snapshot built
    from them. A successful ingest swaps in a brand-new snapshot; a failed
    one leaves the previous snapshot untouched.
    """

    def __init__(self, settings: Optional[Settings] = None, aliases: Optional[AliasTable] = None):
        self.settings = settings or Settings()
        self.aliases = aliases if aliases is not None else DEFAULT_ALIASES
        self._lock = threading.Lock()
        self._parsed: Dict[str, ParsedEntities] = {}
        self._snapshot: Optional[MedalSnapshot] = None

    @property
    def snapshot(self) -> Optional[MedalSnapshot]:
        return self._snapshot

    def received(self, kind: str) -> bool:
        return kind in self._parsed

    def ingest(self, kind: str, payload) -> ParsedEntities:
        kind = (kind or "").strip().lower()
        get_parser_function(kind)  # UnknownPayloadError antes de parsear nada
        parsed = parse_payload(kind, payload, self.settings.totals_policy)

        with self._lock:
            pending = dict(self._parsed)
            pending[kind] = parsed
            snapshot = self._build(pending)
            self._parsed = pending
            if snapshot is not None:
                self._snapshot = snapshot

        logger.info(f"Payload '{kind}' ingerido ({len(parsed)} registros, {len(parsed.warnings)} avisos).")
        return parsed

    def _build(self, parsed: Dict[str, ParsedEntities]) -> Optional[MedalSnapshot]:
        if PAYLOAD_MEDALS_TOTAL not in parsed or PAYLOAD_MEDALS not in parsed:
            logger.info("Snapshot pendiente: faltan medallero o medallistas.")
            return None

        geo = parsed.get(PAYLOAD_GEOJSON)
        warnings = [(kind, w) for kind, entities in parsed.items() for w in entities.warnings]
        return build_snapshot_from_entities(
            parsed[PAYLOAD_MEDALS_TOTAL].items,
            parsed[PAYLOAD_MEDALS].items,
            geo.items if geo is not None else None,
            aliases=self.aliases,
            selection=self.settings.chord_selection,
            warnings=warnings,
        )

    def load_files(self) -> Optional[MedalSnapshot]:
        """Ingest whatever data files exist under settings.data_dir."""
        alias_path = self.settings.path_for(self.settings.aliases_file)
        if alias_path and os.path.exists(alias_path):
            try:
                with open(alias_path, 'r', encoding='utf-8') as f:
                    self.aliases = load_alias_table(f.read())
            except (ValueError, OSError) as e:
                logger.error(f"Fichero de alias '{alias_path}' ignorado: {e}", exc_info=True)

        files = (
            (PAYLOAD_MEDALS_TOTAL, self.settings.medals_total_file),
            (PAYLOAD_MEDALS, self.settings.medals_file),
            (PAYLOAD_GEOJSON, self.settings.geojson_file),
        )
        for kind, filename in files:
            path = self.settings.path_for(filename)
            if not path or not os.path.exists(path):
                logger.warning(f"Fichero de datos no encontrado para '{kind}': {path}")
                continue
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    self.ingest(kind, f.read())
            except (ValueError, OSError) as e:
                # MalformedInputError y UnicodeDecodeError son ValueError
                logger.error(f"Fichero '{path}' no cargado: {e}", exc_info=True)
                continue
        return self._snapshot


_store = SnapshotStore(get_settings())


# --- Store Dependency ---
def get_store() -> SnapshotStore:
    return _store
