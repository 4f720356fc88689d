import json
import logging
from typing import Any, Mapping, Optional, Union

from ..schemas import GeoFeature
from .code_validators import normalize_geo_code, normalize_name
from .record_parser import MalformedInputError, ParsedEntities, RowWarning

log = logging.getLogger(__name__)

# Los distintos datasets de fronteras no se ponen de acuerdo en el nombre de la propiedad.
CODE_PROPERTIES = ("ISO_A3", "iso_a3", "ISO3166-1-Alpha-3", "ADM0_A3")
NAME_PROPERTIES = ("NAME", "ADMIN", "name", "NAME_LONG")


def _first_property(properties: Mapping[str, Any], keys) -> Optional[Any]:
    for key in keys:
        value = properties.get(key)
        if value not in (None, ""):
            return value
    return None


def parse_geojson(payload: Union[str, bytes, Mapping[str, Any]]) -> ParsedEntities:
    """
    Load a GeoJSON FeatureCollection into GeoFeatures, one per feature, in
    document order. Features without a usable code are kept (code=None) so
    the map can still draw them in the "no data" state.
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError as e:
            raise MalformedInputError(f"invalid GeoJSON: {e}") from e

    if not isinstance(payload, Mapping) or payload.get("type") != "FeatureCollection":
        raise MalformedInputError("GeoJSON payload is not a FeatureCollection")

    raw_features = payload.get("features")
    if not isinstance(raw_features, list):
        raise MalformedInputError("GeoJSON FeatureCollection has no 'features' list")

    features = []
    warnings = []
    for position, raw in enumerate(raw_features, start=1):
        if not isinstance(raw, Mapping):
            raise MalformedInputError(f"feature {position} is not an object")

        properties = dict(raw.get("properties") or {})
        raw_code = _first_property(properties, CODE_PROPERTIES)
        if raw_code is None:
            raw_code = raw.get("id")
        code = normalize_geo_code(raw_code)
        name = normalize_name(_first_property(properties, NAME_PROPERTIES) or "")

        if code is None:
            warnings.append(RowWarning(position, "ISO_A3",
                                       f"feature {name or position!r} has no boundary code",
                                       None if raw_code is None else str(raw_code)))

        features.append(GeoFeature(
            code=code,
            name=name or (code or ""),
            geometry=raw.get("geometry"),
            properties=properties,
        ))

    log.info(f"GeoJSON procesado: {len(features)} territorios ({len(warnings)} sin codigo).")
    return ParsedEntities(items=tuple(features), warnings=tuple(warnings))
