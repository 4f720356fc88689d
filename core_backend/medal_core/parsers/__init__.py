from .record_parser import MalformedInputError, ParsedEntities, RowWarning
from .parser_medaltally import TotalsPolicy, parse_medal_totals, serialize_medal_totals
from .parser_medallists import parse_detailed_medals
from .parser_geo import parse_geojson
