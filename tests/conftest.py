import copy

import pytest

TOTALS_CSV = """country_code,country,country_long,Gold Medal,Silver Medal,Bronze Medal,Total
USA,United States,United States of America,10,5,3,18
CHN,China,People's Republic of China,8,9,6,23
GER,Germany,Germany,4,2,1,7
KEN,Kenya,Kenya,1,0,0,1
"""

MEDALS_CSV = """medal_type,medal_code,medal_date,name,gender,discipline,event,event_type,url_event,code,country_code,country,country_long
Gold Medal,1,2024-07-28,Athlete A,W,Swimming,Women's 100m Freestyle,ATH,/en/a,1001,USA,United States,United States of America
Silver Medal,2,2024-07-27,Athlete B,M,Swimming,Men's 200m Freestyle,ATH,/en/b,1002,USA,United States,United States of America
Gold Medal,1,2024-07-27,Athlete C,W,Diving,Women's Synchronised 10m,TEAM,/en/c,1003,CHN,China,People's Republic of China
Bronze Medal,3,2024-07-29,Athlete D,M,Judo,Men -60 kg,ATH,/en/d,1004,GER,Germany,Germany
Gold Medal,1,2024-07-27,Athlete E,M,Athletics,Men's 10000m,ATH,/en/e,1005,KEN,Kenya,Kenya
Bronze Medal,3,2024-07-28,Athlete F,W,Judo,Women -48 kg,ATH,/en/f,1006,USA,United States,United States of America
"""

GEOJSON = {
    "type": "FeatureCollection",
    "features": [
        {"type": "Feature", "properties": {"ISO_A3": "USA", "NAME": "United States"},
         "geometry": {"type": "Polygon", "coordinates": []}},
        {"type": "Feature", "properties": {"ISO_A3": "CHN", "NAME": "China"},
         "geometry": {"type": "Polygon", "coordinates": []}},
        {"type": "Feature", "properties": {"ISO_A3": "DEU", "NAME": "Germany"},
         "geometry": {"type": "MultiPolygon", "coordinates": []}},
        {"type": "Feature", "properties": {"ISO_A3": "ATA", "NAME": "Antarctica"},
         "geometry": {"type": "Polygon", "coordinates": []}},
        {"type": "Feature", "properties": {"ISO_A3": "-99", "NAME": "Northern Cyprus"},
         "geometry": {"type": "Polygon", "coordinates": []}},
    ],
}


@pytest.fixture
def totals_csv():
    return TOTALS_CSV


@pytest.fixture
def medals_csv():
    return MEDALS_CSV


@pytest.fixture
def geojson():
    return copy.deepcopy(GEOJSON)


@pytest.fixture
def totals(totals_csv):
    from medal_core.parsers import parse_medal_totals
    return parse_medal_totals(totals_csv).items


@pytest.fixture
def medals(medals_csv):
    from medal_core.parsers import parse_detailed_medals
    return parse_detailed_medals(medals_csv).items


@pytest.fixture
def features(geojson):
    from medal_core.parsers import parse_geojson
    return parse_geojson(geojson).items


@pytest.fixture
def snapshot(totals_csv, medals_csv, geojson):
    from medal_core.processing import build_snapshot
    return build_snapshot(totals_csv, medals_csv, geojson)
