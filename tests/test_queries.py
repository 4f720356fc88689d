from medal_core import queries
from medal_core.schemas import MedalTotal


def _total(code, name, gold, silver, bronze, total):
    return MedalTotal(country_code=code, country_name=name, gold=gold,
                      silver=silver, bronze=bronze, total=total)


def test_top_countries_scenario():
    totals = [
        _total("USA", "United States", 10, 5, 3, 18),
        _total("CHN", "China", 8, 9, 6, 23),
    ]
    top = queries.top_countries(totals, 1)
    assert [t.country_code for t in top] == ["CHN"]


def test_top_countries_sorted_and_bounded(totals):
    top = queries.top_countries(totals, 3)
    assert len(top) == 3
    assert [t.total for t in top] == sorted((t.total for t in top), reverse=True)
    assert len(queries.top_countries(totals, 100)) == len(totals)


def test_top_countries_ties_broken_by_name():
    totals = [_total("ZZZ", "Zed", 1, 0, 0, 1), _total("AAA", "Alpha", 1, 0, 0, 1)]
    assert [t.country_code for t in queries.top_countries(totals, 2)] == ["AAA", "ZZZ"]


def test_top_countries_empty():
    assert queries.top_countries([], 5) == []
    assert queries.top_countries([_total("USA", "United States", 1, 0, 0, 1)], 0) == []


def test_country_breakdown(snapshot):
    breakdown = queries.country_breakdown(snapshot, "usa")
    assert breakdown.found
    assert breakdown.total.gold == 10
    assert [m.athlete_name for m in breakdown.medals] == ["Athlete A", "Athlete B", "Athlete F"]


def test_country_breakdown_not_found(snapshot):
    breakdown = queries.country_breakdown(snapshot, "XYZ")
    assert not breakdown.found
    assert breakdown.medals == ()


def test_top_disciplines(snapshot):
    groups = queries.top_disciplines(snapshot, "USA", 5)
    assert [(g.discipline, g.count) for g in groups] == [("Swimming", 2), ("Judo", 1)]
    assert [(g.discipline, g.count) for g in queries.top_disciplines(snapshot, "USA", 1)] == [("Swimming", 2)]
    assert queries.top_disciplines(snapshot, "USA", 0) == []


def test_discipline_chart_and_recent(snapshot):
    chart = queries.discipline_chart(snapshot, "USA")
    assert chart[0].discipline == "Swimming"
    assert chart[0].total == 2
    recent = queries.recent_medals(snapshot, "USA", 2)
    assert [m.athlete_name for m in recent] == ["Athlete A", "Athlete F"]


def test_queries_without_snapshot():
    assert queries.country_breakdown(None, "USA").total is None
    assert queries.top_disciplines(None, "USA") == []
    assert queries.discipline_chart(None, "USA") == []
    assert queries.recent_medals(None, "USA") == []


def test_queries_are_repeatable(snapshot):
    first = queries.top_disciplines(snapshot, "USA")
    second = queries.top_disciplines(snapshot, "USA")
    assert first == second


def test_queries_with_missing_country_code(snapshot):
    assert queries.country_breakdown(snapshot, None).medals == ()
    assert queries.top_disciplines(snapshot, None) == []
    assert queries.discipline_chart(snapshot, None) == []
    assert queries.recent_medals(snapshot, None) == []
