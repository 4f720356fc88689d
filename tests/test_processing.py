import json

import pytest

from medal_core.config import Settings
from medal_core.parsers import MalformedInputError, TotalsPolicy
from medal_core.processing import (
    PAYLOAD_GEOJSON,
    PAYLOAD_MEDALS,
    PAYLOAD_MEDALS_TOTAL,
    UnknownPayloadError,
    build_snapshot,
    get_parser_function,
)
from medal_core.reconciler import DEFAULT_ALIASES
from medal_core.store import SnapshotStore


def test_build_snapshot_wires_everything(snapshot):
    assert len(snapshot.totals) == 4
    assert len(snapshot.medals) == 6
    assert len(snapshot.features) == 5
    assert snapshot.totals_by_code["GER"].country_name == "Germany"
    assert len(snapshot.reconciliation.outcomes) == 5
    assert snapshot.matrix.country_count == 4
    assert snapshot.dashboard_matrix.names == snapshot.matrix.names
    assert snapshot.index.by_discipline["Swimming"] == 2


def test_snapshot_without_geojson(totals_csv, medals_csv):
    snapshot = build_snapshot(totals_csv, medals_csv)
    assert snapshot.reconciliation is None
    assert snapshot.features == ()


def test_malformed_payload_aborts_cycle(totals_csv, medals_csv):
    with pytest.raises(MalformedInputError):
        build_snapshot(totals_csv, medals_csv + 'Gold Medal,"unterminated\n')


def test_snapshot_collects_warnings(medals_csv):
    totals = ("country_code,country,country_long,Gold Medal,Silver Medal,Bronze Medal,Total\n"
              "USA,United States,,1,,0,5\n")
    snapshot = build_snapshot(totals, medals_csv, policy=TotalsPolicy.RECOMPUTE)
    assert snapshot.totals[0].total == 1
    assert {kind for kind, _ in snapshot.warnings} == {PAYLOAD_MEDALS_TOTAL}


def test_unknown_payload_kind():
    with pytest.raises(UnknownPayloadError):
        get_parser_function("xml")


def test_store_builds_snapshot_once_both_tables_arrive(totals_csv, medals_csv, geojson):
    store = SnapshotStore(Settings(), DEFAULT_ALIASES)
    store.ingest(PAYLOAD_MEDALS_TOTAL, totals_csv)
    assert store.snapshot is None

    store.ingest(PAYLOAD_MEDALS, medals_csv)
    first = store.snapshot
    assert first is not None
    assert first.reconciliation is None

    store.ingest(PAYLOAD_GEOJSON, geojson)
    second = store.snapshot
    assert second is not first
    assert second.reconciliation is not None
    # El snapshot anterior no se toca
    assert first.reconciliation is None


def test_store_keeps_previous_snapshot_on_parse_failure(totals_csv, medals_csv):
    store = SnapshotStore(Settings(), DEFAULT_ALIASES)
    store.ingest(PAYLOAD_MEDALS_TOTAL, totals_csv)
    store.ingest(PAYLOAD_MEDALS, medals_csv)
    before = store.snapshot

    with pytest.raises(MalformedInputError):
        store.ingest(PAYLOAD_MEDALS_TOTAL, "country_code,country\nUSA\n")
    assert store.snapshot is before


def test_store_load_files(tmp_path, totals_csv, medals_csv):
    (tmp_path / "medals_total.csv").write_text(totals_csv, encoding="utf-8")
    (tmp_path / "medals.csv").write_text(medals_csv, encoding="utf-8")
    (tmp_path / "aliases.csv").write_text("medal_code,geo_code\nKEN,KEN\n", encoding="utf-8")

    store = SnapshotStore(Settings(data_dir=str(tmp_path), aliases_file="aliases.csv"))
    snapshot = store.load_files()
    assert snapshot is not None
    assert len(snapshot.totals) == 4
    assert store.aliases.resolve("KEN") == "KEN"
    assert not store.received(PAYLOAD_GEOJSON)


def test_store_load_files_survives_bad_files(tmp_path, medals_csv, geojson):
    (tmp_path / "medals_total.csv").write_bytes(
        b"country_code,country,country_long,Gold Medal,Silver Medal,Bronze Medal,Total\n"
        b"CIV,C\xf4te d'Ivoire,,1,0,0,1\n")
    (tmp_path / "medals.csv").write_text(medals_csv, encoding="utf-8")
    (tmp_path / "countries.geojson").write_text(json.dumps(geojson), encoding="utf-8")
    (tmp_path / "aliases.csv").write_text("medal_code,geo_code\nGERMANY,DEU\n", encoding="utf-8")

    store = SnapshotStore(Settings(data_dir=str(tmp_path), aliases_file="aliases.csv"))
    assert store.load_files() is None
    assert not store.received(PAYLOAD_MEDALS_TOTAL)
    assert store.received(PAYLOAD_MEDALS)
    assert store.received(PAYLOAD_GEOJSON)
    assert store.aliases.resolve("GER") == "DEU"
