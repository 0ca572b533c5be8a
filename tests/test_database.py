"""Tests for the persistence layer (SQLite per test)."""

from dataclasses import dataclass

from database import (
    _make_json_serializable,
    add_competitor,
    create_brand,
    delete_brand,
    delete_competitor,
    get_brand,
    get_database_url,
    get_historical_runs,
    get_latest_monitoring_run,
    list_brands,
    list_competitors,
    save_monitoring_run,
    set_primary_brand,
)
from mention_analyzer import ScoringMode


class TestBrands:

    def test_first_brand_is_primary(self, db):
        first = create_brand('Acme', industry='CRM')
        second = create_brand('Acme Labs')
        assert first['is_primary'] is True
        assert second['is_primary'] is False
        assert [b['name'] for b in list_brands()] == ['Acme', 'Acme Labs']

    def test_set_primary(self, db):
        first = create_brand('Acme')
        second = create_brand('Acme Labs')
        set_primary_brand(second['id'])
        primaries = {b['id']: b['is_primary'] for b in list_brands()}
        assert primaries == {first['id']: False, second['id']: True}

    def test_set_primary_missing(self, db):
        assert set_primary_brand(999) is None

    def test_delete_cascades(self, db):
        brand = create_brand('Acme')
        add_competitor(brand['id'], 'Globex')
        assert delete_brand(brand['id']) is True
        assert get_brand(brand['id']) is None
        assert list_competitors(brand['id']) == []
        assert delete_brand(brand['id']) is False


class TestCompetitors:

    def test_add_and_list(self, db):
        brand = create_brand('Acme')
        add_competitor(brand['id'], 'Globex', domain='globex.com')
        add_competitor(brand['id'], 'Initech')
        competitors = list_competitors(brand['id'])
        assert [c['name'] for c in competitors] == ['Globex', 'Initech']
        assert competitors[0]['domain'] == 'globex.com'

    def test_delete(self, db):
        brand = create_brand('Acme')
        globex = add_competitor(brand['id'], 'Globex')
        add_competitor(brand['id'], 'Initech')
        assert delete_competitor(globex['id']) is True
        assert [c['name'] for c in list_competitors(brand['id'])] == ['Initech']
        assert delete_competitor(globex['id']) is False


class TestMonitoringRuns:

    def test_save_and_load_latest(self, db, sample_run):
        brand = create_brand('Acme')
        run_id = save_monitoring_run(brand['id'], sample_run)

        latest = get_latest_monitoring_run(brand['id'])
        assert latest['id'] == run_id
        assert latest['visibility_score'] == 50
        assert latest['result']['individual_results'][0]['platform'] == 'chatgpt'

    def test_history_newest_first(self, db, sample_run):
        brand = create_brand('Acme')
        first_id = save_monitoring_run(brand['id'], sample_run)
        second_id = save_monitoring_run(brand['id'], dict(sample_run, visibility_score=70))

        history = get_historical_runs(brand['id'])
        assert [h['id'] for h in history] == [second_id, first_id]
        assert 'result' not in history[0]
        assert len(get_historical_runs(brand['id'], limit=1)) == 1

    def test_no_runs(self, db):
        brand = create_brand('Acme')
        assert get_latest_monitoring_run(brand['id']) is None


class TestHelpers:

    def test_postgres_url_rewritten(self, monkeypatch):
        monkeypatch.setenv('DATABASE_URL', 'postgres://user@host/db')
        assert get_database_url() == 'postgresql://user@host/db'

    def test_database_url_default(self, monkeypatch):
        monkeypatch.delenv('DATABASE_URL')
        assert get_database_url() == 'sqlite:///revintel.db'

    def test_json_serializable(self):
        @dataclass
        class Point:
            x: int
            y: int

        data = _make_json_serializable({'p': Point(1, 2), 'mode': ScoringMode.RANKED_LIST, 't': (1, 2)})
        assert data == {'p': {'x': 1, 'y': 2}, 'mode': 'rankedList', 't': [1, 2]}
