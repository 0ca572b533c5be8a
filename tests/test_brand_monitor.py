"""Tests for monitoring runs and the aggregates built on top of them."""

from unittest.mock import patch

import pytest

import brand_monitor
from brand_monitor import (
    aggregate_citations,
    competitor_stats,
    demo_check,
    generate_queries_for_brand,
    monitor_brand,
    query_analysis,
    share_of_voice,
)


class TestQueries:

    def test_with_industry(self):
        queries = generate_queries_for_brand('Acme', 'CRM')
        assert len(queries) == 5
        assert queries[0] == "What are the best CRM for CRM services?"
        assert queries[-1] == "What are alternatives to Acme?"

    def test_without_industry(self):
        queries = generate_queries_for_brand('Acme')
        assert queries[0] == "What are the best companies for this industry?"
        assert queries[1] == "Can you recommend top solutions providers?"


class TestMonitorBrand:

    @pytest.fixture
    def result(self, fake_responses, settings):
        with patch.object(brand_monitor, 'query_all_platforms', return_value=fake_responses) as fake:
            result = monitor_brand(
                'Acme',
                industry='CRM',
                competitors=[{'id': 7, 'name': 'Globex'}],
                num_queries=2,
                settings=settings,
            )
        assert fake.call_count == 2
        return result

    def test_totals(self, result):
        assert result['brand_name'] == 'Acme'
        assert result['queries_tested'] == 2
        assert result['responses_analyzed'] == 4
        assert result['total_mentions'] == 2
        assert result['mention_rate'] == 50.0
        # round(50 * 0.5 + 50 * 0.5)
        assert result['visibility_score'] == 50
        assert result['total_cost'] == pytest.approx(0.06)

    def test_individual_results_carry_analysis(self, result):
        first = result['individual_results'][0]
        assert first['platform'] == 'chatgpt'
        assert first['mentioned'] is True
        assert first['position'] == 1
        assert first['prominence'] == 50
        assert first['citations'] == ['https://acme.com/pricing']

    def test_platform_results(self, result):
        by_platform = {p['platform']: p for p in result['platform_results']}
        assert by_platform['chatgpt']['mentions'] == 2
        assert by_platform['chatgpt']['avg_prominence'] == 50
        assert by_platform['claude']['mentions'] == 0
        assert by_platform['claude']['avg_prominence'] == 0

    def test_competitors(self, result):
        [globex] = result['competitor_stats']
        assert globex['id'] == 7
        assert globex['total_mentions'] == 2
        assert globex['visibility_score'] == 40
        assert globex['avg_sentiment'] == 0.5
        assert globex['trend'] == 'up'
        assert result['share_of_voice'] == {'Acme': 50.0, 'Globex': 50.0}

    def test_no_responses(self, settings):
        with patch.object(brand_monitor, 'query_all_platforms', return_value=[]):
            result = monitor_brand('Acme', settings=settings)
        assert result['total_mentions'] == 0
        assert result['visibility_score'] == 0
        assert result['platform_results'] == []


class TestCompetitorStats:

    def test_unmentioned_competitor(self):
        [stats] = competitor_stats([{'name': 'Initech'}], [{'response_text': 'Acme only.'}], 1)
        assert stats['visibility_score'] == 0
        assert stats['avg_sentiment'] == 0.5
        assert stats['trend'] == 'stable'
        assert stats['id'] is None

    def test_negative_mentions_lower_sentiment(self):
        results = [{'response_text': 'Try Initech. However, it is expensive and limited.'}]
        [stats] = competitor_stats([{'name': 'Initech'}], results, 1)
        assert stats['visibility_score'] == 25
        assert stats['avg_sentiment'] == 0.0

    def test_context_window_is_honored(self):
        results = [{'response_text': 'Initech makes widgets ' + 'z' * 50 + ' best'}]
        [wide] = competitor_stats([{'name': 'Initech'}], results, 1)
        [narrow] = competitor_stats([{'name': 'Initech'}], results, 1, context_window=10)
        assert wide['visibility_score'] == 50
        assert narrow['visibility_score'] == 40


class TestShareOfVoice:

    def test_no_mentions(self):
        assert share_of_voice('Acme', ['Globex'], [{'response_text': 'nothing'}]) == {'Acme': 0.0, 'Globex': 0.0}

    def test_split(self):
        results = [
            {'response_text': 'Acme and Globex.'},
            {'response_text': 'Globex again.'},
            {'response_text': 'Globex once more.'},
        ]
        assert share_of_voice('Acme', ['Globex'], results) == {'Acme': 25.0, 'Globex': 75.0}

    def test_brand_listed_as_competitor_counts_once(self):
        results = [{'response_text': 'Acme and Globex.'}]
        assert share_of_voice('Acme', ['acme', 'Globex'], results) == {'Acme': 50.0, 'Globex': 50.0}


class TestQueryAnalysis:

    def test_winners(self, sample_run):
        data = query_analysis({'result': sample_run}, ['Globex'])
        assert data['total_queries'] == 2
        # the second answer only names Acme inside a cited URL, in its second sentence
        assert [q['winner'] for q in data['query_results']] == ['You', 'Globex']
        assert data['win_rate'] == 50
        assert len(data['losing_queries']) == 1

    def test_more_prominent_competitor_wins(self):
        run = {
            'brand_name': 'Acme',
            'individual_results': [
                {'query': 'q', 'platform': 'claude',
                 'response_text': 'Globex is the best. Acme is fine.'},
            ],
        }
        data = query_analysis(run, ['Globex'])
        [result] = data['query_results']
        assert result['you']['prominence'] == 40
        assert result['competitors']['Globex']['prominence'] == 50
        assert result['winner'] == 'Globex'
        assert list(data['losing_by_competitor']) == ['Globex']
        assert data['win_rate'] == 0

    def test_empty_run(self):
        data = query_analysis({'result': {'brand_name': 'Acme', 'individual_results': []}}, ['Globex'])
        assert data['total_queries'] == 0
        assert data['win_rate'] == 0


class TestCitations:

    def test_aggregates_by_url(self, sample_run):
        data = aggregate_citations({'result': sample_run})
        assert data['total_citations'] == 4
        assert data['unique_urls'] == 2

        top = data['url_stats'][0]
        assert top['url'] == 'https://acme.com/a'
        assert top['domain'] == 'acme.com'
        assert top['mentions'] == 2
        assert top['platforms'] == ['chatgpt', 'claude']
        assert top['sentiment'] == {'positive': 1, 'neutral': 1, 'negative': 0}

    def test_citation_text_prefers_brand_sentence(self, sample_run):
        data = aggregate_citations(sample_run)
        assert data['citations'][0]['citation_text'] == 'Acme is great'

    def test_empty_run(self):
        assert aggregate_citations({'result': {'individual_results': []}})['total_citations'] == 0


class TestDemoCheck:

    def test_ranked_comparison(self):
        data = demo_check("1. Acme - leading pick\n2. Globex", 'Acme', 'Globex')
        assert data['yourBrand']['position'] == 1
        assert data['yourBrand']['prominence'] == 100
        assert data['competitor']['position'] == 2
        assert data['competitor']['prominence'] == 85
