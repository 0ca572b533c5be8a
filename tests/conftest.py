"""
Shared fixtures. The environment is pinned before any project module is
imported so the app never talks to a real provider or a real database.
"""
import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix='revintel-tests-')
os.environ['DATABASE_URL'] = f"sqlite:///{os.path.join(_TMP_DIR, 'startup.db')}"
for _key in ('OPENAI_API_KEY', 'ANTHROPIC_API_KEY', 'GOOGLE_API_KEY', 'PERPLEXITY_API_KEY', 'XAI_API_KEY'):
    os.environ[_key] = ''

import pytest

from ai_clients import PlatformResponse
from config import Settings


@pytest.fixture
def settings():
    """Settings with no keys configured."""
    return Settings()


@pytest.fixture
def db(tmp_path, monkeypatch):
    """Fresh SQLite database per test."""
    from database import init_db
    monkeypatch.setenv('DATABASE_URL', f"sqlite:///{tmp_path / 'test.db'}")
    engine = init_db()
    assert engine is not None
    return engine


@pytest.fixture
def fake_responses():
    """One answer that mentions Acme, one that only mentions Globex."""
    return [
        PlatformResponse(
            platform='chatgpt',
            text="Acme is the best choice. Competitors are fine too. See https://acme.com/pricing",
            model='gpt-4o-mini',
            citations=['https://acme.com/pricing'],
            tokens=30,
            cost=0.01,
        ),
        PlatformResponse(
            platform='claude',
            text="Globex leads the market. Nothing else compares.",
            model='claude-3-haiku-20240307',
            tokens=20,
            cost=0.02,
        ),
    ]


@pytest.fixture
def sample_run():
    """A stored monitoring result as monitor_brand() would produce it."""
    return {
        'brand_name': 'Acme',
        'industry': 'CRM',
        'total_mentions': 1,
        'visibility_score': 50,
        'mention_rate': 50.0,
        'queries_tested': 1,
        'responses_analyzed': 2,
        'platform_results': [
            {'platform': 'chatgpt', 'label': 'ChatGPT', 'queries': 1, 'mentions': 1,
             'avg_prominence': 50, 'avg_sentiment_score': 0.0},
            {'platform': 'claude', 'label': 'Claude', 'queries': 1, 'mentions': 0,
             'avg_prominence': 0, 'avg_sentiment_score': 0.0},
        ],
        'competitor_stats': [
            {'id': 1, 'name': 'Globex', 'visibility_score': 40, 'total_mentions': 1,
             'queries_tested': 1, 'avg_sentiment': 0.5, 'trend': 'up'},
        ],
        'share_of_voice': {'Acme': 50.0, 'Globex': 50.0},
        'individual_results': [
            {
                'platform': 'chatgpt',
                'model': 'gpt-4o-mini',
                'query': 'What are the best CRM for CRM services?',
                'response_text': 'Acme is great. See https://acme.com/a and https://g2.com/x',
                'citations': ['https://acme.com/a', 'https://g2.com/x'],
                'cost': 0.01,
                'tokens': 30,
                'mentioned': True,
                'position': 1,
                'prominence': 50,
                'sentiment': 'positive',
                'sentiment_score': 20,
                'context': 'Acme is great.',
            },
            {
                'platform': 'claude',
                'model': 'claude-3-haiku-20240307',
                'query': 'Who are the leading CRM in the market?',
                'response_text': 'Globex leads the market. Read https://acme.com/a',
                'citations': ['https://acme.com/a', 'not a url'],
                'cost': 0.02,
                'tokens': 20,
                'mentioned': False,
                'position': None,
                'prominence': 0,
                'sentiment': 'neutral',
                'sentiment_score': 0,
                'context': '',
            },
        ],
        'total_cost': 0.03,
        'timestamp': '2026-01-01T00:00:00+00:00',
    }
