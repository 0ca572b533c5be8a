"""
Brand monitoring runs: ask the AI platforms industry questions and measure
how often, how early and how favorably the brand and its competitors show up.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from ai_clients import PLATFORM_LABELS, query_all_platforms
from config import Settings, get_settings
from mention_analyzer import (
    DEFAULT_CONTEXT_WINDOW, ScoringMode, analyze, analyze_many, split_sentences,
)

logger = logging.getLogger(__name__)

SENTIMENT_VALUES = {'positive': 1, 'neutral': 0, 'negative': -1}


def generate_queries_for_brand(brand: str, industry: Optional[str] = None) -> List[str]:
    """Industry questions a buyer might put to an AI assistant."""
    return [
        f"What are the best {industry or 'companies'} for {industry + ' services' if industry else 'this industry'}?",
        f"Can you recommend top {industry or 'solutions'} providers?",
        f"What {industry or 'tools'} should I consider?",
        f"Who are the leading {industry or 'companies'} in the market?",
        f"What are alternatives to {brand}?",
    ]


def _average_sentiment(results: List[Dict[str, Any]]) -> float:
    if not results:
        return 0
    return sum(SENTIMENT_VALUES[r['sentiment']] for r in results) / len(results)


def summarize_platforms(individual_results: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Per-platform mention counts, average prominence and sentiment (-1..1)."""
    by_platform: Dict[str, List[Dict[str, Any]]] = {}
    for r in individual_results:
        by_platform.setdefault(r['platform'], []).append(r)

    summary = []
    for platform, results in by_platform.items():
        mentioned = [r for r in results if r['mentioned']]
        avg_prominence = sum(r['prominence'] for r in mentioned) / len(mentioned) if mentioned else 0
        summary.append({
            'platform': platform,
            'label': PLATFORM_LABELS.get(platform, platform),
            'queries': len(results),
            'mentions': len(mentioned),
            'avg_prominence': round(avg_prominence),
            'avg_sentiment_score': round(_average_sentiment(mentioned), 2),
        })
    return summary


def competitor_stats(
    competitors: List[Dict[str, Any]],
    individual_results: List[Dict[str, Any]],
    queries_tested: int,
    context_window: int = DEFAULT_CONTEXT_WINDOW,
) -> List[Dict[str, Any]]:
    """
    Re-analyze stored response texts for each competitor.

    Visibility is the rounded average prominence over the responses that
    mention the competitor; avg_sentiment is normalized to 0..1 with 0.5
    meaning neutral or no data.
    """
    stats = []
    for competitor in competitors:
        total_mentions = 0
        total_prominence = 0
        total_sentiment = 0

        for result in individual_results:
            analysis = analyze(result.get('response_text') or '', competitor['name'], context_window=context_window)
            if analysis.mentioned:
                total_mentions += 1
                total_prominence += analysis.prominence_score
                total_sentiment += SENTIMENT_VALUES[analysis.sentiment]

        if total_mentions:
            avg_prominence = round(total_prominence / total_mentions)
            avg_sentiment = (total_sentiment / total_mentions + 1) / 2
        else:
            avg_prominence = 0
            avg_sentiment = 0.5

        stats.append({
            'id': competitor.get('id'),
            'name': competitor['name'],
            'visibility_score': avg_prominence,
            'total_mentions': total_mentions,
            'queries_tested': queries_tested,
            'avg_sentiment': round(avg_sentiment, 2),
            'trend': 'up' if total_mentions > 0 else 'stable',
        })
    return stats


def share_of_voice(
    brand: str,
    competitors: List[str],
    individual_results: List[Dict[str, Any]],
    context_window: int = DEFAULT_CONTEXT_WINDOW,
) -> Dict[str, float]:
    """Percentage of all mentions (brand + competitors) that each name holds."""
    names = [brand] + [c for c in competitors if c.lower() != brand.lower()]
    counts = {name: 0 for name in names}
    for result in individual_results:
        text = result.get('response_text') or ''
        for name in names:
            if analyze(text, name, context_window=context_window).mentioned:
                counts[name] += 1

    total = sum(counts.values())
    if total == 0:
        return {name: 0.0 for name in names}
    return {name: round(count / total * 100, 2) for name, count in counts.items()}


def _query_winner(you, competitors) -> Optional[str]:
    winner = 'You' if you.mentioned else None
    best = you.prominence_score
    for name, analysis in competitors.items():
        if analysis.mentioned and analysis.prominence_score > best:
            winner = name
            best = analysis.prominence_score
    return winner


def query_analysis(
    run: Dict[str, Any],
    competitor_names: List[str],
    context_window: int = DEFAULT_CONTEXT_WINDOW,
) -> Dict[str, Any]:
    """
    Head-to-head comparison for every (query, platform) answer in a run.

    The winner of an answer is 'You' when the brand is mentioned, unless a
    mentioned competitor has strictly higher prominence. Answers with no
    mentioned name have no winner.
    """
    result = run.get('result') or run
    brand = result.get('brand_name', '')
    names = [c for c in competitor_names if c.lower() != brand.lower()]

    query_results = []
    for r in result.get('individual_results', []):
        analyses = analyze_many(r.get('response_text') or '', [brand] + names, context_window=context_window)
        you = analyses[brand]
        competitors = {name: analyses[name] for name in names}
        query_results.append({
            'query': r.get('query'),
            'platform': r.get('platform'),
            'you': you.to_dict(),
            'competitors': {name: a.to_dict() for name, a in competitors.items()},
            'winner': _query_winner(you, competitors),
        })

    winning = [q for q in query_results if q['winner'] == 'You']
    losing = [q for q in query_results if q['winner'] and q['winner'] != 'You']
    losing_by_competitor: Dict[str, List[Dict[str, Any]]] = {}
    for q in losing:
        losing_by_competitor.setdefault(q['winner'], []).append(q)

    return {
        'query_results': query_results,
        'winning_queries': winning,
        'losing_queries': losing,
        'losing_by_competitor': losing_by_competitor,
        'total_queries': len(query_results),
        'win_rate': round(len(winning) / len(query_results) * 100) if query_results else 0,
    }


def monitor_brand(
    brand: str,
    industry: Optional[str] = None,
    competitors: Optional[List[Dict[str, Any]]] = None,
    platforms: Optional[List[str]] = None,
    num_queries: int = 5,
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    """Run every generated query on every platform and score the answers."""
    settings = settings or get_settings()
    competitors = competitors or []
    queries = generate_queries_for_brand(brand, industry)[:num_queries]

    logger.info("Monitoring brand %r with %d queries...", brand, len(queries))

    individual_results = []
    for query in queries:
        responses = query_all_platforms(query, platforms=platforms, settings=settings)
        for response in responses:
            analysis = analyze(response.text, brand, context_window=settings.context_window)
            individual_results.append({
                'platform': response.platform,
                'model': response.model,
                'query': query,
                'response_text': response.text,
                'citations': response.citations,
                'cost': response.cost,
                'tokens': response.tokens,
                **analysis.to_dict(),
            })

    total_responses = len(individual_results)
    mentioned = [r for r in individual_results if r['mentioned']]
    total_mentions = len(mentioned)
    avg_prominence = sum(r['prominence'] for r in mentioned) / total_mentions if mentioned else 0
    mention_rate = total_mentions / total_responses * 100 if total_responses else 0
    visibility_score = round(mention_rate * 0.5 + avg_prominence * 0.5)
    total_cost = sum(r['cost'] for r in individual_results)

    logger.info(
        "Monitoring complete: mentions=%d visibility=%d cost=$%.4f",
        total_mentions, visibility_score, total_cost,
    )

    return {
        'brand_name': brand,
        'industry': industry,
        'total_mentions': total_mentions,
        'visibility_score': visibility_score,
        'mention_rate': round(mention_rate, 2),
        'queries_tested': len(queries),
        'responses_analyzed': total_responses,
        'platform_results': summarize_platforms(individual_results),
        'competitor_stats': competitor_stats(
            competitors, individual_results, len(queries), context_window=settings.context_window,
        ),
        'share_of_voice': share_of_voice(
            brand, [c['name'] for c in competitors], individual_results,
            context_window=settings.context_window,
        ),
        'individual_results': individual_results,
        'total_cost': total_cost,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }


def _citation_sentence(response_text: str, brand_name: str) -> str:
    sentences = [s.strip() for s in split_sentences(response_text)]
    for sentence in sentences:
        if analyze(sentence, brand_name).mentioned:
            return sentence
    return sentences[0] if sentences else ''


def aggregate_citations(run: Dict[str, Any]) -> Dict[str, Any]:
    """Per-URL citation stats for one stored monitoring run."""
    result = run.get('result') or run
    brand_name = result.get('brand_name', '')
    timestamp = result.get('timestamp') or run.get('date')

    citations = []
    for r in result.get('individual_results', []):
        for url in r.get('citations') or []:
            citations.append({
                'url': url,
                'platform': r['platform'],
                'query': r['query'],
                'sentiment': r.get('sentiment') or 'neutral',
                'mentioned': r.get('mentioned', False),
                'timestamp': timestamp,
                'context': r.get('context', ''),
                'citation_text': _citation_sentence(r.get('response_text') or '', brand_name),
            })

    url_stats: Dict[str, Dict[str, Any]] = {}
    for citation in citations:
        domain = urlparse(citation['url']).hostname
        if not domain:
            logger.warning("Invalid citation URL: %s", citation['url'])
            continue

        stats = url_stats.setdefault(citation['url'], {
            'url': citation['url'],
            'domain': domain,
            'mentions': 0,
            'platforms': [],
            'queries': [],
            'sentiment': {'positive': 0, 'neutral': 0, 'negative': 0},
        })
        stats['mentions'] += 1
        if citation['platform'] not in stats['platforms']:
            stats['platforms'].append(citation['platform'])
        if citation['query'] not in stats['queries']:
            stats['queries'].append(citation['query'])
        stats['sentiment'][citation['sentiment']] += 1

    ranked = sorted(url_stats.values(), key=lambda s: s['mentions'], reverse=True)
    return {
        'citations': citations,
        'url_stats': ranked,
        'total_citations': len(citations),
        'unique_urls': len(ranked),
    }


def demo_check(response_text: str, brand: str, competitor: str) -> Dict[str, Any]:
    """Compare a brand and one competitor in a list-style answer."""
    return {
        'yourBrand': analyze(response_text, brand, ScoringMode.RANKED_LIST).to_dict(),
        'competitor': analyze(response_text, competitor, ScoringMode.RANKED_LIST).to_dict(),
    }
