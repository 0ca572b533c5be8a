from flask import Flask, request, jsonify, send_file
import logging
import os
import sys
from datetime import datetime

from werkzeug.exceptions import HTTPException

from config import get_settings
from ai_clients import (
    AIClientError, PLATFORM_LABELS, query_all_platforms, query_platform,
)
from brand_monitor import (
    aggregate_citations, competitor_stats, demo_check, monitor_brand, query_analysis,
)
from mention_analyzer import (
    InvalidArgument, analyze, analyze_many, parse_scoring_mode, validate_arguments,
)
from reports import generate_monitoring_pdf, generate_monitoring_report_markdown

# Import database functions
from database import (
    init_db, create_brand, get_brand, list_brands, delete_brand, set_primary_brand,
    add_competitor, list_competitors, delete_competitor, save_monitoring_run,
    get_latest_monitoring_run, get_historical_runs,
)

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)

app = Flask(__name__)


# Global error handlers to ensure JSON responses
@app.errorhandler(404)
def not_found(e):
    return jsonify({'error': 'Endpoint not found'}), 404


@app.errorhandler(500)
def internal_error(e):
    return jsonify({'error': 'Internal server error', 'message': str(e)}), 500


@app.errorhandler(Exception)
def handle_exception(e):
    if isinstance(e, HTTPException):
        return jsonify({'error': e.name, 'message': e.description}), e.code
    logger.exception("Unhandled exception: %s", e)
    return jsonify({'error': 'An unexpected error occurred', 'message': str(e)}), 500


# Initialize database on startup (non-critical - analysis works without it)
logger.info("=== Initializing Application ===")
db_engine = init_db()
if db_engine is None:
    logger.warning("Database initialization failed - app will work without historical data")


def _json_body():
    return request.get_json(silent=True) or {}


def _invalid_platforms(platforms):
    """Error message for a bad platforms field, None when it is usable"""
    if platforms is None:
        return None
    if not isinstance(platforms, list):
        return 'platforms must be a list'
    unknown = [p for p in platforms if not isinstance(p, str) or p not in PLATFORM_LABELS]
    if unknown:
        return f"Unknown platform in {platforms}"
    return None


def _save_run(brand_id, result):
    """Save to database (non-blocking - don't fail the request if the save fails)"""
    try:
        save_monitoring_run(brand_id, result)
        logger.info("Saved monitoring run for %s", result['brand_name'])
    except Exception as db_error:
        logger.exception("Failed to save to database: %s", db_error)


# Flask Routes
@app.route('/health')
def health():
    """Health check endpoint for debugging"""
    return jsonify({
        'status': 'ok',
        'python_version': sys.version,
        'database_url_exists': bool(os.getenv('DATABASE_URL')),
        'database_ready': db_engine is not None,
        'platforms': settings.active_platforms(),
    })


@app.route('/api/analyze', methods=['POST'])
def analyze_text():
    """Analyze one text for one brand or competitor name"""
    data = _json_body()
    text = data.get('text')
    name = data.get('name')
    scale = data.get('prominence_scale', 'percent')

    try:
        validate_arguments(text, name)
        mode = parse_scoring_mode(data.get('scoring_mode'))
        analysis = analyze(text, name, scoring_mode=mode, context_window=settings.context_window)
        return jsonify({'scoring_mode': mode.value, **analysis.to_dict(scale=scale)})
    except InvalidArgument as e:
        return jsonify({'error': str(e)}), 400


@app.route('/api/demo-check', methods=['POST'])
def demo_check_route():
    data = _json_body()
    brand = data.get('brandName')
    competitor = data.get('competitor')
    industry = data.get('industry')
    text = data.get('text')

    if not all([brand, competitor, industry]) or not all(isinstance(v, str) for v in (brand, competitor)):
        return jsonify({'error': 'Missing required fields'}), 400

    query = f"What are the best {industry} solutions for businesses?"
    platform = 'chatgpt'

    if text is None:
        try:
            response = query_platform(platform, query, settings=settings)
        except AIClientError as e:
            logger.error("Demo check error: %s", e)
            return jsonify({'error': 'Failed to check rankings. Please try again.'}), 502
        text = response.text

    if not isinstance(text, str):
        return jsonify({'error': 'text must be a string'}), 400

    return jsonify({
        'query': query,
        'response': text,
        'platform': PLATFORM_LABELS[platform],
        **demo_check(text, brand, competitor),
    })


@app.route('/api/monitoring/test', methods=['POST'])
def monitoring_test():
    """Run one query on the platforms and analyze every answer"""
    data = _json_body()
    query = data.get('query')
    brand = data.get('brandName')
    platforms = data.get('platforms')
    competitors = data.get('competitors') or []

    if not isinstance(query, str) or not isinstance(brand, str) or not query or not brand.strip():
        return jsonify({'error': 'Missing required fields: query and brandName'}), 400
    platforms_error = _invalid_platforms(platforms)
    if platforms_error:
        return jsonify({'error': platforms_error}), 400
    if not isinstance(competitors, list) or not all(isinstance(c, str) and c.strip() for c in competitors):
        return jsonify({'error': 'competitors must be non-empty strings'}), 400

    logger.info("Testing monitoring for brand %r: %s", brand, query)
    responses = query_all_platforms(query, platforms=platforms, settings=settings)

    results = []
    for response in responses:
        analyses = analyze_many(response.text, [brand] + competitors, context_window=settings.context_window)
        results.append({
            'platform': response.platform,
            'model': response.model,
            'responseText': response.text,
            'cost': response.cost,
            'tokens': response.tokens,
            'responseTime': response.response_time_ms,
            'citations': response.citations,
            'brandMention': analyses[brand].to_dict(),
            'competitorMentions': {c: analyses[c].to_dict() for c in competitors},
        })

    total_mentions = sum(1 for r in results if r['brandMention']['mentioned'])
    prominences = [r['brandMention']['prominence'] for r in results if r['brandMention']['mentioned']]

    return jsonify({
        'success': True,
        'query': query,
        'brandName': brand,
        'summary': {
            'totalPlatforms': len(responses),
            'totalMentions': total_mentions,
            'mentionRate': total_mentions / len(responses) * 100 if responses else 0,
            'avgProminenceScore': sum(prominences) / len(prominences) if prominences else 0,
            'totalCost': sum(r['cost'] for r in results),
            'totalTokens': sum(r['tokens'] for r in results),
        },
        'results': results,
    })


@app.route('/api/monitor', methods=['POST'])
def run_monitor():
    data = _json_body()
    brand_id = data.get('brandId')
    if not brand_id:
        return jsonify({'error': 'Brand ID is required'}), 400

    brand = get_brand(brand_id)
    if not brand:
        return jsonify({'error': 'Brand not found'}), 404

    platforms = data.get('platforms')
    platforms_error = _invalid_platforms(platforms)
    if platforms_error:
        return jsonify({'error': platforms_error}), 400

    num_queries = data.get('numQueries', 5)
    if isinstance(num_queries, bool) or not isinstance(num_queries, int) or num_queries < 1:
        return jsonify({'error': 'numQueries must be a positive integer'}), 400

    logger.info("Starting monitoring for brand: %s", brand['name'])
    result = monitor_brand(
        brand['name'],
        industry=brand.get('industry'),
        competitors=list_competitors(brand_id),
        platforms=platforms,
        num_queries=num_queries,
        settings=settings,
    )
    _save_run(brand_id, result)

    return jsonify({'success': True, 'result': result})


@app.route('/api/brands', methods=['GET'])
def get_brands_api():
    """Get all brands"""
    return jsonify({'success': True, 'brands': list_brands()})


@app.route('/api/brands', methods=['POST'])
def create_brand_api():
    data = _json_body()
    name = (data.get('name') or '').strip()
    if not name:
        return jsonify({'error': 'Brand name is required'}), 400

    brand = create_brand(
        name=name,
        industry=data.get('industry'),
        domain=data.get('domain'),
        description=data.get('description'),
    )
    return jsonify({'success': True, 'brand': brand}), 201


@app.route('/api/brands/<int:brand_id>', methods=['DELETE'])
def delete_brand_api(brand_id):
    if not delete_brand(brand_id):
        return jsonify({'error': 'Brand not found'}), 404
    return jsonify({'success': True})


@app.route('/api/brands/set-primary', methods=['POST'])
def set_primary_brand_api():
    brand_id = _json_body().get('brandId')
    if not brand_id:
        return jsonify({'error': 'Brand ID is required'}), 400
    brand = set_primary_brand(brand_id)
    if brand is None:
        return jsonify({'error': 'Brand not found'}), 404
    return jsonify({'success': True, 'brand': brand})


@app.route('/api/competitors', methods=['GET'])
def get_competitors_api():
    brand_id = request.args.get('brandId', type=int)
    if brand_id is None:
        return jsonify({'error': 'Brand ID is required'}), 400
    return jsonify({'competitors': list_competitors(brand_id)})


@app.route('/api/competitors', methods=['POST'])
def add_competitor_api():
    data = _json_body()
    brand_id = data.get('brandId')
    name = (data.get('name') or '').strip()
    if not brand_id or not name:
        return jsonify({'error': 'brandId and name are required'}), 400
    if not get_brand(brand_id):
        return jsonify({'error': 'Brand not found'}), 404

    competitor = add_competitor(brand_id, name, domain=data.get('domain'))
    return jsonify({'success': True, 'competitor': competitor}), 201


@app.route('/api/competitors', methods=['DELETE'])
def delete_competitor_api():
    competitor_id = request.args.get('id', type=int)
    if competitor_id is None:
        return jsonify({'error': 'Competitor ID is required'}), 400
    if not delete_competitor(competitor_id):
        return jsonify({'error': 'Competitor not found'}), 404
    return jsonify({'success': True})


@app.route('/api/competitors/stats', methods=['GET'])
def competitor_stats_api():
    brand_id = request.args.get('brandId', type=int)
    if brand_id is None:
        return jsonify({'error': 'Brand ID is required'}), 400

    competitors = list_competitors(brand_id)
    latest = get_latest_monitoring_run(brand_id)
    if not latest or not (latest.get('result') or {}).get('individual_results'):
        return jsonify({'competitors': competitor_stats(competitors, [], 0)})

    run = latest['result']
    return jsonify({
        'competitors': competitor_stats(
            competitors, run['individual_results'], run['queries_tested'],
            context_window=settings.context_window,
        ),
    })


@app.route('/api/competitors/query-analysis', methods=['GET'])
def query_analysis_api():
    """Per-query wins and losses against competitors in the latest run"""
    brand_id = request.args.get('brandId', type=int)
    if brand_id is None:
        return jsonify({'error': 'Brand ID is required'}), 400

    latest = get_latest_monitoring_run(brand_id)
    if not latest or not (latest.get('result') or {}).get('individual_results'):
        return jsonify({'query_results': [], 'losing_queries': [], 'winning_queries': []})

    names = [c['name'] for c in list_competitors(brand_id)]
    return jsonify(query_analysis(latest, names, context_window=settings.context_window))


@app.route('/api/citations', methods=['GET'])
def citations_api():
    brand_id = request.args.get('brandId', type=int)
    if brand_id is None:
        return jsonify({'error': 'Brand ID is required'}), 400

    latest = get_latest_monitoring_run(brand_id)
    if not latest:
        return jsonify({'citations': [], 'url_stats': [], 'total_citations': 0, 'unique_urls': 0})
    return jsonify(aggregate_citations(latest))


@app.route('/api/historical-data/<int:brand_id>', methods=['GET'])
def get_historical_data(brand_id):
    """Get historical monitoring runs for a brand"""
    limit = request.args.get('limit', 10, type=int)
    return jsonify({'success': True, 'data': get_historical_runs(brand_id, limit=limit)})


def _report_source():
    """A run result posted inline, or the latest stored run for brandId"""
    data = _json_body()
    if data.get('result'):
        return data['result']
    brand_id = data.get('brandId')
    if brand_id:
        latest = get_latest_monitoring_run(brand_id)
        if latest:
            return latest['result']
    return None


@app.route('/generate-report', methods=['POST'])
def generate_report():
    result = _report_source()
    if result is None:
        return jsonify({'error': 'No monitoring result to report on'}), 404
    return jsonify({'report': generate_monitoring_report_markdown(result)})


@app.route('/generate-pdf', methods=['POST'])
def generate_pdf():
    result = _report_source()
    if result is None:
        return jsonify({'error': 'No monitoring result to report on'}), 404

    pdf_buffer = generate_monitoring_pdf(result)
    filename = f"AI_Visibility_Report_{result['brand_name'].replace(' ', '_')}_{datetime.now().strftime('%Y%m%d')}.pdf"

    return send_file(
        pdf_buffer,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=filename
    )


if __name__ == '__main__':
    app.run(debug=True, port=8080, host='127.0.0.1')
