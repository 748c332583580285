"""
CORS-enabled HTTP relay in front of the DRS JSON API.

    GET/POST /?date=YYYY-MM-DD[&debug=1]
    GET/POST /?start=YYYY-MM-DD&end=YYYY-MM-DD[&debug=1]

Responses are always JSON. Run with ``python -m drs_sync relay`` or a WSGI
server pointed at ``drs_sync.relay.app:create_app()``.
"""
import logging
from typing import Callable, Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from drs_sync.config.settings import Settings
from drs_sync.exceptions import ExtractionEmpty
from drs_sync.relay.upstream import DRSUpstream
from drs_sync.utils.helpers import today_utc
from drs_sync.utils.validators import validate_date_range

logger = logging.getLogger(__name__)

UpstreamFactory = Callable[[Settings], DRSUpstream]


def default_upstream(settings: Settings) -> DRSUpstream:
    return DRSUpstream(
        base_url=settings.drs_base,
        dev_key=settings.drs_dev_key,
        api_token=settings.drs_api_token,
        timeout=settings.timeout,
    )


def create_app(
    settings: Optional[Settings] = None,
    upstream_factory: UpstreamFactory = default_upstream,
) -> Flask:
    """
    Build the relay application.

    Args:
        settings: Configuration (read from the environment when omitted)
        upstream_factory: Builds the per-request upstream client

    Returns:
        Flask app
    """
    settings = settings or Settings.from_env()
    app = Flask(__name__)

    @app.after_request
    def add_cors(response):
        response.headers['Access-Control-Allow-Origin'] = '*'
        response.headers['Access-Control-Allow-Methods'] = 'GET,POST,OPTIONS'
        response.headers['Access-Control-Allow-Headers'] = '*,authorization,content-type'
        return response

    @app.errorhandler(HTTPException)
    def http_error(e):
        return jsonify({'error': e.description or e.name}), e.code

    @app.errorhandler(ExtractionEmpty)
    def empty_result(e):
        return jsonify({'orders': [], 'diagnostics': e.diagnostics}), 502

    @app.errorhandler(Exception)
    def unexpected_error(e):
        logger.exception('Relay request failed')
        return jsonify({'error': str(e) or e.__class__.__name__}), 500

    @app.route('/health', methods=['GET'])
    def health():
        missing = settings.missing('drs_base', 'drs_dev_key', 'drs_api_token')
        return jsonify({'status': 'ok' if not missing else 'unconfigured', 'missing': missing})

    @app.route('/', methods=['GET', 'POST', 'OPTIONS'])
    def orders():
        if request.method == 'OPTIONS':
            return jsonify({}), 200

        missing = settings.missing('drs_base', 'drs_dev_key', 'drs_api_token')
        if missing:
            return jsonify({'error': f'Relay missing {"/".join(missing)}'}), 500

        debug = request.values.get('debug') == '1'
        date = request.values.get('date') or today_utc()
        start = request.values.get('start') or date
        end = request.values.get('end') or date
        if not validate_date_range(start, end):
            return jsonify({'error': f'Invalid date range {start}..{end} (expected YYYY-MM-DD)'}), 400

        with upstream_factory(settings) as upstream:
            result = upstream.fetch_orders(start, end)

        if result.orders:
            return jsonify({'orders': result.orders, 'source': result.source}), 200

        logger.warning(f'No order array after {result.attempts} attempts for {start}..{end}')
        if debug:
            raise ExtractionEmpty(f'No order array for {start}..{end}', diagnostics=result.diagnostics)
        return jsonify({'orders': [], 'source': 'no-array'}), 200

    return app
