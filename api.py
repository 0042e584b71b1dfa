# api.py
# ==============================================================================
# HTTP API — the three server-side functions (analysis, agent network, voice
# briefing) as Flask routes with permissive CORS
# ==============================================================================

import argparse
import logging

from flask import Blueprint, Flask, Response, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

import config
from data_layer import DataLayer
from errors import SupplyChainError
from insight_generator import generate_insights
from logging_config import setup_logging
from orchestrator import CoordinationOrchestrator
from voice_briefing import TTSClient

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Headers': (
        'authorization, x-client-info, apikey, content-type, '
        'x-supabase-client-platform, x-supabase-client-platform-version, '
        'x-supabase-client-runtime, x-supabase-client-runtime-version'
    ),
}

functions_bp = Blueprint('functions', __name__, url_prefix='/functions/v1')


def _services():
    return current_app.extensions['supply_chain']


def _payload():
    return request.get_json(silent=True) or {}


def _require_user(payload):
    user_id = payload.get('userId')
    if not user_id:
        raise ValueError("userId is required")
    return user_id


@functions_bp.errorhandler(Exception)
def handle_error(e):
    if isinstance(e, HTTPException):
        return e
    status = getattr(e, 'http_status', 500) if isinstance(e, SupplyChainError) else 500
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.path, e)
    return jsonify({'error': str(e) or "Unknown error"}), status


@functions_bp.route('/analyze-supply-chain', methods=['POST', 'OPTIONS'])
def analyze_supply_chain():
    if request.method == 'OPTIONS':
        return '', 200
    services = _services()
    user_id = _require_user(_payload())
    count = generate_insights(services['data_layer'], user_id, llm=services['llm'])
    return jsonify({'success': True, 'count': count})


@functions_bp.route('/agent-network', methods=['POST', 'OPTIONS'])
def agent_network():
    if request.method == 'OPTIONS':
        return '', 200
    payload = _payload()
    user_id = _require_user(payload)
    result = _services()['orchestrator'].run(
        user_id,
        trigger_type=payload.get('triggerType'),
        disruption=payload.get('disruption'),
    )
    return jsonify(result)


@functions_bp.route('/voice-briefing', methods=['POST', 'OPTIONS'])
def voice_briefing():
    if request.method == 'OPTIONS':
        return '', 200
    text = _payload().get('text')
    audio = _services()['tts'].synthesize(text)
    return Response(audio, mimetype='audio/mpeg')


def create_app(data_layer=None, llm=None, tts=None) -> Flask:
    app = Flask(__name__)

    data_layer = data_layer or DataLayer()
    app.extensions['supply_chain'] = {
        'data_layer': data_layer,
        'llm': llm,
        'tts': tts or TTSClient(),
        'orchestrator': CoordinationOrchestrator(data_layer, llm=llm),
    }

    app.register_blueprint(functions_bp)

    @app.after_request
    def add_cors_headers(response):
        for key, value in CORS_HEADERS.items():
            response.headers[key] = value
        return response

    return app


def main():
    parser = argparse.ArgumentParser(description="Supply chain functions API")
    parser.add_argument('--host', default=None, help="Bind address (default: API_HOST)")
    parser.add_argument('--port', type=int, default=None, help="Port (default: API_PORT)")
    parser.add_argument('--debug', action='store_true')
    args = parser.parse_args()

    setup_logging()
    app = create_app()
    app.run(host=args.host or config.api_host(),
            port=args.port or config.api_port(),
            debug=args.debug)


if __name__ == '__main__':
    main()
