from flask import Blueprint, current_app, jsonify, request

from subathon import get_runtime

timer = Blueprint('timer', __name__)


@timer.route('/state', methods=['GET'])
def get_state():
    return jsonify(get_runtime().engine.snapshot())


@timer.route('/events', methods=['POST'])
def post_event():
    """Webhook entry for provider events, same payload as the Streamlabs socket."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'JSON object body required'}), 400
    adjustment = get_runtime().pipeline.ingest(data)
    current_app.logger.info(f"[webhook-event] type={data.get('type')!r} applied={adjustment is not None}")
    return jsonify({
        'applied': adjustment is not None,
        'adjustment': adjustment.to_dict() if adjustment else None,
        'state': get_runtime().engine.snapshot(),
    })


@timer.route('/control', methods=['POST'])
def post_control():
    data = request.get_json(silent=True) or {}
    get_runtime().engine.control(data)
    return jsonify(get_runtime().engine.snapshot())
