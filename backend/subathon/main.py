from flask import Blueprint, jsonify

from subathon import get_runtime

main = Blueprint('main', __name__)


@main.route('/')
def index():
    engine = get_runtime().engine
    return jsonify({
        'message': 'Subathon timer server',
        'stateVersion': engine.state.state_version,
    })
