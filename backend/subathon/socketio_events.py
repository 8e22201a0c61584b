import logging
from typing import Any, Dict

from flask_socketio import emit

from subathon import get_runtime, socketio
from subathon.models import Adjustment

logger = logging.getLogger(__name__)

NAMESPACE = '/'
UPDATE_EVENT = 'timer-update'


def broadcast_snapshot(snapshot: Dict[str, Any]) -> None:
    """Engine listener: push the full state to every connected observer."""
    socketio.emit(UPDATE_EVENT, snapshot, namespace=NAMESPACE)


def handle_connect(*_args):
    logger.info("[observer-connect]")
    emit(UPDATE_EVENT, get_runtime().engine.snapshot())


def handle_disconnect(*_args):
    logger.info("[observer-disconnect]")


def handle_request_state(*_args):
    emit(UPDATE_EVENT, get_runtime().engine.snapshot())


def handle_timer_control(data=None):
    data = data if isinstance(data, dict) else {}
    logger.debug(f"[timer-control] action={str(data.get('action'))[:32]!r}")
    get_runtime().engine.control(data)


def handle_settings_update(data=None):
    data = data if isinstance(data, dict) else {}
    get_runtime().engine.update_setting(data.get('key'), data.get('value'))


def handle_manual_adjust(data=None):
    adjustment = Adjustment.from_payload(data)
    get_runtime().engine.apply_adjustment(adjustment)


def register_socketio_handlers() -> None:
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('request-state', handle_request_state, namespace=NAMESPACE)
    socketio.on_event('timer-control', handle_timer_control, namespace=NAMESPACE)
    socketio.on_event('settings-update', handle_settings_update, namespace=NAMESPACE)
    socketio.on_event('manual-adjust', handle_manual_adjust, namespace=NAMESPACE)
