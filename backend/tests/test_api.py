import json

from conftest import bulk_gift_event, sub_event

from subathon import create_app, get_runtime


def test_index(client):
    res = client.get('/')
    assert res.status_code == 200
    assert res.get_json()['stateVersion'] == 0


def test_state(client):
    res = client.get('/api/state')
    assert res.status_code == 200
    data = res.get_json()
    assert data['remainingSeconds'] == 0
    assert data['eventSeconds']['primeT1'] == 300


def test_event_webhook_applies_once(client):
    event = sub_event('resub', event_id='webhook-1')
    res = client.post('/api/events', json=event)
    data = res.get_json()
    assert data['applied'] is True
    assert data['adjustment']['addSeconds'] == 300
    assert data['state']['subs'] == 1

    again = client.post('/api/events', json=event).get_json()
    assert again['applied'] is False
    assert again['state']['stateVersion'] == data['state']['stateVersion']


def test_event_webhook_rejects_non_object(client):
    res = client.post('/api/events', data='nope', content_type='text/plain')
    assert res.status_code == 400


def test_bulk_gift_webhook_reports_breakdown(client):
    client.post('/api/control', json={'action': 'set-happy-hour', 'happyHour': True})
    data = client.post('/api/events', json=bulk_gift_event('Alice', 10, event_id='b1')).get_json()
    debug = data['adjustment']['debug']
    assert debug['subSeconds'] == 300 * 10 * 2
    assert debug['bonusSeconds'] == 0
    assert data['state']['subs'] == 10


def test_control(client):
    data = client.post('/api/control', json={'action': 'set-time', 'remainingSeconds': 60}).get_json()
    assert data['remainingSeconds'] == 60
    data = client.post('/api/control', json={'action': 'bogus'}).get_json()
    assert data['stateVersion'] == 1


def test_restart_resumes_from_snapshot(flask_app, runtime, state_file, scheduler):
    runtime.engine.set_time(500)
    runtime.engine.update_setting('t3', 900)
    assert runtime.shutdown() is True
    assert runtime.shutdown() is None

    with open(state_file, encoding='utf-8') as fh:
        saved = json.load(fh)
    assert saved['stateVersion'] == 2

    class RestartConfig:
        TESTING = True
        STATE_FILE = state_file
        AUTOSTART_RUNTIME = False

    restarted = get_runtime(create_app(RestartConfig, scheduler=scheduler))
    assert restarted.engine.state.remaining_seconds == 500
    assert restarted.engine.state.event_seconds['t3'] == 900
    assert restarted.engine.state.state_version == 2
