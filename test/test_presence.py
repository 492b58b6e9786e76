import time

from chalicelib import presence
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import PRESENCE_TTL_SECONDS
from chalicelib.constants.status_codes import http200
from chalicelib.realtime import to_change
from utils.fixtures import id_customer, id_driver
from utils.request_utils import make_request


def test_track_presence_heartbeat(chalice_client, registered_users, tokens):
    before = int(time.time())
    response = make_request(chalice_client, endpoint='/presence', method='POST', token=tokens['driver'])
    assert response.status_code == http200
    assert response.json_body['user_id'] == id_driver
    assert response.json_body['user_type'] == 'driver'

    record = registered_users.get(keys_structure.presence_pk, id_driver)
    assert before + PRESENCE_TTL_SECONDS <= record['expires_at'] <= int(time.time()) + PRESENCE_TTL_SECONDS

    response = make_request(chalice_client, endpoint='/presence', token=tokens['customer'])
    assert list(response.json_body) == [id_driver]


def test_expired_presence_is_offline(gen_table):
    presence.Presence(id_customer, user_type='customer', expires_at=int(time.time()) - 1)._create_db_record()
    presence.track_presence(id_driver, 'driver')
    assert list(presence.presence_state()) == [id_driver]
    assert presence.presence_state(now=time.time() + PRESENCE_TTL_SECONDS + 1) == {}


def test_presence_change_is_published(monkeypatch):
    published = []
    monkeypatch.setattr(presence, 'publish_message', lambda message, attributes: published.append(message))
    row = {'id_': id_driver, 'user_type': 'driver', 'online_at': '2024-01-01T10:00:00', 'expires_at': 1}

    presence.handle_presence_change(to_change('presence', 'REMOVE', None, row))
    presence.handle_presence_change(to_change('order', 'INSERT', row, None))
    assert published == [{
        'event': 'presence-update',
        'change_type': 'DELETE',
        'online': False,
        'detail': {'user_id': id_driver, 'user_type': 'driver', 'online_at': '2024-01-01T10:00:00'}
    }]
