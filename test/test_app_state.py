import pytest

from chalicelib.app_state import StateStore, DynamoStateStorage, DEFAULT_THEME
from chalicelib.constants import keys_structure
from chalicelib.constants.status_codes import http200, http400
from chalicelib.utils import exceptions
from test.utils.request_utils import make_request, response_json, TEST_CLIENT_ID

from test.utils.fixtures import chalice_client, fake_db, mock_auth, MemoryStorage


def test_state_store_defaults():
    store = StateStore(MemoryStorage())
    assert store.get_cart() == []
    assert store.get_pending_order() is None
    assert store.get_photo_permission() is False
    assert store.get_theme() == DEFAULT_THEME


def test_state_store_accessors():
    storage = MemoryStorage()
    store = StateStore(storage)

    store.set_cart([{'id': 'a', 'price': 1, 'quantity': 1}])
    store.set_pending_order({'total': '10.00'})
    store.grant_photo_permission()
    store.set_theme('  dark ')

    assert storage.data['cart'] == [{'id': 'a', 'price': 1, 'quantity': 1}]
    assert store.get_pending_order() == {'total': '10.00'}
    assert store.get_photo_permission() is True
    assert store.preferences() == {'theme': 'dark', 'photo_permission': True}

    store.clear_cart()
    store.clear_pending_order()
    assert store.get_cart() == []
    assert store.get_pending_order() is None


def test_state_store_rejects_empty_theme():
    with pytest.raises(exceptions.ValidationException):
        StateStore(MemoryStorage()).set_theme('   ')


def test_dynamo_storage_keeps_client_partition(fake_db):
    storage = DynamoStateStorage('browser-1')
    storage.set('theme', 'linear-gradient(#fff, #000)')

    record = fake_db.record(keys_structure.app_state_pk.format(client_id='browser-1'), 'theme')
    assert record['value'] == 'linear-gradient(#fff, #000)'
    assert record['record_type'] == 'app_state'
    assert DynamoStateStorage('browser-2').get('theme') is None

    storage.remove('theme')
    assert storage.get('theme') is None


def test_preferences_endpoints(chalice_client):
    response = make_request(chalice_client, endpoint='/preferences')
    assert response['statusCode'] == http200
    assert response_json(response) == {'theme': DEFAULT_THEME, 'photo_permission': False}

    response = make_request(chalice_client, endpoint='/preferences', method='PUT',
                            json_body={'theme': 'dark', 'photo_permission': True})
    assert response['statusCode'] == http200
    assert response_json(response) == {'theme': 'dark', 'photo_permission': True}

    response = make_request(chalice_client, endpoint='/preferences', client_id=TEST_CLIENT_ID)
    assert response_json(response)['theme'] == 'dark'


def test_preferences_require_client_id(chalice_client):
    response = make_request(chalice_client, endpoint='/preferences', client_id=None)
    assert response['statusCode'] == http400
    assert response_json(response)['exception'] == 'MissingClientId'
