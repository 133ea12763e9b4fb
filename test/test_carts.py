from decimal import Decimal

import pytest

from chalicelib.app_state import StateStore
from chalicelib.carts import Cart, clamp_quantity, UPDATED, REJECTED_MAX, CONFIRM_REMOVAL, REMOVED
from chalicelib.constants.status_codes import http200, http400, http404
from chalicelib.utils import exceptions
from test.utils.request_utils import make_request, response_json

from test.utils.fixtures import chalice_client, fake_db, mock_auth, MemoryStorage, create_test_menu_item


def snapshot(id_, price, name=None):
    return {'id': id_, 'name': name or id_, 'price': Decimal(price), 'category': 'Mains', 'image': ''}


@pytest.fixture
def cart():
    return Cart(StateStore(MemoryStorage()))


def test_cart_total_is_sum_of_lines(cart):
    cart.add_item(snapshot('momo', '12.99'))
    cart.add_item(snapshot('momo', '12.99'))
    cart.add_item(snapshot('chowmein', '8.99'))

    assert cart.total == Decimal('34.97')
    assert cart.items_count == 3
    assert cart.to_ui()['total'] == '34.97'
    assert [line['line_total'] for line in cart.to_ui()['cart']] == ['25.98', '8.99']


def test_increment_above_max_is_rejected(cart):
    cart.add_item(snapshot('momo', '5'))
    assert cart.update_quantity('momo', 5) == (UPDATED, None)

    status, message = cart.add_item(snapshot('momo', '5'))

    assert status == REJECTED_MAX
    assert 'at most 5' in message
    assert cart.lines[0]['quantity'] == 5


def test_quantity_below_min_needs_confirmation(cart):
    cart.add_item(snapshot('momo', '5'))

    status, message = cart.update_quantity('momo', 0)
    assert status == CONFIRM_REMOVAL
    assert message == 'Remove momo from the cart?'
    assert cart.lines[0]['quantity'] == 1

    assert cart.update_quantity('momo', 0, confirm_remove=True) == (REMOVED, None)
    assert cart.is_empty()


@pytest.mark.parametrize('attempted', [-3, 0, 1, 3, 5, 6, 100])
def test_quantity_always_within_bounds(cart, attempted):
    cart.add_item(snapshot('momo', '5'))
    cart.update_quantity('momo', attempted)
    assert 1 <= cart.lines[0]['quantity'] <= 5


def test_unknown_line(cart):
    with pytest.raises(exceptions.RecordNotFound):
        cart.update_quantity('missing', 2)
    with pytest.raises(exceptions.RecordNotFound):
        cart.remove_item('missing')


def test_stored_lines_are_normalized():
    storage = MemoryStorage()
    storage.set('cart', [
        {'id': 'momo', 'name': 'Momo', 'price': '12.99', 'quantity': 9},
        {'id': 'broken', 'name': 'No price'},
        {'name': 'No id', 'price': 3}
    ])

    cart = Cart(StateStore(storage))

    assert [line['id'] for line in cart.lines] == ['momo']
    assert cart.lines[0]['quantity'] == 5
    assert cart.lines[0]['price'] == Decimal('12.99')


def test_clamp_quantity():
    assert clamp_quantity('abc') == 1
    assert clamp_quantity(Decimal('2')) == 2
    assert clamp_quantity(42) == 5


def test_cart_endpoints(chalice_client):
    momo = create_test_menu_item('Momo', '12.99')
    chowmein = create_test_menu_item('Chowmein', '8.99', category='Noodles')

    for menu_item_id in (momo.id_, momo.id_, chowmein.id_):
        response = make_request(chalice_client, endpoint='/carts', method='POST',
                                json_body={'menu_item_id': menu_item_id})
        assert response['statusCode'] == http200, response['body']

    body = response_json(make_request(chalice_client, endpoint='/carts'))
    assert body['total'] == '34.97'
    assert body['items_count'] == 3

    response = make_request(chalice_client, endpoint=f'/carts/{momo.id_}', method='PUT', json_body={'quantity': 6})
    body = response_json(response)
    assert body['status'] == REJECTED_MAX
    assert body['total'] == '34.97'

    response = make_request(chalice_client, endpoint=f'/carts/{chowmein.id_}', method='PUT',
                            json_body={'quantity': 0})
    assert response_json(response)['status'] == CONFIRM_REMOVAL

    response = make_request(chalice_client, endpoint=f'/carts/{chowmein.id_}', method='PUT',
                            json_body={'quantity': 0, 'confirm_remove': True})
    body = response_json(response)
    assert body['status'] == REMOVED
    assert body['total'] == '25.98'

    response = make_request(chalice_client, endpoint=f'/carts/{momo.id_}', method='DELETE')
    assert response_json(response)['cart'] == []

    response = make_request(chalice_client, endpoint='/carts', method='DELETE')
    assert response_json(response) == {'message': 'Cart was successfully cleared'}


def test_add_unknown_menu_item(chalice_client):
    response = make_request(chalice_client, endpoint='/carts', method='POST', json_body={'menu_item_id': 'nope'})
    assert response['statusCode'] == http404


def test_update_quantity_must_be_number(chalice_client):
    momo = create_test_menu_item('Momo', '12.99')
    make_request(chalice_client, endpoint='/carts', method='POST', json_body={'menu_item_id': momo.id_})

    response = make_request(chalice_client, endpoint=f'/carts/{momo.id_}', method='PUT',
                            json_body={'quantity': 'two'})
    assert response['statusCode'] == http400


def test_carts_are_scoped_by_client(chalice_client):
    momo = create_test_menu_item('Momo', '12.99')
    make_request(chalice_client, endpoint='/carts', method='POST', json_body={'menu_item_id': momo.id_},
                 client_id='browser-a')

    body = response_json(make_request(chalice_client, endpoint='/carts', client_id='browser-b'))
    assert body['cart'] == []
