from decimal import Decimal
from unittest.mock import patch

import pytest

from chalicelib import orders
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import STATUS_PENDING, STATUS_PREPARING, STATUS_READY
from chalicelib.constants.status_codes import http200, http400, http403, http404
from chalicelib.notifications import get_user_notifications
from chalicelib.orders import Order, OrderBoard, next_status
from chalicelib.utils import exceptions
from test.utils.request_utils import make_request, response_json

from test.utils.fixtures import chalice_client, fake_db, mock_auth, mock_ses, create_test_admin, create_test_user, \
    id_admin, id_user


def create_test_order(order_id='pi_order_1', status=STATUS_PENDING, date_created='2026-10-18T12:30:00',
                      user_id=id_user, total='34.97') -> Order:
    order = Order(
        id_=order_id,
        user_id=user_id,
        user_details={'uid': user_id, 'name': 'Test User', 'email': f'{user_id}@example.com',
                      'phone_number': '+61400000000'},
        items=[{'name': 'Momo', 'price': Decimal('12.99'), 'quantity': 2, 'image': ''},
               {'name': 'Chowmein', 'price': Decimal('8.99'), 'quantity': 1, 'image': ''}],
        subtotal=Decimal(total),
        total=Decimal(total),
        status=status,
        payment_status='succeeded',
        date_created=date_created
    )
    order.create()
    return order


@pytest.mark.parametrize('current, expected', [
    (STATUS_PENDING, STATUS_PREPARING),
    (STATUS_PREPARING, STATUS_READY),
    (STATUS_READY, STATUS_READY),
    ('Unknown', STATUS_READY),
])
def test_next_status(current, expected):
    assert next_status(current) == expected


def test_order_board_transitions(fake_db):
    board = OrderBoard([create_test_order('pi_1'), create_test_order('pi_2', date_created='2026-10-18T13:00:00')])
    assert [o.id_ for o in board.current] == ['pi_2', 'pi_1']

    assert board.advance('pi_1').status == STATUS_PREPARING
    assert [o.id_ for o in board.current] == ['pi_2', 'pi_1']

    assert board.advance('pi_1').status == STATUS_READY
    assert [o.id_ for o in board.current] == ['pi_2']
    assert [o.id_ for o in board.previous] == ['pi_1']

    record = fake_db.record(keys_structure.orders_pk, 'pi_1')
    assert record['status'] == STATUS_READY
    assert [entry['status'] for entry in record['history']] == [STATUS_PENDING, STATUS_PREPARING, STATUS_READY]


def test_order_board_rejects_ready_and_unknown(fake_db):
    board = OrderBoard([create_test_order('pi_done', status=STATUS_READY)])

    with pytest.raises(exceptions.OrderAlreadyCompleted):
        board.advance('pi_done')
    with pytest.raises(exceptions.RecordNotFound):
        board.advance('pi_missing')


def test_admin_advances_order(chalice_client, fake_db, mock_ses):
    create_test_admin()
    create_test_order('pi_1')

    response = make_request(chalice_client, endpoint='/admin/orders/pi_1/status', method='PUT', token=id_admin)
    body = response_json(response)
    assert response['statusCode'] == http200, response['body']
    assert body['order']['status'] == STATUS_PREPARING
    assert [o['id'] for o in body['current']] == ['pi_1']

    notifications = get_user_notifications(id_user)
    assert [n.message for n in notifications] == ['Your order #pi_1 is now being prepared.']
    assert mock_ses.send_email.call_args[1]['Destination'] == {'ToAddresses': [f'{id_user}@example.com']}

    response = make_request(chalice_client, endpoint='/admin/orders/pi_1/status', method='PUT', token=id_admin)
    body = response_json(response)
    assert body['order']['status'] == STATUS_READY
    assert body['current'] == []
    assert [o['id'] for o in body['previous']] == ['pi_1']
    assert 'Your order #pi_1 is ready for pickup!' in [n.message for n in get_user_notifications(id_user)]

    response = make_request(chalice_client, endpoint='/admin/orders/pi_1/status', method='PUT', token=id_admin)
    assert response['statusCode'] == http400
    assert response_json(response)['exception'] == 'OrderAlreadyCompleted'


def test_status_update_survives_side_effect_failures(chalice_client, fake_db, mock_ses):
    create_test_admin()
    create_test_order('pi_1')
    mock_ses.send_email.side_effect = Exception('SES is down')

    with patch('chalicelib.orders.Notification.create', side_effect=Exception('table is down')):
        response = make_request(chalice_client, endpoint='/admin/orders/pi_1/status', method='PUT',
                                token=id_admin)

    assert response['statusCode'] == http200
    assert fake_db.record(keys_structure.orders_pk, 'pi_1')['status'] == STATUS_PREPARING


def test_advance_unknown_order(chalice_client):
    create_test_admin()
    response = make_request(chalice_client, endpoint='/admin/orders/nope/status', method='PUT', token=id_admin)
    assert response['statusCode'] == http404


def test_admin_orders_require_admin(chalice_client):
    create_test_user()
    response = make_request(chalice_client, endpoint='/admin/orders', token=id_user)
    assert response['statusCode'] == http403


def test_admin_order_board(chalice_client):
    create_test_admin()
    create_test_order('pi_1', status=STATUS_READY)
    create_test_order('pi_2', status=STATUS_PREPARING)

    body = response_json(make_request(chalice_client, endpoint='/admin/orders', token=id_admin))
    assert [o['id'] for o in body['current']] == ['pi_2']
    assert [o['id'] for o in body['previous']] == ['pi_1']


def test_user_sees_own_orders(chalice_client):
    create_test_user()
    create_test_order('pi_old', date_created='2026-10-01T10:00:00')
    create_test_order('pi_new', date_created='2026-10-17T10:00:00')
    create_test_order('pi_other', user_id='someone-else')

    body = response_json(make_request(chalice_client, endpoint='/orders', token=id_user))
    assert [o['id'] for o in body['orders']] == ['pi_new', 'pi_old']
    assert body['orders'][0]['total'] == 34.97


def test_new_order_alert(mock_ses):
    with patch.dict('os.environ', {'ORDERS_EMAIL': 'kitchen@example.com'}):
        orders.db_trigger_send_order_notification({}, {'id_': 'pi_1', 'items': [], 'total': 10}, 'INSERT')
        orders.db_trigger_send_order_notification({}, {'id_': 'pi_1'}, 'MODIFY')

    mock_ses.send_email.assert_called_once()
    assert mock_ses.send_email.call_args[1]['Destination'] == {'ToAddresses': ['kitchen@example.com']}
