import os
from datetime import datetime
from decimal import Decimal
from typing import Tuple, List, Dict, Optional

from boto3.dynamodb.conditions import Key, Attr
from chalice import Response

from chalicelib import subscriptions
from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import ORDER_STATUSES, STATUS_PENDING, STATUS_PREPARING, STATUS_READY, \
    EMAIL_FROM
from chalicelib.constants.status_codes import http200
from chalicelib.notifications import Notification
from chalicelib.utils import auth as utils_auth, \
    data as utils_data, \
    db as utils_db, \
    app as utils_app, \
    notifications as utils_notifications, \
    exceptions, \
    email_templates
from chalicelib.utils.logger import logger

# the only non-terminal transition, every other status moves to Ready
STATUS_TRANSITIONS = {
    STATUS_PENDING: STATUS_PREPARING,
}


def next_status(current_status: str) -> str:
    return STATUS_TRANSITIONS.get(current_status, STATUS_READY)


def order_item_snapshot(line: Dict) -> Dict:
    return {
        'name': line.get('name') or 'Unknown',
        'price': utils_data.to_decimal(line.get('price'), Decimal('0')),
        'quantity': int(utils_data.to_decimal(line.get('quantity'), Decimal('0'))),
        'image': line.get('image') or ''
    }


class Order(EntityBase):
    pk = keys_structure.orders_pk
    sk = keys_structure.orders_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'user_id': lambda x: isinstance(x, str),
        'user_details': lambda x: isinstance(x, dict),
        'items': lambda x: isinstance(x, list) and len(x) > 0,
        'subtotal': lambda x: isinstance(x, Decimal),
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'total': lambda x: isinstance(x, Decimal),
        'status': lambda x: x in ORDER_STATUSES,
        'history': lambda x: isinstance(x, list),
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'discount': lambda x: isinstance(x, Decimal),
        'payment_status': lambda x: isinstance(x, str),
        'payment_method_id': lambda x: isinstance(x, str),
        'updated_by': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.user_details: Dict = kwargs.get('user_details') or {}
        self.user_id: str = kwargs.get('user_id') or self.user_details.get('uid')
        self.items: List[Dict] = kwargs.get('items', [])
        self.subtotal: Decimal = utils_data.to_decimal(kwargs.get('subtotal'))
        self.total: Decimal = utils_data.to_decimal(kwargs.get('total'))
        self.discount: Decimal = utils_data.to_decimal(kwargs.get('discount'))
        self.status: str = kwargs.get('status') or STATUS_PENDING
        self.payment_status: str = kwargs.get('payment_status')
        self.payment_method_id: str = kwargs.get('payment_method_id')
        self.date_created: str = kwargs.get('date_created') or datetime.now().isoformat(timespec='seconds')
        self.date_updated: str = kwargs.get('date_updated') or self.date_created
        self.history: List[Dict] = kwargs.get('history') or [{'status': self.status, 'date': self.date_created}]
        self.updated_by: str = kwargs.get('updated_by')
        self.record_type = 'order'

    @classmethod
    def init_from_checkout(cls, payment_intent, lines: List[Dict], user_details: Dict):
        """total is the amount Stripe charged, in major units"""
        items = [order_item_snapshot(line) for line in lines]
        subtotal = utils_data.money(sum((item['price'] * item['quantity'] for item in items), Decimal('0')))
        payment_method = getattr(payment_intent, 'payment_method', None)
        return cls(
            id_=payment_intent.id,
            user_details=user_details,
            items=items,
            subtotal=subtotal,
            total=utils_data.from_minor_units(payment_intent.amount),
            status=STATUS_PENDING,
            payment_status=payment_intent.status,
            payment_method_id=payment_method if isinstance(payment_method, str) else getattr(payment_method, 'id', None)
        )

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(order_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'user_id': self.user_id,
            'user_details': self.user_details,
            'items': self.items,
            'subtotal': self.subtotal,
            'total': self.total,
            'discount': self.discount,
            'status': self.status,
            'payment_status': self.payment_status,
            'payment_method_id': self.payment_method_id,
            'history': self.history,
            'date_created': self.date_created,
            'date_updated': self.date_updated,
            'updated_by': self.updated_by
        }

    def change_status(self, new_status, updated_by=None):
        self.history = [*self.history, {'status': new_status, 'date': datetime.now().isoformat(timespec='seconds')}]
        self.status = new_status
        self.updated_by = updated_by

    def create(self):
        self._create_db_record()
        logger.info(f"Order.create ::: order {self.id_} successfully created")

    def to_payment_record(self) -> Dict:
        """Copy of the order kept under the user's payments"""
        return {
            **{key: value for key, value in self._to_dict().items() if value is not None},
            'partkey': keys_structure.payments_pk.format(user_id=self.user_id),
            'sortkey': keys_structure.payments_sk.format(payment_intent_id=self.id_),
            'record_type': 'payment'
        }


class OrderBoard:
    """
    Admin view of all orders: `current` keeps everything not Ready yet, `previous` the Ready ones,
    both newest first
    """

    def __init__(self, orders: List[Order]):
        ordered = sorted(orders, key=lambda o: o.date_created or '', reverse=True)
        self.current: List[Order] = [order for order in ordered if order.status != STATUS_READY]
        self.previous: List[Order] = [order for order in ordered if order.status == STATUS_READY]

    def advance(self, order_id, updated_by=None) -> Order:
        order = next((o for o in self.current if o.id_ == order_id), None)
        if order is None:
            if any(o.id_ == order_id for o in self.previous):
                raise exceptions.OrderAlreadyCompleted(f'Order {order_id} is already {STATUS_READY}')
            raise exceptions.RecordNotFound(f'Order {order_id} not found')

        order.change_status(next_status(order.status), updated_by)
        order._update_db_record()
        if order.status == STATUS_READY:
            self.current.remove(order)
            self.previous.append(order)
        logger.info(f'OrderBoard.advance ::: order {order_id} moved to {order.status}')
        return order

    def to_ui(self) -> Dict:
        return {
            'current': [order.to_ui() for order in self.current],
            'previous': [order.to_ui() for order in self.previous]
        }


def get_all_orders() -> List[Order]:
    return [Order(**record) for record in utils_db.query_items_paged(Key('partkey').eq(keys_structure.orders_pk))]


def get_user_orders(user_id) -> List[Order]:
    records = utils_db.query_items_paged(
        Key('partkey').eq(keys_structure.orders_pk),
        filter_expression=Attr('user_id').eq(user_id)
    )
    return sorted([Order(**record) for record in records], key=lambda o: o.date_created, reverse=True)


@utils_app.best_effort
def notify_status_change(order: Order) -> Optional[Notification]:
    if not order.user_id:
        logger.warning(f'notify_status_change ::: order {order.id_} has no user, skipping')
        return None
    return Notification.create(
        user_id=order.user_id,
        message=email_templates.get_order_status_message(order.id_, order.status),
        item_id=order.id_
    )


@utils_app.best_effort
def send_status_email(order: Order):
    email = order.user_details.get('email')
    if not email:
        logger.warning(f'send_status_email ::: no email found for order {order.id_}')
        return None
    subject, text, html = email_templates.get_order_status_email(order._to_dict(), order.status)
    return utils_notifications.send_email_ses([email], EMAIL_FROM, subject, text, html)


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_get_user_orders(request) -> Response:
    orders = get_user_orders(request.auth_result['user_id'])
    return Response(status_code=http200, body={'orders': [order.to_ui() for order in orders]})


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.admin_required
def endpoint_admin_get_orders(request) -> Response:
    return Response(status_code=http200, body=OrderBoard(get_all_orders()).to_ui())


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.admin_required
def endpoint_admin_advance_order_status(request, order_id) -> Response:
    board = OrderBoard(get_all_orders())
    order = board.advance(order_id, updated_by=request.auth_result['user_id'])
    # the status change is committed, nothing below can undo or fail it
    notify_status_change(order)
    send_status_email(order)
    return Response(status_code=http200, body={
        'message': f'Order marked as "{order.status}"',
        'order': order.to_ui(),
        **board.to_ui()
    })


def db_trigger_send_order_notification(record_old: dict, record_new: dict, event_name: str):
    if event_name.lower() != 'insert':
        return
    logger.info(f'db_trigger_send_order_notification ::: order={record_new.get("id_")}')
    subject = f'New order has been created, order ID - {record_new.get("id_")}'
    email_body = email_templates.get_new_order_notification_message(record_new)
    utils_notifications.send_email_ses([os.environ.get('ORDERS_EMAIL')], EMAIL_FROM, subject, email_body)


new_order_subscription = subscriptions.subscribe('order', db_trigger_send_order_notification)
