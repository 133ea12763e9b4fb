from decimal import Decimal
from typing import Dict, Optional

from chalice import Response

from chalicelib import app_state, loyalty, payments, users
from chalicelib.carts import Cart
from chalicelib.constants.constants import LOGIN_ROUTE
from chalicelib.constants.status_codes import http200, http401, http500
from chalicelib.orders import Order
from chalicelib.utils import auth as utils_auth, app as utils_app, data as utils_data, db as utils_db, exceptions
from chalicelib.utils.logger import logger, log_exception


def ensure_cart_not_empty(cart: Cart):
    if cart.is_empty():
        raise exceptions.EmptyCart('Your cart is empty')


def build_pending_order(cart: Cart, name, phone_number, current_points) -> Dict:
    final_total, discount, remaining_points = loyalty.apply_points(cart.total, current_points)
    return {
        'name': name,
        'phone_number': phone_number,
        'items': cart.lines,
        'subtotal': utils_data.format_money(cart.total),
        'discount': utils_data.format_money(discount),
        'total': utils_data.format_money(final_total),
        'remaining_points': remaining_points
    }


def pending_order_for_cart(pending_order: Optional[Dict], cart: Cart) -> Optional[Dict]:
    """
    Pending order stored for the cart being paid, None when missing or built for a different cart
    """
    if not pending_order:
        return None
    subtotal = utils_data.to_decimal(pending_order.get('subtotal'))
    if subtotal is None or utils_data.money(subtotal) != utils_data.money(cart.total):
        logger.warning(f"pending_order_for_cart ::: pending order subtotal={pending_order.get('subtotal')} "
                       f"doesn't match cart total={utils_data.format_money(cart.total)}, ignored")
        return None
    return pending_order


def persist_paid_order(order: Order, points_earned: Decimal) -> bool:
    """
    Writes the profile, the payment record and the order for an already charged intent.
    A failure here can't undo the charge, it is logged and reported as False
    """
    user_details = order.user_details
    try:
        users.save_checkout_profile(order.user_id, user_details['email'], user_details['name'],
                                    user_details['phone_number'], points_earned=points_earned)
        utils_db.put_db_record(order.to_payment_record())
        order.create()
    except Exception as error:
        log_exception(error, http500, f'persist_paid_order ::: order {order.id_} was paid but not saved')
        return False
    return True


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_begin_checkout(request) -> Response:
    cart = Cart.init_request(request)
    ensure_cart_not_empty(cart)
    auth_result = utils_auth.get_optional_auth_result(request)
    if auth_result is None:
        return Response(status_code=http401, body={
            'error': 'Please sign in to continue to checkout',
            'redirect': LOGIN_ROUTE,
            'state': cart.to_ui()
        })
    return Response(status_code=http200, body={**cart.to_ui(), 'user_id': auth_result['user_id']})


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_create_pending_order(request) -> Response:
    cart = Cart.init_request(request)
    ensure_cart_not_empty(cart)
    request_body = utils_data.parse_raw_body(request)
    name = users.validate_name(request_body.get('name'))
    phone_number = users.validate_phone(request_body.get('phone_number'))

    user = users.get_profile(request.auth_result['user_id'])
    pending_order = build_pending_order(cart, name, phone_number, user.points if user else Decimal('0'))
    cart.state_store.set_pending_order(pending_order)
    if user is not None:
        user.points = pending_order['remaining_points']
        user._update_db_record()
    logger.info(f"endpoint_create_pending_order ::: total={pending_order['total']} "
                f"discount={pending_order['discount']}")
    return Response(status_code=http200, body=pending_order)


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_confirm_checkout(request) -> Response:
    state_store = app_state.init_request_state_store(request)
    cart = Cart(state_store)
    request_body = utils_data.parse_raw_body(request)
    payment_intent_id = request_body.get('payment_intent_id')
    if not isinstance(payment_intent_id, str) or not payment_intent_id:
        raise exceptions.ValidationException('payment_intent_id is required')
    user_details = {
        'uid': request.auth_result['user_id'],
        'name': users.validate_name(request_body.get('name')),
        'email': users.validate_email(request_body.get('email')),
        'phone_number': users.validate_phone(request_body.get('phone_number'))
    }
    ensure_cart_not_empty(cart)

    payment_intent = payments.retrieve_payment_intent(payment_intent_id)
    if payment_intent.status != payments.PAYMENT_SUCCEEDED:
        raise exceptions.ValidationException(f'Payment status: {payment_intent.status}')
    if payment_intent.amount != utils_data.to_minor_units(cart.total):
        logger.warning(f'endpoint_confirm_checkout ::: {payment_intent_id} charged {payment_intent.amount}, '
                       f'cart total is {utils_data.format_money(cart.total)}')
        raise exceptions.ValidationException('Payment amount does not match the order')

    order = Order.init_from_checkout(payment_intent, cart.lines, user_details)
    pending_order = pending_order_for_cart(state_store.get_pending_order(), cart)
    if pending_order:
        # points were already converted when the pending order was stored
        order.discount = utils_data.money(utils_data.to_decimal(pending_order.get('discount'), Decimal('0')))
        points_earned = Decimal('0')
    else:
        points_earned = loyalty.points_for(order.total)

    order_saved = persist_paid_order(order, points_earned)
    cart.clear()
    state_store.clear_pending_order()
    return Response(status_code=http200, body={
        'message': 'Payment successful',
        'order_id': order.id_,
        'order_saved': order_saved,
        'order': order.to_ui()
    })
