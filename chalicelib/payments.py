"""
Payment relay - Stripe integration.

Creates PaymentIntents for the storefront's payment widget and keeps the
display metadata of the card used, nothing else about payments is stored here.
"""
import os
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List

import stripe
from chalice import Response

from chalicelib.constants import keys_structure
from chalicelib.constants.status_codes import http200, http400, http500
from chalicelib.utils import app as utils_app, data as utils_data, db as utils_db, exceptions
from chalicelib.utils.logger import logger, log_exception

PAYMENT_SUCCEEDED = 'succeeded'


def configure_stripe():
    stripe.api_key = os.environ.get('STRIPE_SECRET_KEY')


def payment_currency() -> str:
    return os.environ.get('PAYMENT_CURRENCY', 'aud')


def validate_products(products: Any) -> List[Dict]:
    if not products or not isinstance(products, list):
        raise exceptions.ValidationException('Invalid or empty products array')
    for product in products:
        if not isinstance(product, dict) \
                or not utils_data.is_number(product.get('price')) or not product.get('price') \
                or not utils_data.is_number(product.get('quantity')) or not product.get('quantity'):
            raise exceptions.ValidationException('Invalid product data: price and quantity must be numbers')
    return products


def calculate_totals(products: List[Dict]):
    """
    Totals are always recomputed from price x quantity, a total sent by the client is ignored
    :return:
    subtotal, total
    """
    subtotal = sum((Decimal(product['price']) * Decimal(product['quantity']) for product in products), Decimal('0'))
    total = subtotal
    if total <= 0:
        raise exceptions.ValidationException('Total amount must be greater than zero')
    return subtotal, total


def create_payment_intent(total: Decimal, metadata: Dict = None) -> stripe.PaymentIntent:
    """
    Create a Stripe PaymentIntent, the card may be reused off session later.

    Raises:
        PaymentError: If Stripe API call fails
    """
    configure_stripe()
    try:
        return stripe.PaymentIntent.create(
            amount=utils_data.to_minor_units(total),
            currency=payment_currency(),
            payment_method_types=['card'],
            setup_future_usage='off_session',
            metadata=metadata or {},
        )
    except stripe.StripeError as e:
        raise exceptions.PaymentError(
            message='Payment intent creation failed',
            details=str(e.user_message or e),
            code=getattr(e, 'code', None),
        ) from e


def retrieve_payment_intent(payment_intent_id: str, expand: List[str] = None) -> stripe.PaymentIntent:
    configure_stripe()
    try:
        if expand:
            return stripe.PaymentIntent.retrieve(payment_intent_id, expand=expand)
        return stripe.PaymentIntent.retrieve(payment_intent_id)
    except stripe.StripeError as e:
        raise exceptions.PaymentError(
            message='Payment intent retrieval failed',
            details=str(e.user_message or e),
            code=getattr(e, 'code', None),
        ) from e


def get_card_details(payment_intent) -> Dict:
    """Card display metadata from an intent retrieved with the payment method expanded"""
    payment_method = payment_intent.payment_method
    if isinstance(payment_method, str):
        payment_method = stripe.PaymentMethod.retrieve(payment_method)
    card = getattr(payment_method, 'card', None) if payment_method else None
    return {
        'payment_method_id': getattr(payment_method, 'id', None),
        'last4': getattr(card, 'last4', None) or '0000',
        'brand': getattr(card, 'brand', None) or 'unknown',
    }


def save_card_details(payment_intent_id: str, user_id: str) -> Dict:
    payment_intent = retrieve_payment_intent(payment_intent_id, expand=['payment_method'])
    card_details = get_card_details(payment_intent)
    key = {
        'partkey': keys_structure.card_details_pk.format(user_id=user_id),
        'sortkey': keys_structure.card_details_sk
    }
    try:
        existing = utils_db.get_db_item(**key)
    except exceptions.RecordNotFound:
        existing = {'record_type': 'card_details'}
    utils_db.put_db_record({
        **existing,
        **key,
        **{field: value for field, value in card_details.items() if value is not None},
        'last_used': datetime.now().isoformat(timespec='seconds')
    })
    logger.info(f"save_card_details ::: card details saved for {user_id=} (**** {card_details['last4']})")
    return card_details


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_create_payment_intent(request) -> Response:
    products = validate_products(utils_data.parse_raw_body(request).get('products'))
    subtotal, total = calculate_totals(products)
    payment_intent = create_payment_intent(total, metadata={
        'subtotal': utils_data.format_money(subtotal),
        'total': utils_data.format_money(total)
    })
    logger.info(f'endpoint_create_payment_intent ::: PaymentIntent created {payment_intent.id}')
    return Response(status_code=http200, body={
        'clientSecret': payment_intent.client_secret,
        'subtotal': utils_data.format_money(subtotal),
        'total': utils_data.format_money(total),
        'paymentIntentId': payment_intent.id
    })


@utils_app.log_start_finish
def endpoint_save_card_details(request) -> Response:
    try:
        request_body = utils_data.parse_raw_body(request)
    except exceptions.ValidationException as error:
        return Response(status_code=http400, body={'success': False, 'error': str(error)})
    payment_intent_id, user_id = request_body.get('paymentIntentId'), request_body.get('userId')
    if not payment_intent_id or not user_id:
        return Response(status_code=http400,
                        body={'success': False, 'error': 'paymentIntentId and userId are required'})
    try:
        save_card_details(payment_intent_id, user_id)
    except Exception as error:
        log_exception(error, http500, 'endpoint_save_card_details ::: failed to save card details')
        return Response(status_code=http500, body={
            'success': False,
            'error': 'Failed to save card details',
            'details': getattr(error, 'details', None) or str(error)
        })
    return Response(status_code=http200, body={'success': True, 'message': 'Card details saved successfully'})
