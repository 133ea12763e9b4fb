from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from chalice import Response

from chalicelib import app_state
from chalicelib.constants.constants import MAX_CART_QTY, MIN_CART_QTY
from chalicelib.constants.status_codes import http200
from chalicelib.menu_items import MenuItem
from chalicelib.utils import app as utils_app, data as utils_data, exceptions
from chalicelib.utils.logger import logger

# outcomes of a cart mutation
UPDATED = 'updated'
REJECTED_MAX = 'rejected_max'
CONFIRM_REMOVAL = 'confirm_removal'
REMOVED = 'removed'


def clamp_quantity(value) -> int:
    quantity = utils_data.to_decimal(value)
    if quantity is None:
        return MIN_CART_QTY
    return max(MIN_CART_QTY, min(MAX_CART_QTY, int(quantity)))


def normalize_line(line) -> Optional[Dict]:
    """Cart line as loaded from storage, None when it can't be used anymore"""
    if not isinstance(line, dict) or not line.get('id'):
        return None
    price = utils_data.to_decimal(line.get('price'))
    if price is None:
        return None
    return {**line, 'price': price, 'quantity': clamp_quantity(line.get('quantity'))}


class Cart:

    def __init__(self, state_store: app_state.StateStore):
        self.state_store = state_store
        self.lines: List[Dict] = []
        for stored_line in state_store.get_cart():
            line = normalize_line(stored_line)
            if line is None:
                logger.warning(f'Cart ::: dropping broken cart line {stored_line=}')
                continue
            self.lines.append(line)

    @classmethod
    def init_request(cls, request):
        logger.info("Cart.init_request ::: started")
        return cls(app_state.init_request_state_store(request))

    @property
    def total(self) -> Decimal:
        return sum((line['price'] * line['quantity'] for line in self.lines), Decimal('0'))

    @property
    def items_count(self) -> int:
        return sum(line['quantity'] for line in self.lines)

    def is_empty(self) -> bool:
        return len(self.lines) == 0

    def _find_line(self, menu_item_id) -> Optional[Dict]:
        return next((line for line in self.lines if line['id'] == menu_item_id), None)

    def add_item(self, snapshot: Dict) -> Tuple[str, Optional[str]]:
        line = self._find_line(snapshot['id'])
        if line is None:
            self.lines.append({**snapshot, 'quantity': MIN_CART_QTY})
            return UPDATED, None
        return self.update_quantity(line['id'], line['quantity'] + 1)

    def update_quantity(self, menu_item_id, quantity: int, confirm_remove: bool = False) -> Tuple[str, Optional[str]]:
        line = self._find_line(menu_item_id)
        if line is None:
            raise exceptions.RecordNotFound(f'Item {menu_item_id} is not in the cart')
        if quantity > MAX_CART_QTY:
            return REJECTED_MAX, f'You can order at most {MAX_CART_QTY} of {line.get("name")}'
        if quantity < MIN_CART_QTY:
            if not confirm_remove:
                return CONFIRM_REMOVAL, f'Remove {line.get("name")} from the cart?'
            self.remove_item(menu_item_id)
            return REMOVED, None
        line['quantity'] = quantity
        return UPDATED, None

    def remove_item(self, menu_item_id) -> None:
        line = self._find_line(menu_item_id)
        if line is None:
            raise exceptions.RecordNotFound(f'Item {menu_item_id} is not in the cart')
        self.lines.remove(line)

    def save(self) -> None:
        self.state_store.set_cart(self.lines)

    def clear(self) -> None:
        self.lines = []
        self.state_store.clear_cart()

    def to_ui(self) -> Dict:
        return {
            'cart': [{**line, 'line_total': utils_data.format_money(line['price'] * line['quantity'])}
                     for line in self.lines],
            'total': utils_data.format_money(self.total),
            'items_count': self.items_count
        }


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_get_cart(request) -> Response:
    return Response(status_code=http200, body=Cart.init_request(request).to_ui())


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_add_item_to_cart(request) -> Response:
    cart = Cart.init_request(request)
    menu_item_id = utils_data.parse_raw_body(request).get('menu_item_id')
    if not isinstance(menu_item_id, str):
        raise exceptions.ValidationException('menu_item_id is required')
    menu_item = MenuItem.init_get_by_id(menu_item_id)
    status, message = cart.add_item(menu_item.to_cart_snapshot())
    if status == UPDATED:
        cart.save()
    return Response(status_code=http200, body={**cart.to_ui(), 'status': status, 'message': message})


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_update_cart_item(request, menu_item_id) -> Response:
    cart = Cart.init_request(request)
    request_body = utils_data.parse_raw_body(request)
    quantity = request_body.get('quantity')
    if not utils_data.is_number(quantity):
        raise exceptions.ValidationException('quantity must be a number')
    status, message = cart.update_quantity(menu_item_id, int(quantity),
                                           confirm_remove=request_body.get('confirm_remove') is True)
    if status in (UPDATED, REMOVED):
        cart.save()
    return Response(status_code=http200, body={**cart.to_ui(), 'status': status, 'message': message})


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_remove_item_from_cart(request, menu_item_id) -> Response:
    cart = Cart.init_request(request)
    cart.remove_item(menu_item_id)
    cart.save()
    return Response(status_code=http200, body={**cart.to_ui(), 'status': REMOVED, 'message': None})


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_clear_cart(request) -> Response:
    Cart.init_request(request).clear()
    return Response(status_code=http200, body={'message': 'Cart was successfully cleared'})
