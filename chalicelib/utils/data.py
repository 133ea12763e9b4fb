import json
from decimal import Decimal, ROUND_HALF_UP

from chalicelib.utils import exceptions

CENTS = Decimal('0.01')


def replace_dict_key(item, orig_key, new_key):
    if orig_key in item:
        if new_key not in item:
            item[new_key] = item[orig_key]
        del item[orig_key]


def substitute_keys(dict_to_process: dict, base_keys: dict, opt_dict=None):
    if opt_dict is None:
        opt_dict = {}
    all_keys = {**base_keys, **opt_dict}
    for key, val in all_keys.items():
        if val:
            replace_dict_key(dict_to_process, key, val)
        elif key in dict_to_process.keys():
            dict_to_process.pop(key, None)
    return dict_to_process


def parse_raw_body(chalice_request):
    request_raw_body = chalice_request.raw_body
    if not request_raw_body:
        return {}
    try:
        body = json.loads(request_raw_body)
    except ValueError as error:
        raise exceptions.ValidationException(f'Request body is not a valid JSON: {error}')
    if not isinstance(body, dict):
        raise exceptions.ValidationException('Request body must be a JSON object')
    return fix_values_from_ui(item=body)


def fix_values_from_ui(item):
    """
    Remove keys with empty or None values and transform float to Decimal
    """
    if item.get('_values_from_ui_strategy') == 'delete_empty':
        list_to_cleanup = ['', None]
    else:
        list_to_cleanup = [None]
    item = cleanup_dict(item, list_to_cleanup)
    item.pop('_values_from_ui_strategy', None)
    result = json.dumps(item)
    return json.loads(result, parse_float=Decimal)


def cleanup_dict(item: dict, list_of_values: list):
    """ Remove None fields in dict with. Supports one nesting.  """

    def sub_clean(sub_item):
        return {
            key: value
            for key, value in sub_item.items()
            if value not in list_of_values
        }

    clean = {}
    for k, v in item.items():
        if isinstance(v, dict):
            nested = sub_clean(v)
            if len(nested.keys()) > 0:
                clean[k] = nested
        elif v not in list_of_values:
            clean[k] = v
    return clean


def is_number(value) -> bool:
    return isinstance(value, (int, Decimal)) and not isinstance(value, bool)


def to_decimal(value, default=None):
    """Numbers coming from the UI or the db as int/float/str/Decimal, None if not convertible"""
    if isinstance(value, bool) or value is None:
        return default
    try:
        return Decimal(str(value))
    except ArithmeticError:
        return default


def money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def format_money(value: Decimal) -> str:
    return str(money(value))


def to_minor_units(value: Decimal) -> int:
    return int((Decimal(value) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def from_minor_units(value: int) -> Decimal:
    return money(Decimal(value) / 100)
