"""
Sales analytics for the admin dashboard.

Everything here is recomputed from the order records on each request,
nothing is cached or stored.
"""
import calendar
from collections import defaultdict
from datetime import datetime, timedelta, time
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from chalice import Response

from chalicelib.constants.constants import TIMEFRAMES
from chalicelib.constants.status_codes import http200
from chalicelib.orders import get_all_orders
from chalicelib.utils import auth as utils_auth, app as utils_app, data as utils_data, exceptions
from chalicelib.utils.logger import logger

DAILY, WEEKLY, MONTHLY = TIMEFRAMES
PERCENT = Decimal('0.01')


def time_window(timeframe: str, now: datetime) -> Tuple[datetime, datetime]:
    """
    Inclusive bounds of the period `now` falls in: the day, the ISO week (Monday to Sunday) or the month
    """
    today = now.date()
    if timeframe == DAILY:
        start, end = today, today
    elif timeframe == WEEKLY:
        start = today - timedelta(days=today.weekday())
        end = start + timedelta(days=6)
    elif timeframe == MONTHLY:
        start = today.replace(day=1)
        end = today.replace(day=calendar.monthrange(today.year, today.month)[1])
    else:
        raise exceptions.ValidationException(f'timeframe must be one of {", ".join(TIMEFRAMES)}')
    return datetime.combine(start, time.min, now.tzinfo), datetime.combine(end, time.max, now.tzinfo)


def parse_timestamp(value, now: datetime) -> Optional[datetime]:
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value))
        except (TypeError, ValueError):
            return None
    if parsed.tzinfo is not None and now.tzinfo is None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    elif parsed.tzinfo is None and now.tzinfo is not None:
        parsed = parsed.replace(tzinfo=now.tzinfo)
    return parsed


def line_bucket(created: datetime, timeframe: str) -> str:
    if timeframe == DAILY:
        return created.strftime('%H:00')
    return created.strftime('%Y-%m-%d')


def aggregate_sales(orders: Iterable[Dict], timeframe: str, now: datetime, top: Optional[int] = None) -> Dict:
    start, end = time_window(timeframe, now)

    quantities: Dict[str, int] = defaultdict(int)
    revenue: Dict[str, Decimal] = defaultdict(Decimal)
    total_sales = Decimal('0')
    for order in orders:
        created = parse_timestamp(order.get('date_created'), now)
        if created is None:
            logger.warning(f"aggregate_sales ::: skipping order {order.get('id_')} with broken date_created")
            continue
        if not start <= created <= end:
            continue
        order_total = utils_data.to_decimal(order.get('total'), Decimal('0'))
        total_sales += order_total
        revenue[line_bucket(created, timeframe)] += order_total
        for item in order.get('items') or []:
            quantities[item.get('name') or 'Unknown'] += int(utils_data.to_decimal(item.get('quantity'), Decimal('0')))

    bar = [{'name': name, 'quantity': quantity}
           for name, quantity in sorted(quantities.items(), key=lambda pair: (-pair[1], pair[0]))]
    if top is not None:
        bar = bar[:top]

    items_sold = sum(quantities.values())
    pie = [{
        'name': name,
        'value': quantity,
        'percent': (Decimal(quantity) * 100 / items_sold).quantize(PERCENT) if items_sold else Decimal('0.00')
    } for name, quantity in sorted(quantities.items(), key=lambda pair: (-pair[1], pair[0]))]

    line = [{'date': bucket, 'total': utils_data.money(total)} for bucket, total in sorted(revenue.items())]

    return {
        'bar': bar,
        'line': line,
        'pie': pie,
        'total_sales': utils_data.money(total_sales),
        'items_sold': items_sold
    }


def parse_top(value) -> Optional[int]:
    if value in (None, ''):
        return None
    if not str(value).isdigit() or int(value) < 1:
        raise exceptions.ValidationException('top must be a positive integer')
    return int(value)


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.admin_required
def endpoint_get_analytics(request) -> Response:
    qp = request.query_params or {}
    timeframe = qp.get('timeframe') or DAILY
    top = parse_top(qp.get('top'))
    orders: List[Dict] = [order._to_dict() for order in get_all_orders()]
    result = aggregate_sales(orders, timeframe, datetime.now(), top=top)
    logger.info(f"endpoint_get_analytics ::: {timeframe=} orders={len(orders)} total_sales={result['total_sales']}")
    return Response(status_code=http200, body={'timeframe': timeframe, **result})
