"""
Observers for record changes coming from the table stream.

Handlers subscribe to a record type and get (old_record, new_record, event_name)
for every change of that type. Handlers run one after another; a failing
handler is logged and never stops the others.
"""
from collections import defaultdict
from typing import Callable, Dict, List

from chalicelib.utils.logger import logger, log_exception

_subscribers: Dict[str, List[Callable]] = defaultdict(list)


class Subscription:

    def __init__(self, record_type: str, callback: Callable):
        self.record_type = record_type
        self.callback = callback
        self.active = True

    def cancel(self):
        if self.active and self.callback in _subscribers[self.record_type]:
            _subscribers[self.record_type].remove(self.callback)
        self.active = False


def subscribe(record_type: str, callback: Callable) -> Subscription:
    _subscribers[record_type].append(callback)
    logger.debug(f'subscribe ::: {callback.__name__} subscribed to {record_type=}')
    return Subscription(record_type, callback)


def publish(record_type: str, record_old: dict, record_new: dict, event_name: str) -> int:
    """
    :return:
    number of handlers which processed the change without errors
    """
    succeeded = 0
    for callback in list(_subscribers.get(record_type, [])):
        try:
            callback(record_old, record_new, event_name)
            succeeded += 1
        except Exception as error:
            log_exception(error, msg=f'publish ::: {callback.__name__} failed for {record_type=} {event_name=}')
    return succeeded
