"""
Per-client application state: cart contents, pending order snapshot,
photo upload permission flag and UI theme.

The store talks to a storage port (get/set/remove by key) so it can run on
DynamoDB in the deployed app and on an in-memory dict in tests.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from chalice import Response

from chalicelib.constants import keys_structure
from chalicelib.constants.constants import CLIENT_ID_HEADER
from chalicelib.constants.status_codes import http200
from chalicelib.utils import app as utils_app, data as utils_data, db as utils_db, exceptions
from chalicelib.utils.logger import logger

CART_KEY = 'cart'
PENDING_ORDER_KEY = 'pending_order'
PHOTO_PERMISSION_KEY = 'photo_permission'
THEME_KEY = 'theme'

DEFAULT_THEME = 'default'


class DynamoStateStorage:
    """Storage port implementation keeping every key as its own record under the client's partition"""

    def __init__(self, client_id: str):
        self.client_id = client_id

    def _key(self, key):
        return {
            'partkey': keys_structure.app_state_pk.format(client_id=self.client_id),
            'sortkey': keys_structure.app_state_sk.format(key=key)
        }

    def get(self, key: str) -> Any:
        try:
            return utils_db.get_db_item(**self._key(key)).get('value')
        except exceptions.RecordNotFound:
            return None

    def set(self, key: str, value: Any) -> None:
        utils_db.put_db_record({
            **self._key(key),
            'record_type': 'app_state',
            'value': value,
            'date_updated': datetime.now().isoformat(timespec='seconds')
        })

    def remove(self, key: str) -> None:
        utils_db.delete_db_record(self._key(key))


class StateStore:

    def __init__(self, storage):
        self.storage = storage

    # cart
    def get_cart(self) -> List[Dict]:
        return self.storage.get(CART_KEY) or []

    def set_cart(self, lines: List[Dict]) -> None:
        self.storage.set(CART_KEY, lines)

    def clear_cart(self) -> None:
        self.storage.remove(CART_KEY)

    # pending order
    def get_pending_order(self) -> Optional[Dict]:
        return self.storage.get(PENDING_ORDER_KEY)

    def set_pending_order(self, pending_order: Dict) -> None:
        self.storage.set(PENDING_ORDER_KEY, pending_order)

    def clear_pending_order(self) -> None:
        self.storage.remove(PENDING_ORDER_KEY)

    # one-time photo upload permission
    def get_photo_permission(self) -> bool:
        return self.storage.get(PHOTO_PERMISSION_KEY) is True

    def grant_photo_permission(self) -> None:
        self.storage.set(PHOTO_PERMISSION_KEY, True)

    # theme
    def get_theme(self) -> str:
        return self.storage.get(THEME_KEY) or DEFAULT_THEME

    def set_theme(self, theme: str) -> None:
        if not isinstance(theme, str) or not theme.strip():
            raise exceptions.ValidationException('Theme must be a non-empty string')
        self.storage.set(THEME_KEY, theme.strip())

    def preferences(self) -> Dict:
        return {'theme': self.get_theme(), 'photo_permission': self.get_photo_permission()}


def get_client_id(request) -> str:
    client_id = (request.headers or {}).get(CLIENT_ID_HEADER)
    if not client_id:
        raise exceptions.MissingClientId(f'{CLIENT_ID_HEADER} header is required')
    return client_id


def init_request_state_store(request) -> StateStore:
    return StateStore(DynamoStateStorage(get_client_id(request)))


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_get_preferences(request) -> Response:
    return Response(status_code=http200, body=init_request_state_store(request).preferences())


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_update_preferences(request) -> Response:
    state_store = init_request_state_store(request)
    request_body = utils_data.parse_raw_body(request)
    if 'theme' in request_body:
        state_store.set_theme(request_body['theme'])
    if request_body.get('photo_permission') is True:
        state_store.grant_photo_permission()
    logger.info(f"endpoint_update_preferences ::: preferences updated {request_body=}")
    return Response(status_code=http200, body=state_store.preferences())
