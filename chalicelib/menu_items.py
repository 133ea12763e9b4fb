from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import List, Dict, Tuple, Optional
from uuid import uuid4

from boto3.dynamodb.conditions import Key
from chalice import Response

from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.status_codes import http200, http201
from chalicelib.utils import auth as utils_auth, data as utils_data, db as utils_db, app as utils_app
from chalicelib.utils.logger import logger

ALL_CATEGORIES = 'All'
NUTRITION_FACTS = ('calories', 'fat', 'protein')


def _clean_nutrition(nutrition) -> Optional[Dict]:
    if not isinstance(nutrition, dict):
        return None
    cleaned = {key: utils_data.to_decimal(nutrition.get(key)) for key in NUTRITION_FACTS}
    cleaned = {key: value for key, value in cleaned.items() if value is not None}
    return cleaned or None


class MenuItem(EntityBase):
    pk = keys_structure.menu_items_pk
    sk = keys_structure.menu_items_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'name': lambda x: isinstance(x, str) and len(x.strip()) > 0,
        'price': lambda x: isinstance(x, Decimal) and x > 0,
        'description': lambda x: isinstance(x, str),
        'category': lambda x: isinstance(x, str) and len(x.strip()) > 0,
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'ingredients': lambda x: isinstance(x, list) and all(isinstance(i, str) for i in x),
        'nutrition': lambda x: isinstance(x, dict),
        'image': lambda x: isinstance(x, str),
        'created_by': lambda x: isinstance(x, str),
        'updated_by': lambda x: isinstance(x, str)
    }

    fields_allowed_to_delete = ['ingredients', 'image']

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        price = utils_data.to_decimal(kwargs.get('price'))
        self.name: str = kwargs.get('name')
        self.price: Decimal = utils_data.money(price) if price is not None else None
        self.description: str = kwargs.get('description')
        self.category: str = kwargs.get('category')
        self.ingredients: List[str] = kwargs.get('ingredients')
        self.nutrition: Dict = _clean_nutrition(kwargs.get('nutrition'))
        self.image: str = kwargs.get('image')
        self.created_by: str = kwargs.get('created_by')
        self.updated_by: str = kwargs.get('updated_by')
        self.date_created: str = kwargs.get('date_created') or datetime.now().isoformat(timespec="seconds")
        self.date_updated: str = kwargs.get('date_updated') or datetime.now().isoformat(timespec="seconds")
        self.record_type = 'menu_item'

    @classmethod
    def init_get_by_id(cls, menu_item_id):
        logger.info(f"init_get_by_id ::: started {menu_item_id=}")
        c = cls(id_=menu_item_id)
        c.__init__(**c._get_db_item())
        return c

    @classmethod
    def init_request_create_update(cls, request, menu_item_id=None):
        logger.info("init_request_create_update ::: started")
        request_body = utils_data.parse_raw_body(request)
        request_body.pop('id', None)
        user_id = request.auth_result['user_id']
        if menu_item_id is None:
            return cls(id_=str(uuid4()), created_by=user_id, updated_by=user_id, **request_body)
        request_body.pop('date_created', None)
        return cls(id_=menu_item_id, updated_by=user_id, **request_body)

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(menu_item_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'name': self.name,
            'price': self.price,
            'description': self.description,
            'category': self.category,
            'ingredients': self.ingredients,
            'nutrition': self.nutrition,
            'image': self.image,
            'created_by': self.created_by,
            'updated_by': self.updated_by,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }

    def to_cart_snapshot(self) -> Dict:
        """Copy of the fields a cart line keeps, decoupled from later menu edits"""
        return {
            'id': self.id_,
            'name': self.name,
            'price': self.price,
            'description': self.description,
            'category': self.category,
            'image': self.image or ''
        }


def get_all_menu_items() -> List[MenuItem]:
    records = utils_db.query_items_paged(Key('partkey').eq(keys_structure.menu_items_pk))
    items = [MenuItem(**record) for record in records]
    return sorted(items, key=lambda item: ((item.category or '').lower(), (item.name or '').lower()))


def filter_menu_items(items: List[MenuItem], search: Optional[str] = None, category: Optional[str] = None,
                      search_fields=('name',)) -> List[MenuItem]:
    search = (search or '').strip().lower()
    result = []
    for item in items:
        if category and category != ALL_CATEGORIES and item.category != category:
            continue
        if search and not any(search in (getattr(item, field) or '').lower() for field in search_fields):
            continue
        result.append(item)
    return result


def get_categories(items: List[MenuItem]) -> List[str]:
    return [ALL_CATEGORIES, *OrderedDict.fromkeys(item.category for item in items if item.category)]


def group_by_category(items: List[MenuItem]) -> Dict[str, List[Dict]]:
    grouped = OrderedDict()
    for item in items:
        grouped.setdefault(item.category, []).append(item.to_ui())
    return grouped


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_get_menu_items(request) -> Response:
    qp = request.query_params or {}
    all_items = get_all_menu_items()
    items = filter_menu_items(all_items, search=qp.get('search'), category=qp.get('category'))
    logger.info(f"endpoint_get_menu_items ::: returning menu items={[item.id_ for item in items]}")
    return Response(status_code=http200, body={
        'items': [item.to_ui() for item in items],
        'categories': get_categories(all_items),
        'grouped': group_by_category(items)
    })


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_get_menu_item(request, menu_item_id) -> Response:
    return Response(status_code=http200, body=MenuItem.init_get_by_id(menu_item_id).to_ui())


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.admin_required
def endpoint_admin_get_menu_items(request) -> Response:
    qp = request.query_params or {}
    items = filter_menu_items(get_all_menu_items(), search=qp.get('search'),
                              search_fields=('name', 'category', 'description'))
    return Response(status_code=http200, body={'items': [item.to_ui() for item in items]})


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.admin_required
def endpoint_create_menu_item(request) -> Response:
    menu_item = MenuItem.init_request_create_update(request)
    menu_item._create_db_record()
    return Response(status_code=http201, body={'message': 'Menu item successfully created', 'id': menu_item.id_})


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.admin_required
def endpoint_update_menu_item(request, menu_item_id) -> Response:
    MenuItem.init_get_by_id(menu_item_id)
    menu_item = MenuItem.init_request_create_update(request, menu_item_id=menu_item_id)
    menu_item._update_db_record()
    return Response(status_code=http200, body={'message': 'Menu item was successfully updated', 'id': menu_item.id_})


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.admin_required
def endpoint_delete_menu_item(request, menu_item_id) -> Response:
    menu_item = MenuItem.init_get_by_id(menu_item_id)
    menu_item._delete_db_record()
    return Response(status_code=http200, body={'message': 'Menu item was successfully deleted', 'id': menu_item.id_})
