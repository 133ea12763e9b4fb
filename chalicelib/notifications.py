from datetime import datetime
from typing import Tuple, List, Dict
from uuid import uuid4

from boto3.dynamodb.conditions import Key, Attr
from chalice import Response

from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.status_codes import http200
from chalicelib.utils import auth as utils_auth, app as utils_app, db as utils_db, exceptions
from chalicelib.utils.logger import logger


class Notification(EntityBase):
    pk = keys_structure.notifications_pk
    sk = keys_structure.notifications_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'user_id': lambda x: isinstance(x, str),
        'message': lambda x: isinstance(x, str),
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'read': lambda x: isinstance(x, bool),
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'item_id': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, user_id, **kwargs):
        EntityBase.__init__(self, id_)
        self.user_id: str = user_id
        self.message: str = kwargs.get('message')
        self.item_id: str = kwargs.get('item_id')
        self.read: bool = kwargs.get('read', False)
        self.date_created: str = kwargs.get('date_created') or datetime.now().isoformat(timespec='seconds')
        self.date_updated: str = kwargs.get('date_updated') or self.date_created
        self.record_type = 'notification'

    @classmethod
    def create(cls, user_id, message, item_id=None):
        notification = cls(id_=str(uuid4()), user_id=user_id, message=message, item_id=item_id)
        notification._create_db_record()
        return notification

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk.format(user_id=self.user_id), \
            self.sk.format(date_created=self.date_created, notification_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'user_id': self.user_id,
            'message': self.message,
            'item_id': self.item_id,
            'read': self.read,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }


def get_user_notifications(user_id) -> List[Notification]:
    records = utils_db.query_items_paged(
        Key('partkey').eq(keys_structure.notifications_pk.format(user_id=user_id)),
        scan_forward=False
    )
    return [Notification(**record) for record in records]


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_get_notifications(request) -> Response:
    notifications: List[Dict] = [n.to_ui() for n in get_user_notifications(request.auth_result['user_id'])]
    return Response(status_code=http200, body={
        'notifications': notifications,
        'unread': len([n for n in notifications if not n['read']])
    })


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_mark_notification_read(request, notification_id) -> Response:
    user_id = request.auth_result['user_id']
    records = utils_db.query_items_paged(
        Key('partkey').eq(keys_structure.notifications_pk.format(user_id=user_id)),
        filter_expression=Attr('id_').eq(notification_id)
    )
    if not records:
        raise exceptions.RecordNotFound(f'Notification {notification_id} not found')
    notification = Notification(**records[0])
    notification.read = True
    notification._update_db_record()
    logger.info(f'endpoint_mark_notification_read ::: {notification_id=} marked as read')
    return Response(status_code=http200, body=notification.to_ui())
