from datetime import datetime
from typing import Tuple, List
from uuid import uuid4

from boto3.dynamodb.conditions import Key
from chalice import Response

from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import INQUIRY_PENDING, INQUIRY_RESPONDED, EMAIL_FROM
from chalicelib.constants.status_codes import http200, http201
from chalicelib.users import validate_email, validate_phone
from chalicelib.utils import auth as utils_auth, \
    app as utils_app, \
    data as utils_data, \
    db as utils_db, \
    notifications as utils_notifications, \
    exceptions, \
    email_templates
from chalicelib.utils.logger import logger


def _non_empty_str(x):
    return isinstance(x, str) and len(x.strip()) > 0


class Inquiry(EntityBase):
    """
    Contact form message. Pending and responded inquiries live in separate collections,
    replying moves the record from one to the other
    """

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'name': _non_empty_str,
        'email': lambda x: isinstance(x, str),
        'phone': lambda x: isinstance(x, str),
        'reason': _non_empty_str,
        'message': _non_empty_str,
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'status': lambda x: x in (INQUIRY_PENDING, INQUIRY_RESPONDED),
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'datetime': lambda x: isinstance(x, str),
        'reply_subject': _non_empty_str,
        'reply_message': _non_empty_str,
        'replied_at': lambda x: isinstance(x, str),
        'replied_by': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)
        self.name: str = kwargs.get('name')
        self.email: str = kwargs.get('email')
        self.phone: str = kwargs.get('phone')
        self.reason: str = kwargs.get('reason')
        self.message: str = kwargs.get('message')
        self.datetime: str = kwargs.get('datetime') or None
        self.status: str = kwargs.get('status') or INQUIRY_PENDING
        self.reply_subject: str = kwargs.get('reply_subject')
        self.reply_message: str = kwargs.get('reply_message')
        self.replied_at: str = kwargs.get('replied_at')
        self.replied_by: str = kwargs.get('replied_by')
        self.date_created: str = kwargs.get('date_created') or datetime.now().isoformat(timespec='seconds')
        self.date_updated: str = kwargs.get('date_updated') or self.date_created
        self.record_type = 'inquiry'

    @classmethod
    def init_get_pending(cls, inquiry_id):
        c = cls(id_=inquiry_id)
        c.__init__(**c._get_db_item())
        return c

    @classmethod
    def init_request_create(cls, request):
        request_body = utils_data.parse_raw_body(request)
        for field in ('name', 'email', 'phone', 'reason', 'message'):
            if not _non_empty_str(request_body.get(field)):
                raise exceptions.ValidationException(f'{field} is required')
        return cls(
            id_=str(uuid4()),
            name=request_body['name'].strip(),
            email=validate_email(request_body['email']),
            phone=validate_phone(request_body['phone']),
            reason=request_body['reason'].strip(),
            message=request_body['message'].strip(),
            datetime=request_body.get('datetime') if isinstance(request_body.get('datetime'), str) else None,
            status=INQUIRY_PENDING
        )

    def _get_pk_sk(self) -> Tuple[str, str]:
        if self.status == INQUIRY_RESPONDED:
            return keys_structure.responded_inquiries_pk, keys_structure.responded_inquiries_sk.format(
                inquiry_id=self.id_)
        return keys_structure.inquiries_pk, keys_structure.inquiries_sk.format(inquiry_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'reason': self.reason,
            'message': self.message,
            'datetime': self.datetime,
            'status': self.status,
            'reply_subject': self.reply_subject,
            'reply_message': self.reply_message,
            'replied_at': self.replied_at,
            'replied_by': self.replied_by,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }

    def reply(self, subject, message, replied_by):
        """
        Email goes out first, the record is moved to the responded collection only after it was accepted
        """
        if not _non_empty_str(subject) or not _non_empty_str(message):
            raise exceptions.ValidationException('Please fill all fields before sending')
        try:
            utils_notifications.send_email_ses([self.email], EMAIL_FROM, subject.strip(),
                                               email_templates.get_inquiry_reply_message(self._to_dict(), message))
        except Exception as error:
            raise exceptions.EmailDeliveryError(f'Failed to send email: {error}') from error

        pending_key = self._get_pk_sk()
        self.status = INQUIRY_RESPONDED
        self.reply_subject, self.reply_message = subject.strip(), message.strip()
        self.replied_at = datetime.now().isoformat(timespec='seconds')
        self.replied_by = replied_by
        self.date_updated = self.replied_at
        self._create_db_record()
        utils_db.delete_db_record({'partkey': pending_key[0], 'sortkey': pending_key[1]})
        logger.info(f'Inquiry.reply ::: inquiry {self.id_} moved to responded')


def get_inquiries(partkey) -> List[Inquiry]:
    records = utils_db.query_items_paged(Key('partkey').eq(partkey))
    return sorted([Inquiry(**record) for record in records], key=lambda i: i.date_created, reverse=True)


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_create_inquiry(request) -> Response:
    inquiry = Inquiry.init_request_create(request)
    inquiry._create_db_record()
    return Response(status_code=http201, body={'message': 'Inquiry submitted successfully!', 'id': inquiry.id_})


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.admin_required
def endpoint_admin_get_inquiries(request) -> Response:
    inquiries = get_inquiries(keys_structure.inquiries_pk)
    return Response(status_code=http200, body={'inquiries': [inquiry.to_ui() for inquiry in inquiries]})


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.admin_required
def endpoint_admin_get_responded_inquiries(request) -> Response:
    inquiries = get_inquiries(keys_structure.responded_inquiries_pk)
    return Response(status_code=http200, body={'inquiries': [inquiry.to_ui() for inquiry in inquiries]})


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.admin_required
def endpoint_admin_reply_inquiry(request, inquiry_id) -> Response:
    request_body = utils_data.parse_raw_body(request)
    inquiry = Inquiry.init_get_pending(inquiry_id)
    inquiry.reply(request_body.get('subject'), request_body.get('message'), request.auth_result['user_id'])
    return Response(status_code=http200, body={
        'message': 'Reply sent and moved to Responded Inquiries!',
        'inquiry': inquiry.to_ui()
    })
