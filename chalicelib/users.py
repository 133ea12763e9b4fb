import os
import re
import secrets
from datetime import datetime
from decimal import Decimal
from typing import Tuple, List, Dict, Optional

from boto3.dynamodb.conditions import Key
from chalice import Response
from pycognito import Cognito

from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import USER_ROLES, ROLE_USER, ROLE_ADMIN
from chalicelib.constants.status_codes import http200, http201
from chalicelib.utils import auth as utils_auth, app as utils_app, data as utils_data, db as utils_db, exceptions
from chalicelib.utils.logger import logger

EMAIL_REGEX = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
PHONE_REGEX = re.compile(r'^\+?\d{8,15}$')


def validate_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        raise exceptions.ValidationException('Name is required')
    return name.strip()


def validate_email(email) -> str:
    if not isinstance(email, str) or not EMAIL_REGEX.match(email.strip()):
        raise exceptions.ValidationException('Please enter a valid email address')
    return email.strip().lower()


def validate_phone(phone_number) -> str:
    if not isinstance(phone_number, str):
        raise exceptions.ValidationException('Please enter a valid phone number')
    phone_number = re.sub(r'[\s\-()]', '', phone_number)
    if not PHONE_REGEX.match(phone_number):
        raise exceptions.ValidationException('Please enter a valid phone number')
    return phone_number


def cognito_client(username=None) -> Cognito:
    return Cognito(os.environ['COGNITO_USER_POOL_ID'], os.environ['COGNITO_CLIENT_ID'],
                   user_pool_region=os.environ.get('COGNITO_REGION'), username=username)


class User(EntityBase):
    pk = keys_structure.users_pk
    sk = keys_structure.users_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'role': lambda x: x in USER_ROLES,
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'email': lambda x: isinstance(x, str) and EMAIL_REGEX.match(x) is not None,
        'points': lambda x: isinstance(x, Decimal) and x >= 0,
        'deleted': lambda x: isinstance(x, bool),
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'name': lambda x: isinstance(x, str) and len(x.strip()) > 0,
        'phone_number': lambda x: isinstance(x, str) and PHONE_REGEX.match(x) is not None,
        'photo_url': lambda x: isinstance(x, str)
    }

    fields_allowed_to_delete = ['photo_url']

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.email: str = kwargs.get('email')
        self.name: str = kwargs.get('name')
        self.phone_number: str = kwargs.get('phone_number')
        self.role: str = kwargs.get('role') or ROLE_USER
        self.points: Decimal = utils_data.to_decimal(kwargs.get('points'), Decimal('0'))
        self.photo_url: str = kwargs.get('photo_url')
        self.deleted: bool = kwargs.get('deleted', False)
        self.date_created: str = kwargs.get('date_created') or datetime.now().isoformat(timespec='seconds')
        self.date_updated: str = kwargs.get('date_updated') or self.date_created
        self.record_type = 'user'

    @classmethod
    def init_by_id(cls, user_id):
        c = cls(id_=user_id)
        c.__init__(**c._get_db_item())
        return c

    @classmethod
    @utils_auth.authenticate_class
    def init_request_user(cls, request):
        logger.info("init_request_user ::: started")
        return cls.init_by_id(request.auth_result['user_id'])

    @classmethod
    @utils_auth.authenticate_class
    def init_request_create(cls, request):
        logger.info("init_request_create ::: started")
        auth_result = request.auth_result
        if auth_result['has_profile']:
            raise exceptions.ValidationException('Profile already exists')
        request_body = utils_data.parse_raw_body(request)
        return cls(
            id_=auth_result['user_id'],
            email=validate_email(auth_result['email'] or request_body.get('email')),
            name=validate_name(request_body.get('name')),
            phone_number=validate_phone(request_body['phone_number']) if request_body.get('phone_number') else None,
            role=ROLE_USER,
            points=Decimal('0')
        )

    @classmethod
    @utils_auth.authenticate_class
    def init_request_update(cls, request):
        logger.info("init_request_update ::: started")
        user = cls.init_by_id(request.auth_result['user_id'])
        request_body = utils_data.parse_raw_body(request)
        if 'name' in request_body:
            user.name = validate_name(request_body['name'])
        if 'phone_number' in request_body:
            user.phone_number = validate_phone(request_body['phone_number'])
        if 'photo_url' in request_body:
            user.photo_url = request_body['photo_url'] if isinstance(request_body['photo_url'], str) else ''
        return user

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(user_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'email': self.email,
            'name': self.name,
            'phone_number': self.phone_number,
            'role': self.role,
            'points': self.points,
            'photo_url': self.photo_url,
            'deleted': self.deleted,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }


def get_profile(user_id) -> Optional[User]:
    try:
        return User.init_by_id(user_id)
    except exceptions.RecordNotFound:
        return None


def save_checkout_profile(user_id, email, name, phone_number, points_earned=Decimal('0')) -> User:
    """Profile fields entered at checkout overwrite the saved ones, the profile is created on the first order"""
    user = get_profile(user_id)
    if user is None:
        user = User(id_=user_id, email=email, name=name, phone_number=phone_number,
                    role=ROLE_USER, points=points_earned)
        user._create_db_record()
        return user
    user.email, user.name, user.phone_number = email, name, phone_number
    user.points = user.points + points_earned
    user._update_db_record()
    return user


def get_all_users() -> List[User]:
    return [User(**record) for record in utils_db.query_items_paged(Key('partkey').eq(keys_structure.users_pk))]


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_create_profile(request) -> Response:
    user = User.init_request_create(request)
    user._create_db_record()
    return Response(status_code=http201, body=user.to_ui())


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_get_user(request) -> Response:
    return Response(status_code=http200, body=User.init_request_user(request).to_ui())


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_update_user(request) -> Response:
    user = User.init_request_update(request)
    user._update_db_record()
    return Response(status_code=http200, body={'message': 'User was successfully updated', 'id': user.id_})


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.admin_required
def endpoint_admin_get_users(request) -> Response:
    users: List[Dict] = [user.to_ui() for user in get_all_users() if not user.deleted]
    return Response(status_code=http200, body={
        'users': [user for user in users if user['role'] == ROLE_USER],
        'admins': [user for user in users if user['role'] == ROLE_ADMIN]
    })


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.admin_required
def endpoint_admin_create_user(request) -> Response:
    request_body = utils_data.parse_raw_body(request)
    email = validate_email(request_body.get('email'))
    name = validate_name(request_body.get('name'))
    phone_number = validate_phone(request_body['phone_number']) if request_body.get('phone_number') else None
    role = request_body.get('role') or ROLE_USER
    if role not in USER_ROLES:
        raise exceptions.ValidationException(f'Role must be one of {", ".join(USER_ROLES)}')

    cognito_resp = cognito_client().admin_create_user(
        email,
        temporary_password=secrets.token_urlsafe(12),
        email=email,
        name=name
    )
    attributes = {attr['Name']: attr['Value'] for attr in cognito_resp['User'].get('Attributes', [])}
    user = User(id_=attributes.get('sub') or cognito_resp['User']['Username'], email=email, name=name,
                phone_number=phone_number, role=role, points=Decimal('0'))
    user._create_db_record()
    logger.info(f'endpoint_admin_create_user ::: {role} {user.id_} created')
    return Response(status_code=http201, body=user.to_ui())


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.admin_required
def endpoint_admin_delete_user(request, user_id) -> Response:
    if user_id == request.auth_result['user_id']:
        raise exceptions.ValidationException('You can not delete your own account')
    user = User.init_by_id(user_id)
    user.deleted = True
    user._update_db_record()
    return Response(status_code=http200, body={'message': 'User was deleted successfully', 'id': user_id})


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.admin_required
def endpoint_admin_reset_password(request, user_id) -> Response:
    user = User.init_by_id(user_id)
    if user.deleted:
        raise exceptions.RecordNotFound(f'User {user_id} not found')
    cognito_client(username=user.email).initiate_forgot_password()
    logger.info(f'endpoint_admin_reset_password ::: reset code sent to user {user_id}')
    return Response(status_code=http200, body={'message': f'Password reset email was sent to {user.email}'})
