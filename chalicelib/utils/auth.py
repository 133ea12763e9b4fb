import functools
import os
from typing import Dict, Optional

import jwt
from chalice.app import Request

from chalicelib.constants import keys_structure
from chalicelib.constants.constants import ROLE_ADMIN
from chalicelib.utils import exceptions as utils_exceptions, db as utils_db
from chalicelib.utils.logger import log_request, logger, set_request_id


def cognito_idp_url() -> str:
    return f"https://cognito-idp.{os.environ['COGNITO_REGION']}.amazonaws.com/{os.environ['COGNITO_USER_POOL_ID']}"


@functools.lru_cache(maxsize=1)
def jwks_client() -> jwt.PyJWKClient:
    return jwt.PyJWKClient(f'{cognito_idp_url()}/.well-known/jwks.json')


def decode_token(token: str) -> Dict:
    """
    Validates a Cognito ID token and returns its claims
    """
    signing_key = jwks_client().get_signing_key_from_jwt(token)
    return jwt.decode(
        token,
        signing_key.key,
        algorithms=['RS256'],
        audience=os.environ['COGNITO_CLIENT_ID'],
        issuer=cognito_idp_url()
    )


def get_token(request: Request) -> Optional[str]:
    token = (request.headers or {}).get('authorization')
    if token and token.lower().startswith('bearer '):
        token = token[len('bearer '):]
    return token or None


def get_user_record(user_id) -> Optional[Dict]:
    try:
        return utils_db.get_db_item(
            partkey=keys_structure.users_pk,
            sortkey=keys_structure.users_sk.format(user_id=user_id)
        )
    except utils_exceptions.RecordNotFound:
        return None


def get_auth_result(request: Request) -> Dict:
    """
    Raise NotAuthorizedException if the request doesn't carry a valid token
    :return:
    dict with user_id, email, role of the requester
    """
    token = get_token(request)
    if not token:
        raise utils_exceptions.NotAuthorizedException('Authorization token is missing')
    try:
        claims = decode_token(token)
    except jwt.PyJWTError as error:
        raise utils_exceptions.NotAuthorizedException(f'Authorization token is not valid: {error}')

    user_id = claims['sub']
    # profile record may not exist yet right after sign up
    user_record = get_user_record(user_id) or {}
    if user_record.get('deleted'):
        raise utils_exceptions.NotAuthorizedException('User account was deleted')
    return {
        'user_id': user_id,
        'email': claims.get('email') or user_record.get('email'),
        'role': user_record.get('role'),
        'has_profile': bool(user_record)
    }


def get_optional_auth_result(request: Request) -> Optional[Dict]:
    try:
        return get_auth_result(request)
    except utils_exceptions.NotAuthorizedException as error:
        logger.info(f'get_optional_auth_result ::: anonymous request, {error}')
        return None


def _authenticate_request(request: Request):
    set_request_id(request)
    log_request(request)
    auth_result = get_auth_result(request)
    setattr(request, 'auth_result', auth_result)
    logger.info(f"authenticate ::: SUCCESS, user_id={auth_result['user_id']}, role={auth_result['role']}")
    return auth_result


def authenticate(func):
    """
    Wrapper for functions which require user's authentication, the request is the first argument
    """

    @functools.wraps(func)
    def result_auth(request, *args, **kwargs):
        _authenticate_request(request)
        return func(request, *args, **kwargs)

    return result_auth


def authenticate_class(func):
    """
    Wrapper for class methods which require user's authentication, the request goes after cls/self
    """

    @functools.wraps(func)
    def result_auth(instance, request, *args, **kwargs):
        auth_result = _authenticate_request(request)
        if not isinstance(instance, type):
            setattr(instance, 'auth_result', auth_result)
        return func(instance, request, *args, **kwargs)

    return result_auth


def admin_required(func):
    """
    Wrapper for admin console functions, the request is the first argument
    """

    @functools.wraps(func)
    def result_auth(request, *args, **kwargs):
        auth_result = _authenticate_request(request)
        if auth_result['role'] != ROLE_ADMIN:
            raise utils_exceptions.AccessDenied("You don't have permissions to access this resource")
        return func(request, *args, **kwargs)

    return result_auth
