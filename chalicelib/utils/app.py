import functools
from typing import Callable

from chalice import Response

from chalicelib.constants.status_codes import http400, http401, http403, http404, http500
from chalicelib.utils import exceptions
from chalicelib.utils.logger import logger, log_exception

# the first matching class wins, so subclasses go before their parents
exception_status_codes = (
    (exceptions.NotAuthorizedException, http401),
    (exceptions.AccessDenied, http403),
    (exceptions.RecordNotFound, http404),
    (exceptions.ValidationException, http400),
)


def error_response(error: Exception, msg: str = "", status_code: int = 400, *args, **kwargs):
    log_exception(error, status_code, msg, *args, **kwargs)
    body = {
        'error': str(error),
        'exception': error.__class__.__name__,
        "message": str(msg),
        'error_id': getattr(logger, 'current_request_id', None),
        'level': getattr(error, 'LEVEL', 'exception')
    }
    if getattr(error, 'details', None):
        body['details'] = error.details
    return Response(
        body=body,
        status_code=status_code,
        headers={'Content-Type': 'application/json'}
    )


def status_code_for(error: Exception) -> int:
    for exception_class, status_code in exception_status_codes:
        if isinstance(error, exception_class):
            return status_code
    return http500


def request_exception_handler(func: Callable):
    @functools.wraps(func)
    def result(*args, **kwargs):
        try:
            logger.info(f'Calling function {func.__name__}')
            return func(*args, **kwargs)
        except Exception as exception:
            return error_response(
                error=exception,
                msg=f'function = {func.__name__}, error = {exception}',
                status_code=status_code_for(exception))
    return result


def log_start_finish(func: Callable):
    @functools.wraps(func)
    def result(*args, **kwargs):
        logger.info(f'{func.__name__} ::: started')
        response = func(*args, **kwargs)
        logger.info(f'{func.__name__} ::: finished')
        return response
    return result


def best_effort(func: Callable):
    """
    For side effects which must never break the calling flow (emails, notifications, stream callbacks).
    Failures are logged and the wrapped call returns None
    """
    @functools.wraps(func)
    def result(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as exception:
            log_exception(exception, http500, f'{func.__name__} ::: best effort call failed')
            return None
    return result
