__all__ = ["NotAuthorizedException", "AccessDenied", "RecordNotFound", "NumberOfRetriesExceeded",
           "ValidationException", "MissingClientId", "EmptyCart", "PaymentError", "OrderAlreadyCompleted",
           "EmailDeliveryError"]


class NotAuthorizedException(Exception):
    LEVEL = 'warning'


# Generic Exceptions
class AccessDenied(Exception):
    LEVEL = 'warning'


# DynamoDB exceptions
class RecordNotFound(Exception):
    LEVEL = 'warning'


# DB Performance Exception
class NumberOfRetriesExceeded(Exception):
    pass


# Validations exceptions
class ValidationException(Exception):
    LEVEL = 'warning'


class MissingClientId(ValidationException):
    pass


class EmptyCart(ValidationException):
    pass


class OrderAlreadyCompleted(ValidationException):
    pass


# Third party exceptions
class PaymentError(Exception):
    def __init__(self, message, details=None, code=None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.code = code


class EmailDeliveryError(Exception):
    pass
