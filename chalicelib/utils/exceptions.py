__all__ = ["NotAuthorizedException", "AccessDenied", "RecordNotFound", "NumberOfRetriesExceeded",
           "MandatoryFieldsAreNotFilled", "ValidationException", "AuthorizationException", "InvalidPhoneNumber",
           "SomeItemsAreNotAvailable", "OrderNotFound", "InvalidStatusTransition", "ConcurrentModification",
           "PaymentGatewayError", "AssistantError", "ConfigurationError", "RecordAlreadyExists",
           "AssetFetchError"]


class NotAuthorizedException(Exception):
    pass


# Generic Exceptions
class AccessDenied(Exception):
    pass


class MandatoryFieldsAreNotFilled(Exception):
    pass


class ConfigurationError(Exception):
    pass


# DynamoDB exceptions
class RecordNotFound(Exception):
    LEVEL = 'warning'


class RecordAlreadyExists(Exception):
    LEVEL = 'warning'


class ConcurrentModification(Exception):
    """Conditional write lost against a concurrent writer"""
    LEVEL = 'warning'


# DB Performance Exception
class NumberOfRetriesExceeded(Exception):
    pass


# Validations exceptions
class ValidationException(Exception):
    LEVEL = 'warning'


class InvalidPhoneNumber(ValidationException):
    pass


class InvalidStatusTransition(ValidationException):
    pass


class AuthorizationException(Exception):
    pass


class SomeItemsAreNotAvailable(ValidationException):
    pass


class OrderNotFound(RecordNotFound):
    pass


# Third party exceptions
class PaymentGatewayError(Exception):
    pass


class AssistantError(Exception):
    pass


class AssetFetchError(Exception):
    pass
