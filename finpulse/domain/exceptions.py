"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class NotFoundError(DomainException):
    """Referenced entity does not exist for this owner"""

    pass


class RateProviderError(DomainException):
    """Exchange rate provider failed, was rate limited, or sent a malformed response"""

    pass


class RateUnavailableError(DomainException):
    """Exchange rate provider has no data for the requested pair"""

    pass


class ValidationError(DomainException):
    """Entity or input data is malformed"""

    pass


class InvalidCurrencyError(ValidationError):
    """Currency code is not a 3-letter alphabetic code"""

    pass
