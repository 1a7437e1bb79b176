class GophermartError(Exception):
    """Base class for domain errors raised by the services."""


class InvalidOrderNumberError(GophermartError):
    """Raised when an order number fails the Luhn checksum."""


class EmptyOrderNumberError(GophermartError):
    """Raised when an upload carries no order number at all."""


class OrderOwnedByAnotherUserError(GophermartError):
    """Raised when an order number was already uploaded by a different user."""


class AccountNotFoundError(GophermartError):
    """Raised when a user has no account row."""


class AccountAlreadyExistsError(GophermartError):
    """Raised when opening an account for a user that already has one."""


class InsufficientFundsError(GophermartError):
    """Raised when a withdrawal would drop the balance below zero."""


class InvalidWithdrawalAmountError(GophermartError):
    """Raised when a withdrawal sum is not a positive amount in whole hundredths."""
