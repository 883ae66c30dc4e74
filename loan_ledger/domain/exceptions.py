"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Caller input violates a precondition (missing field, bad amount, insufficient balance)"""

    pass


class NotFoundError(DomainException):
    """Referenced entity is absent or retired"""

    pass


class ConflictError(DomainException):
    """A per-application singleton (judgment, contract, balance) already exists"""

    pass


class UnprocessableEntityError(DomainException):
    """Operation is well-formed but not legal in the current lifecycle state"""

    pass


class TransactionTimeoutError(DomainException):
    """Ledger transaction exceeded its deadline and was rolled back"""

    pass
