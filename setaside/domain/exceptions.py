"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidRecurrenceError(DomainException):
    """Recurrence configuration is malformed (e.g. custom frequency without frequency_days)"""

    pass


class ObligationNotFoundError(DomainException):
    """Obligation does not exist or belongs to another user"""

    pass


class InvalidOverrideError(DomainException):
    """What-if override cannot be applied to the current obligation set"""

    pass


class ConcurrentUpdateError(DomainException):
    """Obligation changed underneath a what-if commit"""

    pass
