from django.core.exceptions import ValidationError


class LedgerError(Exception):
    pass


class GenerationExhausted(LedgerError):
    """No free account identifier could be reserved for the requested day."""


class IdentifierImmutableViolation(ValidationError):
    def __init__(self, message='Account identifier cannot be changed once assigned.', **kwargs):
        super().__init__(message, **kwargs)


class OrphanedRecordError(LedgerError):
    """Financial rows reference an account identifier that no Student owns."""

    def __init__(self, message, *, table='', account_ids=()):
        super().__init__(message)
        self.table = table
        self.account_ids = tuple(account_ids)


class ConcurrentModificationError(LedgerError):
    """Lock or uniqueness conflict; retry the whole operation."""


class BackfillIncomplete(LedgerError):
    def __init__(self, message, *, remaining=None):
        super().__init__(message)
        self.remaining = dict(remaining or {})
