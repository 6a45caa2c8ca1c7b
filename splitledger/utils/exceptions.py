"""
Errors raised by the balance engine.

The engine never touches storage, so these describe problems with the
snapshot or arguments it was handed. The HTTP layer maps them to status
codes in splitledger.main.
"""


class LedgerError(Exception):
    """Base class for every balance engine error"""


class InvalidArgument(LedgerError, ValueError):
    """Self-referential query, non-positive amount or empty participant set"""


class InvalidAmount(InvalidArgument):
    pass


class SelfReference(InvalidArgument):
    pass


class EmptyGroup(InvalidArgument):
    pass


class NotFound(LedgerError, LookupError):
    """A referenced user, group, expense or settlement is not in the snapshot"""


class Unauthorized(LedgerError, PermissionError):
    pass


class Inconsistent(LedgerError, ValueError):
    """Split amounts or percentages do not add up within tolerance"""
