class LedgerError(Exception):
    """Base class for every failure raised by the ledger core"""


class ValidationError(LedgerError):
    """Malformed or missing input (empty name, non-positive amount, ...)"""


class NotFoundError(LedgerError):
    """A referenced group or member id does not exist"""


class ConflictError(LedgerError):
    """The operation would break a referential invariant"""


class StorageError(Exception):
    """The persisted group collection could not be read or written"""
