"""Custom errors for DEMAND+."""


class DemandPlusError(Exception):
    """Base error for DEMAND+ failures."""


class InvalidBackupError(DemandPlusError, ValueError):
    """Raised when a backup document does not have the expected shape."""


class PermissionDeniedError(DemandPlusError):
    """Raised when a read-only role attempts a mutation."""


class ClearConfirmationError(DemandPlusError):
    """Raised when clearing the database without the confirmation phrase."""


class RecordNotFoundError(DemandPlusError, LookupError):
    """Raised when an operation targets an id that does not exist."""
