"""
PDTM - Exceptions.

All exceptions inherit from PDTMError. Malformed URLs and unknown signal
codes are never exceptions: they are recovered locally as absent evidence.
"""


class PDTMError(Exception):
    """Base exception for PDTM."""

    pass


class StorageError(PDTMError):
    """Raised when a storage backend read or write fails."""

    pass


class PolicyError(PDTMError):
    """Raised when a classification or management policy file is invalid."""

    pass


class QueueClosedError(PDTMError):
    """Raised when work is submitted to a closed update queue."""

    pass
