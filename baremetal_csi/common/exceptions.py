"""Exceptions raised by volume operations and the record store."""


class BaremetalCSIException(Exception):
    """Base exception for baremetal-csi errors.

    ``code`` names the gRPC status a protocol layer should report.
    """

    code = "UNKNOWN"

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class NotFound(BaremetalCSIException):
    """Record not found."""

    code = "NOT_FOUND"


class AlreadyExists(BaremetalCSIException):
    """Record already exists."""

    code = "ALREADY_EXISTS"


class ResourceExhausted(BaremetalCSIException):
    """No capacity satisfies the request."""

    code = "RESOURCE_EXHAUSTED"


class Internal(BaremetalCSIException):
    """Operation failed and needs a retry or manual intervention."""

    code = "INTERNAL"


class RecordStoreError(BaremetalCSIException):
    """Record store could not be read or written."""

    code = "INTERNAL"
