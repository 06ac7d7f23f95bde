"""
ubimkvol error taxonomy.

Every failure of an invocation is one of the exceptions below. None of them
is retried: they propagate to the pipeline, which records the failure kind
and ends the run.
"""

from __future__ import annotations


class UbiMkvolError(Exception):
    """Base class for all ubimkvol failures."""

    kind = "Error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


# ==================== Argument errors ====================


class InvalidArgument(UbiMkvolError):
    """Raised when an option value is not an acceptable number or path."""

    kind = "InvalidArgument"


class InvalidSize(UbiMkvolError):
    """Raised when a volume size or its unit suffix cannot be parsed."""

    kind = "InvalidSize"


class InvalidVolumeType(UbiMkvolError):
    """Raised when the volume type is neither static nor dynamic."""

    kind = "InvalidVolumeType"


class MissingArgument(UbiMkvolError):
    """Raised when an option requiring a value, or the device node, is absent."""

    kind = "MissingArgument"


class UnknownArgument(UbiMkvolError):
    """Raised for unrecognized options or stray arguments."""

    kind = "UnknownArgument"


# ==================== Validation errors ====================


class MissingSize(UbiMkvolError):
    """Raised when neither a size nor max-available-size was requested."""

    kind = "MissingSize"


class MissingName(UbiMkvolError):
    """Raised when no volume name was given."""

    kind = "MissingName"


class NameTooLong(UbiMkvolError):
    """Raised when the volume name exceeds the device name limit."""

    kind = "NameTooLong"


class DeviceNotFound(UbiMkvolError):
    """Raised when a legacy device number is beyond the known devices."""

    kind = "DeviceNotFound"


# ==================== Device manager errors ====================


class DeviceQueryFailed(UbiMkvolError):
    """Raised when the device manager cannot be opened or queried."""

    kind = "DeviceQueryFailed"


class CreateFailed(UbiMkvolError):
    """Raised when the device manager rejects the volume creation request."""

    kind = "CreateFailed"


class PostCreateQueryFailed(UbiMkvolError):
    """
    Raised when the created volume cannot be queried for the report.

    The volume already exists at this point and is left in place.
    """

    kind = "PostCreateQueryFailed"


class BackendError(Exception):
    """Failure reported by a device manager backend."""

    def __init__(self, message: str, errno: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.errno = errno

    def __str__(self) -> str:
        return self.message

    @classmethod
    def from_os_error(cls, action: str, exc: OSError) -> BackendError:
        """Wrap an OSError raised while talking to the device."""
        return cls(f"{action}: {exc.strerror or exc}", errno=exc.errno)
