"""Custom exceptions for cuesync.

Every error carries a ``kind`` so callers can branch on the failure
without parsing messages. Media and channel errors are recovered into
explicit state by the component that owns them; they are only raised
from backends, transports and ``SyncChannel.publish``.
"""

from enum import Enum


class MediaErrorKind(str, Enum):
    """Why a media source could not be loaded."""

    FORMAT_UNSUPPORTED = "format_unsupported"
    NETWORK = "network"
    ABORTED = "aborted"
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"


class ChannelErrorKind(str, Enum):
    """Why the realtime channel refused or lost an operation."""

    NOT_CONNECTED = "not_connected"
    HANDSHAKE_TIMEOUT = "handshake_timeout"
    TRANSPORT_LOST = "transport_lost"


class ValidationErrorKind(str, Enum):
    """Which argument or transition was rejected."""

    INVALID_SEEK_TARGET = "invalid_seek_target"
    INVALID_PARENT = "invalid_parent"
    INVALID_TRANSITION = "invalid_transition"
    INVALID_VALUE = "invalid_value"


class CueSyncError(Exception):
    """Base exception for cuesync."""

    def __init__(self, kind: Enum, message: str | None = None) -> None:
        self.kind = kind
        super().__init__(message or kind.value)


class MediaError(CueSyncError):
    """Media metadata could not be acquired."""

    kind: MediaErrorKind


class ChannelError(CueSyncError):
    """Realtime channel operation failed."""

    kind: ChannelErrorKind


class ValidationError(CueSyncError):
    """An operation received an argument it cannot honor."""

    kind: ValidationErrorKind
