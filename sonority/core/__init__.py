"""
Core domain package.

This package contains the catalog logic that is independent of any transport
(HTTP, RPC envelopes, CLI): identifier parsing, pagination, identity
extraction and the library store.

Errors raised here carry a `fault_code` so the transport layer can translate
them into wire-level faults without knowing every exception type.
"""

from __future__ import annotations

__all__: list[str] = [
    "CoreError",
    "NotFoundError",
    "InvalidIdentifierError",
    "UnknownAlbumListTypeError",
    "InvalidWindowError",
    "UnauthorizedError",
    "UnsupportedRangeError",
    "UnsupportedOperationError",
]


class CoreError(Exception):
    """Base class for core-layer exceptions."""

    fault_code: str = "Server.Error"


class NotFoundError(CoreError):
    """Raised when a song/playlist/folder/directory cannot be found."""

    fault_code = "Client.ItemNotFound"


class InvalidIdentifierError(CoreError):
    """Raised when a catalog identifier cannot be parsed."""

    fault_code = "Client.InvalidIdentifier"


class UnknownAlbumListTypeError(CoreError):
    """Raised for an `albumlist:` identifier with an unrecognized type token."""

    fault_code = "Client.UnknownAlbumListType"


class InvalidWindowError(CoreError):
    """Raised when a pagination window has a negative index or count."""

    fault_code = "Client.InvalidWindow"


class UnauthorizedError(CoreError):
    """Raised when an operation needs an identity and none (or a wrong one) was given."""

    fault_code = "Client.LoginInvalid"


class UnsupportedRangeError(CoreError):
    """Raised by the streaming layer when a byte range cannot be served."""

    fault_code = "Client.RangeNotSatisfiable"


class UnsupportedOperationError(CoreError):
    """Raised for protocol operations that are recognized but not implemented."""

    fault_code = "Server.NotImplemented"
