"""
Error taxonomy for Obolus.

Every failure the toolkit surfaces derives from ``ObolusError``.  Each
class carries an ``exit_code`` so the CLI can map failures to distinct
process exit statuses.
"""

from __future__ import annotations

from typing import Any, Optional


class ObolusError(RuntimeError):
    exit_code: int = 1


class UserRejected(ObolusError):
    """The user declined to authorize the wallet connection or signature."""

    exit_code = 2


class NoProviderFound(ObolusError):
    """No usable wallet provider is configured."""

    exit_code = 3


class AddressNotFound(ObolusError):
    """Nothing is deployed at the address, or its interface is unknown."""

    exit_code = 4


class NetworkUnavailable(ObolusError):
    """The node or explorer could not be reached at all."""

    exit_code = 5


class RpcError(ObolusError):
    """The node answered with an error, an unusable payload, or too late."""

    exit_code = 6

    def __init__(
        self,
        message: str,
        *,
        method: Optional[str] = None,
        code: Optional[int] = None,
        data: Any = None,
        http_status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.method = method
        self.code = code
        self.data = data
        self.http_status = http_status


class ContractRevert(ObolusError):
    """The contract rejected the call (e.g. transfer amount exceeds balance)."""

    exit_code = 7

    def __init__(
        self,
        message: str,
        *,
        reason: Optional[str] = None,
        data: Optional[str] = None,
        tx_hash: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.data = data
        self.tx_hash = tx_hash


class ValidationError(ObolusError, ValueError):
    """Malformed input: address, amount, ABI or configuration value."""

    exit_code = 8

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class NotConnected(ObolusError):
    """A signing operation was requested without an active session."""

    exit_code = 9


class OperationPending(ObolusError):
    """A transfer is already in flight for this session."""

    exit_code = 10


class SessionExpired(ObolusError):
    """The session ended before the response arrived; the result was dropped."""

    exit_code = 11


__all__ = [
    "ObolusError",
    "UserRejected",
    "NoProviderFound",
    "AddressNotFound",
    "NetworkUnavailable",
    "RpcError",
    "ContractRevert",
    "ValidationError",
    "NotConnected",
    "OperationPending",
    "SessionExpired",
]
