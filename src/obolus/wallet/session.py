"""
Wallet session - the user's identity and signing capability.

A ``WalletProvider`` is the Python counterpart of a browser-injected
wallet: it holds the key, asks the user before exposing an account, and
signs on request.  ``WalletSession`` drives one provider through
connect/disconnect and hands out a ``Signer`` for the connected account.

There is no retry policy: a failed connect leaves nothing connected and
the caller decides whether to try again.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

from eth_account import Account
from eth_account.signers.local import LocalAccount

from ..errors import NoProviderFound, NotConnected, ObolusError, SessionExpired, UserRejected
from ..utils import checksum_address
from .eth import load_private_key

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER_VERSION = "v5"
SUPPORTED_VERSIONS = ("v4", "v5")

ApproveFn = Callable[[str], Union[bool, Awaitable[bool]]]


class WalletProvider(Protocol):
    name: str

    @property
    def selected_address(self) -> Optional[str]: ...

    async def enable(self, version: str = DEFAULT_PROVIDER_VERSION) -> list[str]: ...

    async def disconnect(self) -> None: ...

    def sign_transaction(self, tx: dict[str, Any]) -> str: ...


class LocalKeyProvider:
    """
    Provider backed by a locally held eth-account key.

    ``approve`` is asked once per ``enable``; returning False rejects the
    connection.  Without a callback the connection is approved.
    """

    name = "local-key"

    def __init__(self, account: LocalAccount, approve: Optional[ApproveFn] = None) -> None:
        self._account = account
        self._approve = approve
        self._enabled = False

    @classmethod
    def from_key(cls, private_key: str, approve: Optional[ApproveFn] = None) -> "LocalKeyProvider":
        return cls(Account.from_key(private_key), approve=approve)

    @property
    def selected_address(self) -> Optional[str]:
        return self._account.address if self._enabled else None

    async def enable(self, version: str = DEFAULT_PROVIDER_VERSION) -> list[str]:
        if version not in SUPPORTED_VERSIONS:
            raise NoProviderFound(f"{self.name} does not support wallet API {version}")
        if self._approve is not None:
            decision = self._approve(self._account.address)
            if inspect.isawaitable(decision):
                decision = await decision
            if not decision:
                raise UserRejected("Connection request rejected by the user")
        self._enabled = True
        return [self._account.address]

    async def disconnect(self) -> None:
        self._enabled = False

    def sign_transaction(self, tx: dict[str, Any]) -> str:
        if not self._enabled:
            raise NotConnected("Wallet is not connected")
        signed = self._account.sign_transaction(tx)
        return "0x" + bytes(signed.raw_transaction).hex()


def discover_provider(
    env_path: Optional[Path] = None,
    approve: Optional[ApproveFn] = None,
) -> LocalKeyProvider:
    """
    Find the configured wallet.

    Raises:
        NoProviderFound: If no key is configured, or the key is malformed
    """
    try:
        private_key = load_private_key(env_path)
    except (ValueError, FileNotFoundError) as exc:
        raise NoProviderFound(str(exc)) from exc
    try:
        return LocalKeyProvider.from_key(private_key, approve=approve)
    except (ValueError, TypeError) as exc:
        raise NoProviderFound(f"Configured PRIVATE_KEY is not a valid key: {exc}") from exc


@dataclass(frozen=True)
class Signer:
    """Signing capability for one connected account."""

    provider: WalletProvider
    address: str

    def sign_transaction(self, tx: dict[str, Any]) -> str:
        return self.provider.sign_transaction(tx)


@dataclass(frozen=True)
class Connection:
    address: str
    signer: Signer


class WalletSession:
    def __init__(
        self,
        discover: Optional[Callable[[], WalletProvider]] = None,
        version: str = DEFAULT_PROVIDER_VERSION,
    ) -> None:
        self._discover = discover or discover_provider
        self.version = version
        self.provider: Optional[WalletProvider] = None
        self._generation = 0

    async def connect(self) -> Connection:
        """
        Ask the provider to authorize this client.

        Raises:
            NoProviderFound: If no compatible provider is available
            UserRejected: If the user declines
            SessionExpired: If disconnect() ran while the provider was deciding
        """
        generation = self._generation
        provider = self.provider or self._discover()
        accounts = await provider.enable(self.version)
        if generation != self._generation:
            # a newer connection may share this provider; leave it enabled
            if provider is not self.provider:
                await self._revoke(provider)
            raise SessionExpired("Connection cancelled by disconnect")
        address = provider.selected_address or (accounts[0] if accounts else None)
        if not address:
            raise UserRejected("Wallet did not expose an account")
        address = checksum_address(address)
        self.provider = provider
        logger.info("wallet connected: %s via %s", address, provider.name)
        return Connection(address=address, signer=Signer(provider=provider, address=address))

    async def disconnect(self) -> Optional[ObolusError]:
        """
        Revoke the cached authorization.

        Idempotent.  A provider failure is returned, not raised; the session
        is dropped either way.
        """
        self._generation += 1
        provider, self.provider = self.provider, None
        if provider is None:
            return None
        error = await self._revoke(provider)
        if error is None:
            logger.info("wallet disconnected")
        return error

    async def _revoke(self, provider: WalletProvider) -> Optional[ObolusError]:
        try:
            await provider.disconnect()
        except ObolusError as exc:
            logger.warning("wallet disconnect reported an error: %s", exc)
            return exc
        return None
