"""
Interaction controller - the state machine behind every front end.

Owns the session and display state and sequences each user action:
connect wallet → resolve interface → bind contract → invoke → update
display.  Every operation is a coroutine returning an ``OperationResult``;
errors are caught here, at the operation boundary, and handed to the
presentation layer instead of being raised.

States::

    DISCONNECTED --connect()--> CONNECTING --ok--> CONNECTED
                                           --error--> DISCONNECTED
    CONNECTED --disconnect()--> DISCONNECTED

Concurrency rules (single asyncio loop):
- at most one transfer in flight per session; the flag is set before the
  first await, so a second submit never reaches the network
- reads may overlap each other and an in-flight transfer
- every completion compares the session epoch captured at start; results
  that arrive after a disconnect are dropped (SessionExpired)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

from .chain.abi import ERC20_ABI, ERC20_REQUIRED, MethodTable
from .chain.binding import ContractBinding, Submission, bind
from .chain.interface import InterfaceSource, StaticSource, resolve_interface
from .chain.rpc import RpcClient
from .errors import (
    NotConnected,
    ObolusError,
    OperationPending,
    SessionExpired,
    ValidationError,
)
from .schema.schemas import SchemaRegistry
from .utils import checksum_address, format_units, validate_amount
from .wallet.session import Connection, Signer, WalletSession

logger = logging.getLogger(__name__)


class Status(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass
class SessionState:
    connected: bool = False
    address: Optional[str] = None
    signer: Optional[Signer] = None
    epoch: int = 0

    def establish(self, connection: Connection) -> None:
        self.epoch += 1
        self.connected = True
        self.address = connection.address
        self.signer = connection.signer

    def clear(self) -> None:
        self.epoch += 1
        self.connected = False
        self.address = None
        self.signer = None


@dataclass
class DisplayState:
    balance: Optional[str] = None
    decimals: int = 18
    symbol: Optional[str] = None
    block_hash: Optional[str] = None
    block_error: Optional[str] = None
    recipient: str = ""
    amount: str = ""
    last_tx_hash: Optional[str] = None

    @property
    def balance_known(self) -> bool:
        return self.balance is not None

    @property
    def formatted_balance(self) -> Optional[str]:
        if self.balance is None:
            return None
        return format_units(int(self.balance), self.decimals)

    def reset_session_view(self) -> None:
        self.balance = None
        self.recipient = ""
        self.amount = ""
        self.last_tx_hash = None


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome of one controller operation.

    ``error`` on a successful result is a warning (e.g. the wallet
    complained while disconnecting) and did not change state.
    """

    ok: bool
    value: Any = None
    error: Optional[ObolusError] = None

    @classmethod
    def success(cls, value: Any = None, warning: Optional[ObolusError] = None) -> "OperationResult":
        return cls(ok=True, value=value, error=warning)

    @classmethod
    def failure(cls, error: ObolusError) -> "OperationResult":
        return cls(ok=False, error=error)

    @property
    def message(self) -> str:
        return str(self.error) if self.error is not None else ""


class InteractionController:
    """
    Parameters
    ----------
    wallet : wallet session used for connect/disconnect
    rpc : read provider and broadcast channel
    token_address : the token contract this controller talks to
    sources : interface sources, tried in order (default: built-in ERC-20 ABI)
    confirm : wait for inclusion after a transfer and re-read the balance
    """

    def __init__(
        self,
        wallet: WalletSession,
        rpc: RpcClient,
        token_address: str,
        sources: Sequence[InterfaceSource] = (),
        *,
        confirm: bool = False,
        confirm_timeout: float = 120,
        poll_interval: float = 2.0,
        gas_limit: Optional[int] = None,
        chain_id: Optional[int] = None,
        registry: SchemaRegistry | None = None,
    ) -> None:
        self.wallet = wallet
        self.rpc = rpc
        self.token_address = checksum_address(token_address)
        self.sources = list(sources) or [StaticSource(ERC20_ABI)]
        self.confirm = confirm
        self.confirm_timeout = confirm_timeout
        self.poll_interval = poll_interval
        self.gas_limit = gas_limit
        self.chain_id = chain_id
        self.registry = registry

        self.status = Status.DISCONNECTED
        self.session = SessionState()
        self.display = DisplayState()

        self._interface: Optional[MethodTable] = None
        self._binding: Optional[ContractBinding] = None
        self._binding_epoch = -1
        self._metadata_loaded = False
        self._transfer_epoch: Optional[int] = None
        self._background: set[asyncio.Task] = set()

    # ------------------------------------------------------------------ observations

    @property
    def transfer_in_flight(self) -> bool:
        return self._transfer_epoch is not None and self._transfer_epoch == self.session.epoch

    @property
    def can_transfer(self) -> bool:
        return self.status is Status.CONNECTED and not self.transfer_in_flight

    # ------------------------------------------------------------------ lifecycle

    def initialize(self) -> asyncio.Task:
        """Start the background block-hash query; it never affects other operations."""
        task = asyncio.create_task(self.refresh_block_hash(), name="obolus-block-hash")
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def aclose(self) -> None:
        for task in list(self._background):
            task.cancel()
        await asyncio.gather(*self._background, return_exceptions=True)

    async def refresh_block_hash(self) -> OperationResult:
        try:
            block_hash = await self.rpc.get_block_hash("latest")
        except ObolusError as exc:
            logger.warning("latest block hash unavailable: %s", exc)
            self.display.block_error = str(exc)
            return OperationResult.failure(exc)
        self.display.block_hash = block_hash
        self.display.block_error = None
        return OperationResult.success(block_hash)

    # ------------------------------------------------------------------ session

    async def connect(self) -> OperationResult:
        if self.status is Status.CONNECTED:
            return OperationResult.success(self.session.address)
        if self.status is Status.CONNECTING:
            return OperationResult.failure(OperationPending("Connection already in progress"))

        self.status = Status.CONNECTING
        epoch = self.session.epoch
        try:
            connection = await self.wallet.connect()
        except ObolusError as exc:
            if self.session.epoch == epoch:
                self.status = Status.DISCONNECTED
            logger.info("connect failed: %s", exc)
            return OperationResult.failure(exc)

        if self.session.epoch != epoch:
            # disconnect() ran while the wallet was deciding
            if self.status is Status.DISCONNECTED:
                await self.wallet.disconnect()
            return OperationResult.failure(SessionExpired("Connection cancelled"))

        self.session.establish(connection)
        self.display.reset_session_view()
        self._binding = None
        self.status = Status.CONNECTED
        logger.info("session %d connected as %s", self.session.epoch, connection.address)
        return OperationResult.success(connection.address)

    async def disconnect(self) -> OperationResult:
        self.session.clear()
        self.display.reset_session_view()
        self._binding = None
        self.status = Status.DISCONNECTED
        warning = await self.wallet.disconnect()
        logger.info("session disconnected")
        return OperationResult.success(warning=warning)

    # ------------------------------------------------------------------ contract

    async def _token(self) -> ContractBinding:
        if self._interface is None:
            self._interface = await resolve_interface(
                self.rpc, self.token_address, self.sources, registry=self.registry
            )
        epoch = self.session.epoch
        if self._binding is None or self._binding_epoch != epoch:
            self._binding = bind(
                self._interface,
                self.token_address,
                self.rpc,
                self.session.signer,
                required=ERC20_REQUIRED,
                gas_limit=self.gas_limit,
                chain_id=self.chain_id,
            )
            self._binding_epoch = epoch
        return self._binding

    async def _load_metadata(self, token: ContractBinding) -> None:
        if self._metadata_loaded:
            return
        self._metadata_loaded = True
        try:
            if "decimals" in token:
                self.display.decimals = int(await token.decimals())
            if "symbol" in token:
                self.display.symbol = str(await token.symbol())
        except ObolusError as exc:
            logger.warning("token metadata unavailable: %s", exc)

    async def load_token_metadata(self) -> OperationResult:
        """Resolve and bind the token, then read its symbol and decimals once."""
        try:
            token = await self._token()
        except ObolusError as exc:
            return OperationResult.failure(exc)
        await self._load_metadata(token)
        return OperationResult.success((self.display.symbol, self.display.decimals))

    async def check_balance(self) -> OperationResult:
        if self.status is not Status.CONNECTED or self.session.address is None:
            return OperationResult.failure(NotConnected("Connect a wallet first"))

        epoch = self.session.epoch
        address = self.session.address
        try:
            token = await self._token()
            await self._load_metadata(token)
            raw = await token.balance_of(address)
        except ObolusError as exc:
            logger.info("balance check failed: %s", exc)
            return OperationResult.failure(exc)

        if self.session.epoch != epoch:
            return OperationResult.failure(
                SessionExpired("Session ended before the balance arrived")
            )

        self.display.balance = str(raw)
        return OperationResult.success(raw)

    def set_pending_input(self, recipient: str = "", amount: str = "") -> None:
        self.display.recipient = recipient
        self.display.amount = amount

    async def submit_transfer(self, recipient: Any = None, amount: Any = None) -> OperationResult:
        """
        Validate and submit ``transfer(recipient, amount)``.

        Arguments default to the pending input in the display state.
        ``amount`` is in base units.  Success means the node accepted the
        transaction (or, with ``confirm``, that it was included); the
        displayed balance is then stale until re-fetched.
        """
        if recipient is None:
            recipient = self.display.recipient
        if amount is None:
            amount = self.display.amount

        if self.status is not Status.CONNECTED or self.session.signer is None:
            return OperationResult.failure(NotConnected("Connect a wallet first"))
        if self.transfer_in_flight:
            return OperationResult.failure(OperationPending("A transfer is already in flight"))

        try:
            to = checksum_address(recipient)
            value = validate_amount(amount)
        except ValidationError as exc:
            return OperationResult.failure(exc)

        epoch = self.session.epoch
        self._transfer_epoch = epoch
        try:
            token = await self._token()
            submission: Submission = await token.transfer(to, value)
            if self.confirm:
                await token.wait(
                    submission,
                    timeout=self.confirm_timeout,
                    poll_interval=self.poll_interval,
                )
        except ObolusError as exc:
            logger.info("transfer failed: %s", exc)
            return OperationResult.failure(exc)
        finally:
            if self._transfer_epoch == epoch:
                self._transfer_epoch = None

        if self.session.epoch != epoch:
            return OperationResult.failure(
                SessionExpired(
                    f"Session ended after transfer {submission.tx_hash} was submitted"
                )
            )

        self.display.last_tx_hash = submission.tx_hash
        self.display.balance = None
        self.display.recipient = ""
        self.display.amount = ""

        if self.confirm:
            await self.check_balance()

        return OperationResult.success(submission)
